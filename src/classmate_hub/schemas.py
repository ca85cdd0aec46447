"""
Pydantic response schemas shared by the API routers
"""
from datetime import datetime
from math import ceil
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .db.models import UserRole


class UserSummary(BaseModel):
    """Minimal user card embedded in photos"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    avatar: Optional[str] = None


class UserProfile(BaseModel):
    """Public profile; never includes password or token columns"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    avatar: Optional[str] = None
    role: UserRole
    course_name: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    linkedin: Optional[str] = None
    instagram: Optional[str] = None
    github: Optional[str] = None
    twitter: Optional[str] = None
    bio: Optional[str] = None
    company: Optional[str] = None
    email_verified: bool
    is_active: bool
    profile_completed: bool
    created_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=ceil(total / limit) if limit else 0)


class UserList(BaseModel):
    users: List[UserProfile]
    pagination: Pagination


class PhotoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    public_id: str
    thumbnail_url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    taken_at: Optional[datetime] = None
    is_public: bool = True
    uploaded_by: UserSummary
    tagged_users: List[UserSummary] = Field(default_factory=list)
    like_count: int = 0
    liked_by_me: bool = False
    created_at: datetime
    updated_at: datetime


class PhotoDetail(PhotoOut):
    liked_by: List[UserSummary] = Field(default_factory=list)


class PhotoList(BaseModel):
    photos: List[PhotoOut]
    pagination: Pagination


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str
