"""
Member directory routes
"""
import logging
from typing import Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from .auth import get_current_claims, get_current_user, get_session_builder, set_session_cookie
from .auth_routes import send_verification_link, session_payload
from .db.engine import get_db
from .db.models import UserRole
from .schemas import Pagination, UserList, UserProfile
from .services.directory_service import DEFAULT_PAGE_SIZE, DirectoryService
from .services.session_claims import SessionClaimsBuilder, SessionUser, claims_for_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


class ProfileUpdateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    role: UserRole
    course_name: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    whatsapp: Optional[str] = Field(None, max_length=50)
    linkedin: Optional[str] = Field(None, max_length=255)
    instagram: Optional[str] = Field(None, max_length=100)
    github: Optional[str] = Field(None, max_length=255)
    twitter: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    company: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None

    @field_validator("name", "course_name", "city", "country", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", "phone", "whatsapp", "linkedin", "instagram", "github", "twitter", "bio", "company",
                     mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("linkedin", "github")
    @classmethod
    def valid_url(cls, v):
        if v is None:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Please enter a valid URL")
        return v


@router.get("", response_model=UserList)
def list_users(
    search: Optional[str] = Query(None, max_length=100),
    course_name: Optional[str] = None,
    country: Optional[str] = None,
    role: Optional[UserRole] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Active members, filtered and paginated"""
    users, total = DirectoryService(db).list_users(
        search=search, course_name=course_name, country=country, role=role, page=page, limit=limit
    )
    return UserList(
        users=[UserProfile.model_validate(u) for u in users],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{user_id}")
def get_user(user_id: int, current_user: SessionUser = Depends(get_current_user),
             db: Session = Depends(get_db)):
    user = DirectoryService(db).get_user(user_id)
    return {"user": UserProfile.model_validate(user).model_dump(mode="json")}


@router.put("/{user_id}")
def update_user(
    user_id: int,
    payload: ProfileUpdateRequest,
    request: Request,
    response: Response,
    current_user: SessionUser = Depends(get_current_user),
    current_claims: dict = Depends(get_current_claims),
    builder: SessionClaimsBuilder = Depends(get_session_builder),
    db: Session = Depends(get_db),
):
    """
    Update a profile (self or coordinator)

    Editing your own profile returns a refreshed session token carrying the
    new values. A coordinator editing someone else leaves that user's session
    as it is until they sign in again.
    """
    changes = payload.model_dump(exclude_unset=True)
    for field in ("phone", "whatsapp", "linkedin", "instagram", "github", "twitter", "bio", "company"):
        changes.setdefault(field, None)

    result = DirectoryService(db).update_profile(current_user, user_id, changes)
    user = result.user
    settings = request.app.state.settings

    if result.email_changed:
        send_verification_link(request, user, result.verification.token)

    body = {
        "user": UserProfile.model_validate(user).model_dump(mode="json"),
        "message": (
            "Profile updated! A verification email has been sent to your new address."
            if result.email_changed else "Profile updated successfully!"
        ),
    }

    if user.id == current_user.id:
        session = builder.refresh(current_claims, claims_for_user(user))
        set_session_cookie(response, session, settings)
        body.update(session_payload(session))

    return body
