"""
Photo gallery routes
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from .auth import get_current_user
from .db.engine import get_db
from .db.models import Photo
from .schemas import Pagination, PhotoDetail, PhotoList, PhotoOut, UserSummary
from .services.gallery_service import DEFAULT_PAGE_SIZE, GalleryService
from .services.session_claims import SessionUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/photos", tags=["photos"])


class PhotoCreateRequest(BaseModel):
    url: str = Field(..., min_length=1)
    public_id: str = Field(..., min_length=1, max_length=255)
    thumbnail_url: Optional[str] = None
    title: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    taken_at: Optional[datetime] = None

    @field_validator("thumbnail_url", "title", "description", "location", "taken_at", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class TagsRequest(BaseModel):
    user_ids: List[int] = Field(default_factory=list, max_length=50)


def to_photo_out(photo: Photo, like_count: int, liked_by_me: bool, model=PhotoOut, **extra):
    return model(
        id=photo.id,
        url=photo.url,
        public_id=photo.public_id,
        thumbnail_url=photo.thumbnail_url,
        title=photo.title,
        description=photo.description,
        location=photo.location,
        taken_at=photo.taken_at,
        is_public=photo.is_public,
        uploaded_by=UserSummary.model_validate(photo.uploaded_by),
        tagged_users=[UserSummary.model_validate(u) for u in photo.tagged_users],
        like_count=like_count,
        liked_by_me=liked_by_me,
        created_at=photo.created_at,
        updated_at=photo.updated_at,
        **extra,
    )


def photo_detail(photo: Photo, viewer_id: int) -> PhotoDetail:
    likers = [UserSummary.model_validate(u) for u in photo.liked_by]
    return to_photo_out(
        photo,
        like_count=len(likers),
        liked_by_me=any(u.id == viewer_id for u in likers),
        model=PhotoDetail,
        liked_by=likers,
    )


@router.get("", response_model=PhotoList)
def list_photos(
    user_id: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Public photos, newest first"""
    gallery = GalleryService(db)
    photos, total = gallery.list_photos(user_id=user_id, search=search, page=page, limit=limit)

    ids = [p.id for p in photos]
    counts = gallery.like_counts(ids)
    mine = gallery.liked_by(current_user.id, ids)

    return PhotoList(
        photos=[to_photo_out(p, counts.get(p.id, 0), p.id in mine) for p in photos],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_photo(payload: PhotoCreateRequest, current_user: SessionUser = Depends(get_current_user),
                 db: Session = Depends(get_db)):
    """Record a photo previously stored through /api/upload"""
    photo = GalleryService(db).create_photo(current_user, **payload.model_dump())
    return {
        "photo": to_photo_out(photo, 0, False).model_dump(mode="json"),
        "message": "Photo uploaded successfully!",
    }


@router.get("/{photo_id}")
def get_photo(photo_id: int, current_user: SessionUser = Depends(get_current_user),
              db: Session = Depends(get_db)):
    """Photo with uploader, tagged users and likers"""
    gallery = GalleryService(db)
    photo = gallery.get_photo(photo_id)
    return {"photo": photo_detail(photo, current_user.id).model_dump(mode="json")}


@router.delete("/{photo_id}")
def delete_photo(photo_id: int, request: Request, current_user: SessionUser = Depends(get_current_user),
                 db: Session = Depends(get_db)):
    """Delete a photo and its stored image (uploader or coordinator)"""
    GalleryService(db).delete_photo(photo_id, current_user, request.app.state.image_host)
    return {"message": "Photo deleted successfully!"}


@router.post("/{photo_id}/like")
def toggle_like(photo_id: int, current_user: SessionUser = Depends(get_current_user),
                db: Session = Depends(get_db)):
    """Like, or remove an existing like"""
    gallery = GalleryService(db)
    liked = gallery.toggle_like(photo_id, current_user.id)
    photo = gallery.get_photo(photo_id)
    return {
        "photo": photo_detail(photo, current_user.id).model_dump(mode="json"),
        "liked": liked,
        "message": "Photo liked!" if liked else "Like removed",
    }


@router.put("/{photo_id}/tags")
def update_tags(photo_id: int, payload: TagsRequest, current_user: SessionUser = Depends(get_current_user),
                db: Session = Depends(get_db)):
    """Replace the users tagged in a photo (uploader or coordinator)"""
    gallery = GalleryService(db)
    photo = gallery.set_tags(photo_id, current_user, payload.user_ids)
    return {
        "photo": photo_detail(photo, current_user.id).model_dump(mode="json"),
        "message": "Tags updated",
    }
