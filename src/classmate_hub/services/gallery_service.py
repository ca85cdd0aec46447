"""
Photo gallery queries and mutations
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, selectinload

from ..db.models import Photo, User, photo_likes
from ..exceptions import ForbiddenError, NotFoundError, ValidationFailedError
from .directory_service import ilike_pattern
from .session_claims import SessionUser
from .storage_provider import ImageHost

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
GALLERY_FOLDER = "gallery"


class GalleryService:
    def __init__(self, db: Session):
        self.db = db

    # Reads

    def list_photos(
        self,
        user_id: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[Photo], int]:
        """Public photos, newest first"""
        conditions = [Photo.is_public.is_(True)]
        if user_id is not None:
            conditions.append(Photo.uploaded_by_id == user_id)
        if search and search.strip():
            pattern = ilike_pattern(search.strip())
            conditions.append(or_(
                Photo.title.ilike(pattern, escape="\\"),
                Photo.description.ilike(pattern, escape="\\"),
                Photo.location.ilike(pattern, escape="\\"),
            ))

        total = self.db.execute(select(func.count(Photo.id)).where(*conditions)).scalar_one()
        photos = self.db.execute(
            select(Photo)
            .where(*conditions)
            .options(selectinload(Photo.tagged_users))
            .order_by(Photo.created_at.desc(), Photo.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).unique().scalars().all()
        return list(photos), total

    def get_photo(self, photo_id: int) -> Photo:
        photo = self.db.get(Photo, photo_id)
        if photo is None:
            raise NotFoundError("Photo")
        return photo

    def like_counts(self, photo_ids: Iterable[int]) -> Dict[int, int]:
        ids = list(photo_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(photo_likes.c.photo_id, func.count())
            .where(photo_likes.c.photo_id.in_(ids))
            .group_by(photo_likes.c.photo_id)
        ).all()
        return {photo_id: count for photo_id, count in rows}

    def liked_by(self, user_id: int, photo_ids: Iterable[int]) -> Set[int]:
        """Subset of photo_ids the user has liked"""
        ids = list(photo_ids)
        if not ids:
            return set()
        rows = self.db.execute(
            select(photo_likes.c.photo_id)
            .where(photo_likes.c.user_id == user_id, photo_likes.c.photo_id.in_(ids))
        ).scalars().all()
        return set(rows)

    # Mutations

    def create_photo(
        self,
        uploader: SessionUser,
        url: str,
        public_id: str,
        thumbnail_url: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        location: Optional[str] = None,
        taken_at: Optional[datetime] = None,
    ) -> Photo:
        # Records may only point at gallery assets, never at avatars or other folders
        if not public_id.startswith(f"{GALLERY_FOLDER}/") or ".." in public_id:
            raise ValidationFailedError("Invalid image reference", field="public_id")

        photo = Photo(
            uploaded_by_id=uploader.id,
            url=url,
            public_id=public_id,
            thumbnail_url=thumbnail_url,
            title=title,
            description=description,
            location=location,
            taken_at=taken_at,
            is_public=True,
        )
        self.db.add(photo)
        self.db.commit()
        self.db.refresh(photo)
        logger.info(f"User {uploader.id} created photo {photo.id}")
        return photo

    def _add_like(self, photo_id: int, user_id: int) -> None:
        """Set-add: a duplicate like is silently ignored"""
        values = {"photo_id": photo_id, "user_id": user_id}
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(photo_likes).values(**values).on_conflict_do_nothing()
        elif dialect == "sqlite":
            stmt = sqlite_insert(photo_likes).values(**values).on_conflict_do_nothing()
        else:
            exists = self.db.execute(
                select(photo_likes.c.photo_id).where(
                    photo_likes.c.photo_id == photo_id, photo_likes.c.user_id == user_id
                )
            ).first()
            if exists is not None:
                return
            stmt = insert(photo_likes).values(**values)
        self.db.execute(stmt)

    def toggle_like(self, photo_id: int, user_id: int) -> bool:
        """
        Like the photo, or remove the like if already present

        Returns:
            True if the photo is liked after the call
        """
        self.get_photo(photo_id)
        has_liked = photo_id in self.liked_by(user_id, [photo_id])
        if has_liked:
            self.db.execute(
                delete(photo_likes).where(
                    photo_likes.c.photo_id == photo_id, photo_likes.c.user_id == user_id
                )
            )
        else:
            self._add_like(photo_id, user_id)
        self.db.commit()
        logger.debug(f"User {user_id} {'unliked' if has_liked else 'liked'} photo {photo_id}")
        return not has_liked

    def _ensure_can_modify(self, photo: Photo, actor: SessionUser) -> None:
        if photo.uploaded_by_id != actor.id and not actor.is_coordinator:
            raise ForbiddenError()

    def set_tags(self, photo_id: int, actor: SessionUser, user_ids: List[int]) -> Photo:
        """Replace the tagged users of a photo (uploader or coordinator)"""
        photo = self.get_photo(photo_id)
        self._ensure_can_modify(photo, actor)

        wanted = set(user_ids)
        users = self.db.execute(select(User).where(User.id.in_(wanted))).scalars().all() if wanted else []
        missing = wanted - {u.id for u in users}
        if missing:
            raise ValidationFailedError(
                f"Unknown user id(s): {', '.join(str(i) for i in sorted(missing))}", field="user_ids"
            )

        photo.tagged_users = list(users)
        self.db.commit()
        self.db.refresh(photo)
        logger.info(f"User {actor.id} tagged {len(users)} user(s) on photo {photo_id}")
        return photo

    def delete_photo(self, photo_id: int, actor: SessionUser, image_host: ImageHost) -> None:
        """
        Delete a photo and its stored asset (uploader or coordinator)

        The asset is removed first; if the image host fails the record stays.
        """
        photo = self.get_photo(photo_id)
        self._ensure_can_modify(photo, actor)

        if not image_host.delete(photo.public_id):
            logger.warning(f"Asset {photo.public_id} of photo {photo_id} was already gone")

        self.db.execute(delete(photo_likes).where(photo_likes.c.photo_id == photo_id))
        self.db.delete(photo)
        self.db.commit()
        logger.info(f"User {actor.id} deleted photo {photo_id}")
