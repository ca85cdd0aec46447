"""
Member directory: paginated user search and profile updates
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import User, UserRole
from ..exceptions import EmailExistsError, ForbiddenError, NotFoundError
from .session_claims import SessionUser
from .token_service import IssuedToken, TokenPurpose, TokenService

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12

# Profile columns a PUT may write; email, role and is_active are handled separately
EDITABLE_FIELDS = (
    "name",
    "course_name",
    "city",
    "country",
    "phone",
    "whatsapp",
    "linkedin",
    "instagram",
    "github",
    "twitter",
    "bio",
    "company",
)


def ilike_pattern(term: str) -> str:
    """Substring pattern with LIKE wildcards in the term escaped"""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass
class ProfileUpdateResult:
    user: User
    email_changed: bool = False
    verification: Optional[IssuedToken] = None


class DirectoryService:
    def __init__(self, db: Session):
        self.db = db

    def list_users(
        self,
        search: Optional[str] = None,
        course_name: Optional[str] = None,
        country: Optional[str] = None,
        role: Optional[UserRole] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[User], int]:
        """
        Active users matching every given filter, ordered by name

        Returns:
            (users on the requested page, total matching users)
        """
        conditions = [User.is_active.is_(True)]
        if search and search.strip():
            conditions.append(User.name.ilike(ilike_pattern(search.strip()), escape="\\"))
        if course_name:
            conditions.append(User.course_name == course_name)
        if country:
            conditions.append(User.country == country)
        if role:
            conditions.append(User.role == role)

        total = self.db.execute(select(func.count(User.id)).where(*conditions)).scalar_one()
        users = self.db.execute(
            select(User)
            .where(*conditions)
            .order_by(User.name.asc(), User.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()
        return list(users), total

    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User")
        return user

    def update_profile(self, actor: SessionUser, user_id: int, changes: Dict[str, Any]) -> ProfileUpdateResult:
        """
        Apply a profile edit by ``actor`` to user ``user_id``

        Only the user themself or a coordinator may edit. Promoting to
        coordinator and changing activation are coordinator-only. A new email
        is stored unverified with a fresh verification token.

        Raises:
            ForbiddenError, NotFoundError, EmailExistsError
        """
        if actor.id != user_id and not actor.is_coordinator:
            raise ForbiddenError()

        user = self.get_user(user_id)

        new_role = changes.get("role")
        if new_role is not None and new_role != user.role:
            if new_role == UserRole.COORDINATOR and not actor.is_coordinator:
                raise ForbiddenError("Only coordinators can grant the coordinator role.")
            user.role = new_role

        if changes.get("is_active") is not None and changes["is_active"] != user.is_active:
            if not actor.is_coordinator:
                raise ForbiddenError("Only coordinators can activate or deactivate accounts.")
            if actor.id == user_id and not changes["is_active"]:
                raise ForbiddenError("You cannot deactivate your own account.")
            user.is_active = changes["is_active"]
            logger.info(f"User {user_id} is_active set to {user.is_active} by coordinator {actor.id}")

        for field in EDITABLE_FIELDS:
            if field in changes:
                setattr(user, field, changes[field])
        user.refresh_profile_completed()

        result = ProfileUpdateResult(user=user)
        new_email = (changes.get("email") or "").strip().lower()
        if new_email and new_email != user.email:
            taken = self.db.execute(
                select(User.id).where(func.lower(User.email) == new_email, User.id != user_id)
            ).first()
            if taken is not None:
                raise EmailExistsError()
            user.email = new_email
            user.email_verified = False
            result.email_changed = True
            result.verification = TokenService(self.db).issue(user, TokenPurpose.VERIFY_EMAIL)

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise EmailExistsError()
        self.db.refresh(user)

        logger.info(f"Profile of user {user_id} updated by user {actor.id}")
        return result
