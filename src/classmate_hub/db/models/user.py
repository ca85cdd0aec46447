"""
User model
"""
import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Index
from sqlalchemy.orm import validates

from ..base import Base, utcnow


class UserRole(str, enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADVISOR = "advisor"
    COORDINATOR = "coordinator"
    GUEST = "guest"


# Profile columns copied into session claims
PROFILE_FIELDS = (
    "avatar",
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


class User(Base):
    """Classmate account; never hard-deleted"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False)
    hashed_password = Column(String, nullable=True)  # Nullable for Google-only accounts
    email_verified = Column(Boolean, default=False, nullable=False)

    verification_token = Column(String(64), nullable=True, index=True)
    verification_token_expires = Column(DateTime, nullable=True)
    reset_password_token = Column(String(64), nullable=True, index=True)
    reset_password_token_expires = Column(DateTime, nullable=True)

    name = Column(String(100), nullable=False)
    avatar = Column(String, nullable=True)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        default=UserRole.STUDENT,
        nullable=False,
    )

    course_name = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    whatsapp = Column(String(50), nullable=True)
    linkedin = Column(String(255), nullable=True)
    instagram = Column(String(100), nullable=True)
    github = Column(String(255), nullable=True)
    twitter = Column(String(100), nullable=True)
    bio = Column(String(500), nullable=True)
    company = Column(String(100), nullable=True)

    google_id = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    profile_completed = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_users_email", "email", unique=True),
        Index("ix_users_google_id", "google_id", unique=True),
        Index("ix_users_course_name", "course_name"),
        Index("ix_users_country_city", "country", "city"),
        Index("ix_users_name", "name"),
    )

    @validates("email")
    def _normalize_email(self, key, value):
        return value.strip().lower() if value else value

    def refresh_profile_completed(self) -> bool:
        """Recompute the stored flag from course, city and country"""
        self.profile_completed = all(
            (getattr(self, f) or "").strip() for f in ("course_name", "city", "country")
        )
        return self.profile_completed

    @property
    def is_coordinator(self) -> bool:
        return self.role == UserRole.COORDINATOR

    def __repr__(self):
        return f"<User id={self.id} email={self.email!r}>"
