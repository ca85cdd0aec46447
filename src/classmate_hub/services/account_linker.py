"""
Account Linker

Reconciles a Google identity with local accounts. New identities are not
persisted at callback time; they travel to the profile completion request
inside a short-lived signed token.
"""
import enum
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import User, UserRole
from ..exceptions import (
    AccountDeactivatedError,
    AccountExistsError,
    TokenInvalidOrExpiredError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

COMPLETION_TOKEN_PURPOSE = "complete_profile"
COMPLETION_TOKEN_LIFETIME = timedelta(hours=1)


class LinkOutcome(str, enum.Enum):
    LINKED = "linked"
    PENDING_COMPLETION = "pending_completion"


@dataclass
class ExternalIdentity:
    """Identity asserted by the external provider"""
    provider_id: str
    email: str
    name: Optional[str] = None
    avatar: Optional[str] = None


@dataclass
class LinkResult:
    outcome: LinkOutcome
    user: Optional[User] = None
    identity: Optional[ExternalIdentity] = None


def encode_pending_identity(identity: ExternalIdentity, secret_key: str, algorithm: str = "HS256") -> str:
    """Sign an identity awaiting profile completion (valid one hour)"""
    now = datetime.now(timezone.utc)
    claims = asdict(identity)
    claims.update({
        "purpose": COMPLETION_TOKEN_PURPOSE,
        "iat": int(now.timestamp()),
        "exp": int((now + COMPLETION_TOKEN_LIFETIME).timestamp()),
    })
    return jwt.encode(claims, secret_key, algorithm=algorithm)


def decode_pending_identity(token: str, secret_key: str, algorithm: str = "HS256") -> ExternalIdentity:
    """
    Read a profile completion token

    Raises:
        TokenInvalidOrExpiredError: bad signature, expired, or not a completion token
    """
    if not token:
        raise TokenInvalidOrExpiredError()
    try:
        claims = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        raise TokenInvalidOrExpiredError()
    if claims.get("purpose") != COMPLETION_TOKEN_PURPOSE or not claims.get("provider_id") or not claims.get("email"):
        raise TokenInvalidOrExpiredError()
    return ExternalIdentity(
        provider_id=str(claims["provider_id"]),
        email=claims["email"],
        name=claims.get("name"),
        avatar=claims.get("avatar"),
    )


class AccountLinker:
    """Links external identities to local accounts"""

    def __init__(self, db: Session):
        self.db = db

    def _by_google_id(self, provider_id: str) -> Optional[User]:
        return self.db.execute(select(User).where(User.google_id == provider_id)).scalar_one_or_none()

    def _by_email(self, email: str) -> Optional[User]:
        return self.db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        ).scalar_one_or_none()

    def link(self, provider_id: str, email: str, name: Optional[str] = None,
             avatar: Optional[str] = None) -> LinkResult:
        """
        Match an external identity to a local account

        - already linked google id -> LINKED
        - email match without a google id -> google id attached, email verified, LINKED
        - email match holding a different google id -> AccountExistsError
        - email match on a deactivated account -> AccountDeactivatedError, nothing written
        - no match -> PENDING_COMPLETION with the identity
        """
        if not provider_id or not email:
            raise ValidationFailedError("External identity is missing an id or email", field="email")

        identity = ExternalIdentity(provider_id=str(provider_id), email=email.strip().lower(),
                                    name=name, avatar=avatar)

        user = self._by_google_id(identity.provider_id)
        if user is not None:
            logger.info(f"Google identity already linked to user {user.id}")
            return LinkResult(LinkOutcome.LINKED, user=user)

        user = self._by_email(identity.email)
        if user is None:
            logger.info("Google identity has no local account, profile completion required")
            return LinkResult(LinkOutcome.PENDING_COMPLETION, identity=identity)

        if user.google_id and user.google_id != identity.provider_id:
            logger.warning(f"User {user.id} is linked to a different Google account")
            raise AccountExistsError()
        if not user.is_active:
            logger.warning(f"Refusing to link Google identity to deactivated user {user.id}")
            raise AccountDeactivatedError()

        user.google_id = identity.provider_id
        user.email_verified = True
        user.verification_token = None
        user.verification_token_expires = None
        if not user.avatar and identity.avatar:
            user.avatar = identity.avatar
        self.db.commit()
        logger.info(f"Linked Google identity to existing user {user.id}")
        return LinkResult(LinkOutcome.LINKED, user=user)

    def complete(self, identity: ExternalIdentity, course_name: str, city: str, country: str,
                 role: UserRole = UserRole.STUDENT, name: Optional[str] = None) -> User:
        """Create the active, verified, password-less account for a pending identity"""
        for field, value in (("course_name", course_name), ("city", city), ("country", country)):
            if not value or not value.strip():
                raise ValidationFailedError(f"{field.replace('_', ' ').capitalize()} is required", field=field)

        existing = self.db.execute(
            select(User).where(or_(
                func.lower(User.email) == identity.email.lower(),
                User.google_id == identity.provider_id,
            ))
        ).first()
        if existing is not None:
            raise AccountExistsError()

        display_name = (name or identity.name or identity.email.split("@")[0]).strip()
        user = User(
            email=identity.email,
            hashed_password=None,
            google_id=identity.provider_id,
            email_verified=True,
            is_active=True,
            name=display_name,
            avatar=identity.avatar,
            role=role,
            course_name=course_name.strip(),
            city=city.strip(),
            country=country.strip(),
        )
        user.refresh_profile_completed()
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise AccountExistsError()
        self.db.refresh(user)

        logger.info(f"Created user {user.id} from Google profile completion")
        return user
