"""
Session Claims Builder

Mints signed session tokens (JWT, HS256) from a user record, re-signs them
after profile edits and turns a presented token back into a SessionUser.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from ..db.models import User, UserRole, PROFILE_FIELDS

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SESSION_TOKEN_TYPE = "session"

# Claims a refresh may overwrite; sub, iat, exp, jti and typ are fixed at mint time
REFRESHABLE_CLAIMS = frozenset(
    ("email", "name", "role", "email_verified", "profile_completed") + PROFILE_FIELDS
)


class SessionUser(BaseModel):
    """Request-scoped view of the signed-in user, built from session claims"""
    id: int
    email: str
    name: str
    role: UserRole
    email_verified: bool
    profile_completed: bool = False
    avatar: Optional[str] = None
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

    @property
    def is_coordinator(self) -> bool:
        return self.role == UserRole.COORDINATOR


@dataclass
class SessionToken:
    token: str
    expires_at: datetime
    claims: Dict[str, Any]


def claims_for_user(user: User) -> Dict[str, Any]:
    """Denormalized user fields carried in the session"""
    claims = {
        "email": user.email,
        "name": user.name,
        "role": UserRole(user.role).value,
        "email_verified": bool(user.email_verified),
        "profile_completed": bool(user.profile_completed),
    }
    for field in PROFILE_FIELDS:
        claims[field] = getattr(user, field)
    return claims


class SessionClaimsBuilder:
    """Signs and reads session tokens"""

    def __init__(self, secret_key: str, max_age: timedelta = timedelta(days=30), algorithm: str = ALGORITHM):
        if not secret_key:
            raise ValueError("secret_key is required")
        self.secret_key = secret_key
        self.max_age = max_age
        self.algorithm = algorithm

    def _sign(self, claims: Dict[str, Any]) -> SessionToken:
        token = jwt.encode(claims, self.secret_key, algorithm=self.algorithm)
        expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
        return SessionToken(token=token, expires_at=expires_at, claims=claims)

    def mint(self, user: User) -> SessionToken:
        """
        Create a session token for a freshly authenticated user

        Args:
            user: Account that passed authentication

        Returns:
            SessionToken valid for ``max_age`` from now
        """
        now = datetime.now(timezone.utc)
        claims = claims_for_user(user)
        claims.update({
            "sub": str(user.id),
            "typ": SESSION_TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": int((now + self.max_age).timestamp()),
            "jti": str(uuid.uuid4()),
        })
        logger.debug(f"Minted session for user {user.id}")
        return self._sign(claims)

    def refresh(self, existing_claims: Dict[str, Any], partial_update: Dict[str, Any]) -> SessionToken:
        """
        Re-sign a session after the user's denormalized fields changed

        Only refreshable keys are merged. The original ``iat`` and ``exp`` are
        kept, so a refresh never extends the session.
        """
        claims = dict(existing_claims)
        for key, value in partial_update.items():
            if key not in REFRESHABLE_CLAIMS:
                continue
            if isinstance(value, UserRole):
                value = value.value
            claims[key] = value
        claims["jti"] = str(uuid.uuid4())
        return self._sign(claims)

    def decode(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """Verified claims of a session token, or None"""
        if not token or not token.strip():
            return None
        try:
            claims = jwt.decode(token.strip(), self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.info(f"Session token rejected: {type(e).__name__}")
            return None
        if claims.get("typ") != SESSION_TOKEN_TYPE:
            logger.info("Session token rejected: wrong token type")
            return None
        return claims

    def rehydrate(self, token: Optional[str]) -> Optional[SessionUser]:
        """SessionUser for a valid token; None when missing, malformed, badly signed or expired"""
        claims = self.decode(token)
        if claims is None:
            return None
        try:
            return SessionUser(id=int(claims["sub"]), **{
                k: v for k, v in claims.items() if k in SessionUser.model_fields and k != "id"
            })
        except (KeyError, ValueError) as e:
            logger.info(f"Session token rejected: malformed claims ({type(e).__name__})")
            return None
