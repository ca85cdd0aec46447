"""
Email verification and password reset tokens

Tokens are 32 random bytes, hex-encoded, stored on the user row with an
expiry. Wrong, expired and already-used tokens are indistinguishable to the
caller. issue() leaves the commit to the caller so the token lands in the
same transaction as the change that needed it; redeem() commits.
"""
import enum
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..db.base import utcnow
from ..db.models import User
from ..exceptions import TokenInvalidOrExpiredError

logger = logging.getLogger(__name__)


class TokenPurpose(str, enum.Enum):
    VERIFY_EMAIL = "verify_email"
    PASSWORD_RESET = "password_reset"


TOKEN_LIFETIMES = {
    TokenPurpose.VERIFY_EMAIL: timedelta(hours=24),
    TokenPurpose.PASSWORD_RESET: timedelta(hours=1),
}

# (token column, expiry column) per purpose
_COLUMNS = {
    TokenPurpose.VERIFY_EMAIL: ("verification_token", "verification_token_expires"),
    TokenPurpose.PASSWORD_RESET: ("reset_password_token", "reset_password_token_expires"),
}


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime


def generate_token() -> str:
    return secrets.token_hex(32)


class TokenService:
    """Issues, validates and consumes single-use tokens"""

    def __init__(self, db: Session):
        self.db = db

    def issue(self, user: User, purpose: TokenPurpose) -> IssuedToken:
        """Store a fresh token on the user, replacing any pending one of the same purpose"""
        token_attr, expires_attr = _COLUMNS[purpose]
        issued = IssuedToken(token=generate_token(), expires_at=utcnow() + TOKEN_LIFETIMES[purpose])

        setattr(user, token_attr, issued.token)
        setattr(user, expires_attr, issued.expires_at)
        self.db.flush()

        logger.info(f"Issued {purpose.value} token for user {user.id}, expires {issued.expires_at.isoformat()}")
        return issued

    def validate(self, purpose: TokenPurpose, token: str) -> User:
        """
        Find the user holding this unexpired token

        Raises:
            TokenInvalidOrExpiredError: no match, expired, or already used
        """
        if not token:
            raise TokenInvalidOrExpiredError()

        token_attr, expires_attr = _COLUMNS[purpose]
        token_col = getattr(User, token_attr)
        expires_col = getattr(User, expires_attr)

        user = self.db.execute(
            select(User).where(token_col == token, expires_col > utcnow())
        ).scalar_one_or_none()

        if user is None:
            logger.info(f"Rejected {purpose.value} token")
            raise TokenInvalidOrExpiredError()
        return user

    def consume(self, purpose: TokenPurpose, user: User, token: str) -> None:
        """
        Clear the token if it is still the stored one

        A single conditional UPDATE; when a concurrent request consumed the
        token first no row matches and the token is rejected.
        """
        token_attr, expires_attr = _COLUMNS[purpose]
        token_col = getattr(User, token_attr)

        values = {token_attr: None, expires_attr: None, "updated_at": utcnow()}
        if purpose == TokenPurpose.VERIFY_EMAIL:
            values["email_verified"] = True

        result = self.db.execute(
            update(User)
            .where(User.id == user.id, token_col == token)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            logger.warning(f"{purpose.value} token for user {user.id} was consumed concurrently")
            raise TokenInvalidOrExpiredError()

        logger.info(f"Consumed {purpose.value} token for user {user.id}")

    def redeem(self, purpose: TokenPurpose, token: str) -> User:
        """Validate and consume in one step; the token cannot be replayed afterwards"""
        user = self.validate(purpose, token)
        self.consume(purpose, user, token)
        self.db.commit()
        return user
