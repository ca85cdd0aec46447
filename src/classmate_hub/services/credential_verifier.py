"""
Credential Verifier

Decides whether an email/password pair may open a session. Unknown emails and
wrong passwords share one outcome so callers cannot probe which accounts exist.
"""
import enum
import logging
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import verify_password
from ..db.models import User
from ..exceptions import CredentialCheckError

logger = logging.getLogger(__name__)


class CredentialStatus(str, enum.Enum):
    OK = "OK"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
    ACCOUNT_DEACTIVATED = "ACCOUNT_DEACTIVATED"
    EXTERNAL_ACCOUNT_REQUIRED = "EXTERNAL_ACCOUNT_REQUIRED"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class CredentialVerifier:
    """Checks email/password pairs against stored users"""

    def __init__(self, db: Session):
        self.db = db

    def find_user(self, email: str) -> Optional[User]:
        try:
            return self.db.execute(
                select(User).where(func.lower(User.email) == normalize_email(email))
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"User lookup failed during credential check: {type(e).__name__}")
            raise CredentialCheckError() from e

    def _evaluate(self, email: str, password: str) -> Tuple[CredentialStatus, Optional[User]]:
        user = self.find_user(email)
        if user is None:
            return CredentialStatus.INVALID_CREDENTIALS, None

        if not user.hashed_password:
            if user.google_id:
                return CredentialStatus.EXTERNAL_ACCOUNT_REQUIRED, user
            return CredentialStatus.INVALID_CREDENTIALS, None

        try:
            matches = verify_password(password or "", user.hashed_password)
        except (ValueError, TypeError) as e:
            logger.error(f"Password hash comparison failed for user {user.id}: {type(e).__name__}")
            raise CredentialCheckError() from e

        if not matches:
            return CredentialStatus.INVALID_CREDENTIALS, None
        if not user.email_verified:
            return CredentialStatus.EMAIL_NOT_VERIFIED, user
        if not user.is_active:
            return CredentialStatus.ACCOUNT_DEACTIVATED, user
        return CredentialStatus.OK, user

    def check(self, email: str, password: str) -> CredentialStatus:
        """
        Classify a credential pair

        Args:
            email: Submitted email (trimmed and lower-cased before lookup)
            password: Submitted password

        Returns:
            CredentialStatus describing the outcome

        Raises:
            CredentialCheckError: lookup or hash comparison failed
        """
        status, _ = self._evaluate(email, password)
        logger.info(f"Credential check result: {status.value}")
        return status

    def authenticate(self, email: str, password: str) -> Tuple[CredentialStatus, Optional[User]]:
        """Like check(), but also returns the user on OK"""
        status, user = self._evaluate(email, password)
        return status, user if status == CredentialStatus.OK else None
