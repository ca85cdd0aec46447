"""
Authentication providers

Each provider turns its own kind of proof into an Identity. The session
layer only ever sees Identity, never the provider-specific details.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from sqlalchemy.orm import Session

from ..db.models import User
from ..exceptions import (
    AppError,
    AccountDeactivatedError,
    EmailNotVerifiedError,
    ExternalAccountRequiredError,
    InvalidCredentialsError,
)
from .account_linker import AccountLinker, ExternalIdentity, LinkOutcome
from .credential_verifier import CredentialStatus, CredentialVerifier

logger = logging.getLogger(__name__)


@dataclass
class Identity:
    """An authenticated local account and the provider that vouched for it"""
    user: User
    provider: str


class ProfileCompletionRequired(AppError):
    """External identity with no local account yet; carries the pending identity"""
    code = "PROFILE_COMPLETION_REQUIRED"
    status_code = 409
    message = "Please complete your profile to finish signing up."

    def __init__(self, identity: ExternalIdentity):
        self.identity = identity
        super().__init__()


STATUS_ERRORS = {
    CredentialStatus.INVALID_CREDENTIALS: InvalidCredentialsError,
    CredentialStatus.EMAIL_NOT_VERIFIED: EmailNotVerifiedError,
    CredentialStatus.ACCOUNT_DEACTIVATED: AccountDeactivatedError,
    CredentialStatus.EXTERNAL_ACCOUNT_REQUIRED: ExternalAccountRequiredError,
}


class AuthProvider(ABC):
    """Abstract authentication provider"""

    name: str = "unknown"

    @abstractmethod
    def authenticate(self, **kwargs) -> Identity:
        """
        Authenticate and return the identity

        Raises:
            AppError: subclass describing why authentication failed
        """
        pass


class CredentialsAuthProvider(AuthProvider):
    """Email and password"""

    name = "credentials"

    def __init__(self, db: Session):
        self.verifier = CredentialVerifier(db)

    def authenticate(self, email: str, password: str) -> Identity:
        status, user = self.verifier.authenticate(email, password)
        if status != CredentialStatus.OK:
            raise STATUS_ERRORS[status]()
        return Identity(user=user, provider=self.name)


class ExternalIdentityAuthProvider(AuthProvider):
    """Google Sign-In, via the Account Linker"""

    name = "google"

    def __init__(self, db: Session):
        self.linker = AccountLinker(db)

    def authenticate(self, provider_id: str, email: str, name: str = None, avatar: str = None) -> Identity:
        result = self.linker.link(provider_id, email, name=name, avatar=avatar)

        if result.outcome == LinkOutcome.PENDING_COMPLETION:
            raise ProfileCompletionRequired(result.identity)

        if not result.user.is_active:
            logger.warning(f"Deactivated user {result.user.id} attempted Google sign-in")
            raise AccountDeactivatedError()

        return Identity(user=result.user, provider=self.name)
