"""
Authentication API routes
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field, ValidationInfo, field_validator
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .auth import (
    clear_session_cookie,
    get_current_user,
    get_password_hash,
    get_session_builder,
    set_session_cookie,
)
from .db.engine import get_db
from .db.models import User, UserRole
from .exceptions import EmailExistsError
from .schemas import MessageResponse, UserProfile
from .services.account_linker import AccountLinker, decode_pending_identity
from .services.auth_providers import CredentialsAuthProvider
from .services.credential_verifier import CredentialStatus, CredentialVerifier
from .services.email_provider import send_password_reset_email, send_verification_email
from .services.password_validator import get_password_validator
from .services.session_claims import SessionClaimsBuilder, SessionUser
from .services.token_service import TokenPurpose, TokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["authentication"])

GENERIC_RESEND_MESSAGE = "If an account exists with this email, a verification email has been sent."
GENERIC_FORGOT_MESSAGE = "If an account exists with this email, you will receive a password reset link."


def _check_password(value: str) -> str:
    is_valid, error = get_password_validator().validate(value)
    if not is_valid:
        raise ValueError(error)
    return value


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str
    confirm_password: str
    course_name: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    company: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    twitter: Optional[str] = Field(None, max_length=100)

    @field_validator("name", "course_name", "city", "country", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("company", "bio", "twitter", mode="before")
    @classmethod
    def blank_optional(cls, v):
        return _blank_to_none(v)

    @field_validator("password")
    @classmethod
    def password_policy(cls, v):
        return _check_password(v)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v, info: ValidationInfo):
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("Passwords do not match")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class EmailRequest(BaseModel):
    email: EmailStr


class TokenRequest(BaseModel):
    token: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def password_policy(cls, v):
        return _check_password(v)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v, info: ValidationInfo):
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("Passwords do not match")
        return v


class CompleteProfileRequest(BaseModel):
    completion_token: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    course_name: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    role: UserRole = UserRole.STUDENT

    @field_validator("role")
    @classmethod
    def no_self_promotion(cls, v):
        if v == UserRole.COORDINATOR:
            raise ValueError("The coordinator role is assigned by a coordinator")
        return v


# Public check-credentials reasons and their HTTP statuses
CHECK_REASONS = {
    CredentialStatus.INVALID_CREDENTIALS: ("invalid_credentials", status.HTTP_401_UNAUTHORIZED,
                                           "Invalid email or password."),
    CredentialStatus.EXTERNAL_ACCOUNT_REQUIRED: ("google_account", status.HTTP_401_UNAUTHORIZED,
                                                 'This account uses Google Sign-In. Please use the '
                                                 '"Sign in with Google" button.'),
    CredentialStatus.EMAIL_NOT_VERIFIED: ("email_not_verified", status.HTTP_403_FORBIDDEN,
                                          "Please verify your email address before signing in."),
    CredentialStatus.ACCOUNT_DEACTIVATED: ("account_deactivated", status.HTTP_403_FORBIDDEN,
                                           "Your account has been deactivated. Please contact support."),
}


def session_payload(session, user: Optional[dict] = None) -> dict:
    body = {
        "access_token": session.token,
        "token_type": "bearer",
        "expires_at": session.expires_at.isoformat(),
    }
    if user is not None:
        body["user"] = user
    return body


def send_verification_link(request: Request, user: User, token: str) -> bool:
    """Send the verification link; delivery problems never fail the request"""
    settings = request.app.state.settings
    try:
        sent = send_verification_email(
            request.app.state.email_provider,
            user.email,
            token,
            settings.APP_URL,
            name=user.name,
            from_address=settings.SMTP_FROM_ADDRESS,
        )
    except Exception:
        logger.error(f"Verification email for user {user.id} raised during delivery", exc_info=True)
        return False
    if not sent:
        logger.error(f"Verification email for user {user.id} could not be sent")
    return sent


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    """Register a new user with email and password; the account starts unverified"""
    email = payload.email.strip().lower()

    existing = db.execute(select(User.id).where(func.lower(User.email) == email)).first()
    if existing is not None:
        logger.warning("Registration rejected: email already registered")
        raise EmailExistsError()

    user = User(
        email=email,
        hashed_password=get_password_hash(payload.password),
        name=payload.name,
        role=UserRole.STUDENT,
        course_name=payload.course_name,
        city=payload.city,
        country=payload.country,
        company=payload.company,
        bio=payload.bio,
        twitter=payload.twitter,
        email_verified=False,
        is_active=True,
    )
    user.refresh_profile_completed()
    db.add(user)
    try:
        db.flush()
        issued = TokenService(db).issue(user, TokenPurpose.VERIFY_EMAIL)
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise EmailExistsError()

    logger.info(f"User {user.id} registered")
    send_verification_link(request, user, issued.token)

    return {
        "message": "Registration successful! Please check your email to verify your account.",
        "user_id": user.id,
    }


@router.post("/login")
def login(payload: LoginRequest, response: Response, request: Request,
          db: Session = Depends(get_db),
          builder: SessionClaimsBuilder = Depends(get_session_builder)):
    """Login with email and password; sets the session cookie"""
    identity = CredentialsAuthProvider(db).authenticate(payload.email, payload.password)
    session = builder.mint(identity.user)
    set_session_cookie(response, session, request.app.state.settings)

    logger.info(f"User {identity.user.id} signed in with {identity.provider}")
    return session_payload(session, UserProfile.model_validate(identity.user).model_dump(mode="json"))


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, request: Request):
    """Clear the session cookie; bearer tokens are discarded client-side"""
    clear_session_cookie(response, request.app.state.settings)
    return {"message": "Logged out successfully"}


@router.get("/session", response_model=SessionUser)
def get_session(current_user: SessionUser = Depends(get_current_user)):
    """Current session user"""
    return current_user


@router.post("/check-credentials")
def check_credentials(payload: LoginRequest, db: Session = Depends(get_db)):
    """
    Report why a credential pair would or would not sign in,
    so the login form can offer a resend-verification link
    """
    result = CredentialVerifier(db).check(payload.email, payload.password)
    if result == CredentialStatus.OK:
        return {"success": True, "reason": None, "message": "Credentials valid. Proceed with sign in."}

    reason, status_code, message = CHECK_REASONS[result]
    content = {"success": False, "reason": reason, "message": message}
    if result == CredentialStatus.EMAIL_NOT_VERIFIED:
        # Lets the login form offer a resend for this address
        content["email"] = payload.email.strip().lower()
    return JSONResponse(status_code=status_code, content=content)


@router.post("/verify-email", response_model=MessageResponse)
def verify_email(payload: TokenRequest, db: Session = Depends(get_db)):
    """Consume an email verification token"""
    user = TokenService(db).redeem(TokenPurpose.VERIFY_EMAIL, payload.token)
    logger.info(f"User {user.id} verified their email")
    return {"message": "Email verified successfully! You can now sign in."}


@router.post("/resend-verification", response_model=MessageResponse)
def resend_verification(payload: EmailRequest, request: Request, db: Session = Depends(get_db)):
    """Issue a new verification token; the response never reveals whether the account exists"""
    user = CredentialVerifier(db).find_user(payload.email)
    if user is not None and not user.email_verified and user.is_active:
        issued = TokenService(db).issue(user, TokenPurpose.VERIFY_EMAIL)
        db.commit()
        send_verification_link(request, user, issued.token)
    return {"message": GENERIC_RESEND_MESSAGE}


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(payload: EmailRequest, request: Request, db: Session = Depends(get_db)):
    """Issue a password reset token; the response never reveals whether the account exists"""
    user = CredentialVerifier(db).find_user(payload.email)
    if user is not None and user.is_active:
        issued = TokenService(db).issue(user, TokenPurpose.PASSWORD_RESET)
        db.commit()
        settings = request.app.state.settings
        try:
            sent = send_password_reset_email(
                request.app.state.email_provider,
                user.email,
                issued.token,
                settings.APP_URL,
                name=user.name,
                from_address=settings.SMTP_FROM_ADDRESS,
            )
        except Exception:
            logger.error(f"Password reset email for user {user.id} raised during delivery", exc_info=True)
            sent = False
        if not sent:
            logger.error(f"Password reset email for user {user.id} could not be sent")
    return {"message": GENERIC_FORGOT_MESSAGE}


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    """Set a new password with a reset token"""
    tokens = TokenService(db)
    user = tokens.validate(TokenPurpose.PASSWORD_RESET, payload.token)
    tokens.consume(TokenPurpose.PASSWORD_RESET, user, payload.token)
    user.hashed_password = get_password_hash(payload.password)
    db.commit()

    logger.info(f"User {user.id} reset their password")
    return {"message": "Password reset successfully! You can now sign in with your new password."}


@router.post("/complete-profile", status_code=status.HTTP_201_CREATED)
def complete_profile(payload: CompleteProfileRequest, response: Response, request: Request,
                     db: Session = Depends(get_db),
                     builder: SessionClaimsBuilder = Depends(get_session_builder)):
    """Create the account for a Google identity that had no local match"""
    settings = request.app.state.settings
    identity = decode_pending_identity(payload.completion_token, settings.SECRET_KEY)

    user = AccountLinker(db).complete(
        identity,
        course_name=payload.course_name,
        city=payload.city,
        country=payload.country,
        role=payload.role,
        name=payload.name,
    )
    session = builder.mint(user)
    set_session_cookie(response, session, settings)

    body = {"message": "Profile completed successfully!", "user_id": user.id}
    body.update(session_payload(session))
    return body
