"""
Password hashing and session token extraction
"""
import hashlib
import logging
from typing import Optional

import bcrypt
from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext

from .config import config
from .exceptions import AuthenticationRequiredError
from .logging_config import bind_user
from .services.session_claims import SessionClaimsBuilder, SessionToken, SessionUser

logger = logging.getLogger(__name__)

# Bcrypt cost factor; each increment doubles hashing time
BCRYPT_ROUNDS = config.BCRYPT_ROUNDS

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS
)
http_bearer = HTTPBearer(auto_error=False)


def _prepare_password(password: str) -> bytes:
    """Bcrypt only reads 72 bytes, so longer passwords are SHA-256 hex-digested first"""
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > 72:
        password_bytes = hashlib.sha256(password_bytes).hexdigest().encode('utf-8')
    return password_bytes


def get_password_hash(password: str) -> str:
    """Hash a password, handling bcrypt's 72-byte limit"""
    if not password:
        raise ValueError("Password cannot be empty")

    hashed = bcrypt.hashpw(_prepare_password(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    passlib is tried first; if its bcrypt backend cannot load, the hash is
    checked with bcrypt directly. Errors from the direct check propagate.
    """
    if not plain_password or not hashed_password:
        return False

    password_bytes = _prepare_password(plain_password)

    try:
        return pwd_context.verify(password_bytes, hashed_password)
    except (ValueError, TypeError, AttributeError, RuntimeError) as e:
        logger.debug(f"passlib verification unavailable ({type(e).__name__}), using bcrypt directly")

    if not hashed_password.startswith('$2'):
        return False
    return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))


def get_session_builder(request: Request) -> SessionClaimsBuilder:
    return request.app.state.session_builder


def get_auth_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> Optional[str]:
    """
    Extract the session token from the Authorization header or cookie.
    Returns None if no token is found.
    """
    if credentials and credentials.credentials:
        return credentials.credentials

    cookie_name = request.app.state.settings.SESSION_COOKIE_NAME
    cookie_token = request.cookies.get(cookie_name)
    if cookie_token:
        logger.debug("Using session token from cookie")
        return cookie_token
    return None


def get_current_claims(
    token: Optional[str] = Depends(get_auth_token),
    builder: SessionClaimsBuilder = Depends(get_session_builder),
) -> dict:
    """Verified claims of the presented session token"""
    claims = builder.decode(token)
    if claims is None:
        raise AuthenticationRequiredError()
    return claims


def get_optional_user(
    token: Optional[str] = Depends(get_auth_token),
    builder: SessionClaimsBuilder = Depends(get_session_builder),
) -> Optional[SessionUser]:
    """Current SessionUser, or None for anonymous requests"""
    return builder.rehydrate(token)


def get_current_user(
    user: Optional[SessionUser] = Depends(get_optional_user),
) -> SessionUser:
    """
    Get current authenticated user from the session token

    Checks both the Authorization header (Bearer token) and the session cookie.
    """
    if user is None:
        raise AuthenticationRequiredError()
    bind_user(user.id)
    return user


def set_session_cookie(response: Response, session: SessionToken, settings=None) -> None:
    """Attach the session token as an httpOnly cookie expiring with the token"""
    settings = settings or config
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session.token,
        expires=session.expires_at,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response, settings=None) -> None:
    settings = settings or config
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        path="/",
    )
