"""
Google OAuth routes
"""
import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from fastapi_sso import GoogleSSO
from fastapi_sso.sso.base import SSOLoginError
from sqlalchemy.orm import Session

from .auth import get_session_builder, set_session_cookie
from .db.engine import get_db
from .exceptions import AppError, ServiceUnavailableError
from .services.account_linker import encode_pending_identity
from .services.auth_providers import ExternalIdentityAuthProvider, ProfileCompletionRequired
from .services.session_claims import SessionClaimsBuilder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth/oauth", tags=["oauth"])


def build_google_sso(settings) -> Optional[GoogleSSO]:
    """
    GoogleSSO client, or None when GOOGLE_CLIENT_ID/SECRET are not set

    The redirect URI points at this API's callback, not the frontend.
    """
    if not settings.google_oauth_enabled:
        logger.info("Google OAuth not configured")
        return None
    return GoogleSSO(
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        redirect_uri=f"{settings.API_BASE_URL}/api/auth/oauth/google/callback",
        allow_insecure_http=not settings.API_BASE_URL.startswith("https://"),
    )


def get_google_sso(request: Request) -> GoogleSSO:
    sso = request.app.state.google_sso
    if sso is None:
        raise ServiceUnavailableError(
            "Google OAuth is not configured. Set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET."
        )
    return sso


def _redirect(base_url: str, **params) -> RedirectResponse:
    query = urlencode({k: v for k, v in params.items() if v is not None})
    return RedirectResponse(url=f"{base_url}?{query}" if query else base_url, status_code=302)


@router.get("/google/login")
async def google_login(sso: GoogleSSO = Depends(get_google_sso)):
    """Initiate Google OAuth login"""
    async with sso:
        return await sso.get_login_redirect()


@router.get("/google/callback")
async def google_callback(
    request: Request,
    sso: GoogleSSO = Depends(get_google_sso),
    db: Session = Depends(get_db),
    builder: SessionClaimsBuilder = Depends(get_session_builder),
):
    """
    Handle Google OAuth callback

    - linked account: session cookie set, redirect to the frontend callback
    - new identity: redirect to profile completion with a signed completion token
    - failure: redirect to the frontend callback with an error code
    """
    settings = request.app.state.settings

    try:
        async with sso:
            user_info = await sso.verify_and_process(request)
    except SSOLoginError as e:
        logger.warning(f"Google OAuth verification failed: {e.detail}")
        return _redirect(settings.FRONTEND_CALLBACK_URL, error="AUTH_ERROR")

    if user_info is None or not user_info.email:
        logger.warning("Google OAuth returned no usable profile")
        return _redirect(settings.FRONTEND_CALLBACK_URL, error="AUTH_ERROR")

    name = user_info.display_name or " ".join(
        part for part in (user_info.first_name, user_info.last_name) if part
    ) or None

    try:
        identity = ExternalIdentityAuthProvider(db).authenticate(
            provider_id=user_info.id,
            email=user_info.email,
            name=name,
            avatar=user_info.picture,
        )
    except ProfileCompletionRequired as pending:
        completion_token = encode_pending_identity(pending.identity, settings.SECRET_KEY)
        return _redirect(
            f"{settings.APP_URL}/complete-profile",
            token=completion_token,
            email=pending.identity.email,
            name=pending.identity.name,
        )
    except AppError as e:
        logger.warning(f"Google sign-in refused: {e.code}")
        return _redirect(settings.FRONTEND_CALLBACK_URL, error=e.code)

    session = builder.mint(identity.user)
    response = _redirect(settings.FRONTEND_CALLBACK_URL, token=session.token, provider="google")
    set_session_cookie(response, session, settings)
    logger.info(f"User {identity.user.id} signed in with Google")
    return response
