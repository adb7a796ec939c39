"""Authentication API controller with FastAPI endpoints."""

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import (
    get_current_user,
    get_db,
    get_email_service,
    get_google_oauth,
    get_optional_user,
)
from app.core.i18n import get_request_language, request_text
from app.core.oauth import GoogleOAuthClient, new_state
from app.core.rate_limit import auth_limit, strict_limit
from app.core.security import create_token_pair
from app.domains.auth.service import AuthService
from app.exceptions.auth import OAuthError
from app.exceptions.base import BaseAppException
from app.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    EmailRequest,
    LoginRequest,
    RefreshTokenRequest,
    ResetPasswordRequest,
    SignupRequest,
    SignupResponse,
    TokenPair,
)
from app.schemas.base import ResponseSchema
from app.schemas.user import UserResponse
from app.services.email_service import EmailService
from models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{settings.api_prefix}/auth", tags=["auth"])

OAUTH_STATE_KEY = "oauth_state"
OAUTH_LANGUAGE_KEY = "oauth_language"


def _auth_payload(user: User, tokens: dict[str, str]) -> dict:
    return AuthResponse(
        token=tokens["token"],
        refresh_token=tokens["refreshToken"],
        user=UserResponse.model_validate(user),
    ).to_response()


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> AuthService:
    return AuthService(db, email_service)


@router.post("/signup", response_model=ResponseSchema, status_code=201)
@auth_limit
async def signup(
    request: Request,
    data: SignupRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Register a local account; it stays inactive until the email link is followed."""
    user = await service.signup(data)
    return ResponseSchema(
        message=request_text(request, "auth.signup_success"),
        data=SignupResponse(requires_verification=True, email=user.email).to_response(),
    )


@router.post("/login", response_model=ResponseSchema)
@auth_limit
async def login(
    request: Request,
    data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    user, tokens = await service.login(data.email, data.password)
    request.state.language = user.language_code
    return ResponseSchema(
        message=request_text(request, "auth.login_success"),
        data=_auth_payload(user, tokens),
    )


@router.post("/refresh-token", response_model=ResponseSchema)
async def refresh_token(
    request: Request,
    data: RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service),
):
    tokens = await service.refresh_tokens(data.refresh_token)
    return ResponseSchema(
        message=request_text(request, "auth.token_refreshed"),
        data=TokenPair(token=tokens["token"], refresh_token=tokens["refreshToken"]).to_response(),
    )


@router.post("/logout", response_model=ResponseSchema)
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
):
    """Tokens are stateless; only the OAuth handoff session is cleared."""
    request.session.clear()
    logger.info(f"User logged out: {current_user.email}")
    return ResponseSchema(message=request_text(request, "auth.logout_success"))


@router.get("/verify-email/{token}", response_model=ResponseSchema)
async def verify_email(
    request: Request,
    token: str = Path(..., description="Email verification token"),
    service: AuthService = Depends(get_auth_service),
):
    user, tokens = await service.verify_email(token)
    request.state.language = user.language_code
    return ResponseSchema(
        message=request_text(request, "auth.email_verified"),
        data=_auth_payload(user, tokens),
    )


@router.post("/resend-verification", response_model=ResponseSchema)
@strict_limit
async def resend_verification(
    request: Request,
    data: EmailRequest,
    service: AuthService = Depends(get_auth_service),
):
    await service.resend_verification(data.email)
    return ResponseSchema(message=request_text(request, "auth.verification_sent"))


@router.post("/forgot-password", response_model=ResponseSchema)
@strict_limit
async def forgot_password(
    request: Request,
    data: EmailRequest,
    service: AuthService = Depends(get_auth_service),
):
    await service.forgot_password(data.email)
    return ResponseSchema(message=request_text(request, "auth.reset_link_sent"))


@router.get("/verify-reset-token/{token}", response_model=ResponseSchema)
async def verify_reset_token(
    request: Request,
    token: str = Path(..., description="Password reset token"),
    service: AuthService = Depends(get_auth_service),
):
    await service.check_reset_token(token)
    return ResponseSchema(
        message=request_text(request, "auth.reset_valid"),
        data={"status": "valid"},
    )


@router.post("/reset-password/{token}", response_model=ResponseSchema)
async def reset_password(
    request: Request,
    data: ResetPasswordRequest,
    token: str = Path(..., description="Password reset token"),
    service: AuthService = Depends(get_auth_service),
):
    user, tokens = await service.reset_password(token, data.password)
    return ResponseSchema(
        message=request_text(request, "auth.password_reset_success"),
        data=_auth_payload(user, tokens),
    )


@router.post("/check-email", response_model=ResponseSchema)
async def check_email(
    data: EmailRequest,
    service: AuthService = Depends(get_auth_service),
):
    exists = await service.email_exists(data.email)
    return ResponseSchema(
        message="Email found" if exists else "Email not found",
        data={"exists": exists},
    )


@router.post("/change-password", response_model=ResponseSchema)
async def change_password(
    request: Request,
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    await service.change_password(current_user, data.current_password, data.new_password)
    return ResponseSchema(message=request_text(request, "auth.password_changed"))


@router.get("/me", response_model=ResponseSchema)
async def me(current_user: User | None = Depends(get_optional_user)):
    """Who am I; anonymous callers get ``authenticated: false`` instead of a 401."""
    if current_user is None:
        return ResponseSchema(data={"authenticated": False})
    return ResponseSchema(
        data={
            "authenticated": True,
            "user": UserResponse.model_validate(current_user).to_response(),
        }
    )


@router.get("/google")
async def google_login(
    request: Request,
    oauth: GoogleOAuthClient = Depends(get_google_oauth),
):
    if not oauth.is_configured():
        raise OAuthError("Google sign-in is not configured", status_code=503)

    state = new_state()
    request.session[OAUTH_STATE_KEY] = state
    request.session[OAUTH_LANGUAGE_KEY] = get_request_language(request)
    return RedirectResponse(oauth.authorization_url(state), status_code=302)


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    oauth: GoogleOAuthClient = Depends(get_google_oauth),
    service: AuthService = Depends(get_auth_service),
):
    """Finish the Google flow and hand the token pair to the frontend via redirect."""
    failure_url = f"{settings.frontend_url}/login?error=oauth_failed"
    expected_state = request.session.pop(OAUTH_STATE_KEY, None)
    language = request.session.pop(OAUTH_LANGUAGE_KEY, "en")

    if error or not code or not state or state != expected_state:
        logger.warning(f"❌ Google callback rejected (error={error}, state ok={state == expected_state})")
        return RedirectResponse(failure_url, status_code=302)

    try:
        profile = await oauth.fetch_profile(code)
        user = await service.login_with_google(profile, language)
    except (BaseAppException, SQLAlchemyError) as e:
        logger.error(f"❌ Google OAuth failed: {e}")
        return RedirectResponse(failure_url, status_code=302)

    tokens = create_token_pair(user.id)
    query = urlencode({"token": tokens["token"], "refreshToken": tokens["refreshToken"]})
    return RedirectResponse(f"{settings.frontend_url}/auth/callback?{query}", status_code=302)
