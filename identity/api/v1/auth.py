"""Auth endpoints (register, login, refresh, logout, password reset) and auth dependencies."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from identity.api.errors import http_error
from identity.core.config import Settings, get_settings
from identity.core.database import get_db
from identity.core.tokens import CLAIM_EMAIL, CLAIM_ROLES, CLAIM_USERNAME, TokenSigner
from identity.repositories import AccountRepository
from identity.schemas.auth import (
    AuthResult,
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
)
from identity.services.auth_engine import AuthEngine
from identity.services.results import Failure

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)

# Same body whether or not the email belongs to an account.
FORGOT_PASSWORD_MESSAGE = "If your email is registered, you will receive a password reset link."


def get_auth_engine(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthEngine:
    """Dependency: one AuthEngine per request, bound to the request's DB session."""
    return AuthEngine(db, settings)


def get_token_signer(settings: Annotated[Settings, Depends(get_settings)]) -> TokenSigner:
    return TokenSigner(settings)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    signer: Annotated[TokenSigner, Depends(get_token_signer)],
    db: Annotated[Session, Depends(get_db)],
) -> CurrentUser:
    """Dependency: require valid Bearer JWT and return the caller. Raises 401 if missing or invalid."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = signer.decode_claims(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    # Deleted or deactivated accounts lose access before their tokens expire.
    if AccountRepository(db).find_by_id(payload["sub"]) is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    roles = payload.get(CLAIM_ROLES) or []
    if isinstance(roles, str):
        roles = [roles]
    return CurrentUser(
        id=payload["sub"],
        username=payload.get(CLAIM_USERNAME, ""),
        email=payload.get(CLAIM_EMAIL, ""),
        roles=list(roles),
    )


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated user with role 'Admin'. Raises 403 otherwise."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


@router.post("/register", response_model=RegisterResponse)
def register(
    body: RegisterRequest,
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
) -> RegisterResponse:
    """Create an account with the default 'User' role. Does not sign in."""
    result = engine.register(
        username=body.username,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone_number=body.phone_number,
    )
    if isinstance(result, Failure):
        raise http_error(result)
    return RegisterResponse(id=result.value)


@router.post("/login", response_model=AuthResult)
def login(
    body: LoginRequest,
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
) -> AuthResult:
    """
    Authenticate with username (or email) and password; returns access and refresh tokens.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    result = engine.login(body.username_or_email, body.password)
    if isinstance(result, Failure):
        raise http_error(result)
    return result.value


@router.post("/refresh-token", response_model=AuthResult)
def refresh_token(
    body: RefreshTokenRequest,
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
) -> AuthResult:
    """Exchange an (expired) access token plus its refresh token for a new pair."""
    result = engine.refresh(body.access_token, body.refresh_token)
    if isinstance(result, Failure):
        raise http_error(result)
    return result.value


@router.post("/logout", response_model=MessageResponse)
def logout(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
) -> MessageResponse:
    """Revoke the caller's refresh token."""
    if not engine.logout(current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return MessageResponse(message="Logged out successfully")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageResponse:
    """Start a password reset. The response never reveals whether the email exists."""
    result = engine.forgot_password(body.email)
    if not isinstance(result, Failure) and settings.DEBUG:
        # No mail delivery in this service; DEBUG exposes the token in the logs for local testing.
        logger.debug("Password reset token for %s: %s", body.email, result.value)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
) -> MessageResponse:
    """Set a new password using a token from forgot-password."""
    result = engine.reset_password(body.email, body.token, body.new_password)
    if isinstance(result, Failure):
        raise http_error(result)
    return MessageResponse(message="Password has been reset")
