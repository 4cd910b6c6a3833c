"""Pydantic request/response schemas."""

from identity.schemas.auth import (
    AccountOut,
    AuthResult,
    ChangePasswordRequest,
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    RoleRequest,
    UpdateAccountRequest,
)
from identity.schemas.health import HealthResponse

__all__ = [
    "AccountOut",
    "AuthResult",
    "ChangePasswordRequest",
    "CurrentUser",
    "ForgotPasswordRequest",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "RefreshTokenRequest",
    "RegisterRequest",
    "RegisterResponse",
    "ResetPasswordRequest",
    "RoleRequest",
    "UpdateAccountRequest",
]
