"""Request/response schemas for auth and account endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LoginRequest(BaseModel):
    """Credentials for login; username_or_email matches either field."""

    username_or_email: str = Field(..., min_length=1, max_length=320, description="Username or email")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class RegisterRequest(BaseModel):
    """New account details. Password rules are enforced by the service."""

    username: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)
    confirm_password: str = Field(..., min_length=1, max_length=128)
    first_name: str = Field(default="", max_length=255)
    last_name: str = Field(default="", max_length=255)
    phone_number: str | None = Field(default=None, max_length=64)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("The password and confirmation password do not match.")
        return self


class RegisterResponse(BaseModel):
    id: str
    message: str = "User registered successfully"


class RefreshTokenRequest(BaseModel):
    """Expired (or still valid) access token plus the refresh token issued with it."""

    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)


class AuthResult(BaseModel):
    """Tokens and profile returned by login and refresh."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expiration: datetime = Field(..., description="Access token expiry (UTC)")
    roles: list[str]
    id: str
    username: str
    email: str
    first_name: str
    last_name: str


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=1, max_length=128)
    confirm_new_password: str = Field(..., min_length=1, max_length=128)

    @model_validator(mode="after")
    def passwords_match(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_new_password:
            raise ValueError("The new password and confirmation password do not match.")
        return self


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)


class ResetPasswordRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=128)
    confirm_new_password: str = Field(..., min_length=1, max_length=128)

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        if self.new_password != self.confirm_new_password:
            raise ValueError("The new password and confirmation password do not match.")
        return self


class MessageResponse(BaseModel):
    message: str


class CurrentUser(BaseModel):
    """Authenticated caller, built from access token claims."""

    id: str
    username: str
    email: str
    roles: list[str]

    @property
    def is_admin(self) -> bool:
        return any(r.lower() == "admin" for r in self.roles)


class AccountOut(BaseModel):
    """Account profile (no password or token material)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    first_name: str
    last_name: str
    phone_number: str | None = None
    is_active: bool
    roles: list[str]
    created_at: datetime | None = None


class UpdateAccountRequest(BaseModel):
    first_name: str = Field(default="", max_length=255)
    last_name: str = Field(default="", max_length=255)
    phone_number: str | None = Field(default=None, max_length=64)


class RoleRequest(BaseModel):
    role: str = Field(..., min_length=1, max_length=64)
