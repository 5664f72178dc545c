from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import Field

from .base import CamelModel


class Role(str, Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


class UserStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"


class UserResponse(CamelModel):
    """Response model for identity data. Never carries the password hash."""

    id: UUID
    email: str
    username: str
    role: Role
    status: UserStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


class CurrentUserResponse(UserResponse):
    """Identity joined with its profile fields."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    status_message: Optional[str] = None


class RegisterRequest(CamelModel):
    """Request model for account registration.

    Fields are optional here so that the service reports missing input as a
    single "All fields are required" error.
    """

    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None


class RegisterResponse(CamelModel):
    id: UUID
    otp_sent: bool
    message: str = "User registered successfully"


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class TokenPairResponse(CamelModel):
    """Successful authentication response with token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    access_expires_in: int = Field(ge=1, description="Access token lifetime in seconds")
    refresh_expires_in: int = Field(
        ge=1, description="Refresh token lifetime in seconds"
    )


class RefreshResponse(CamelModel):
    access_token: str
    refresh_token: str
    access_expires_in: int


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = None


class SendOtpRequest(CamelModel):
    email: Optional[str] = None


class VerifyOtpRequest(CamelModel):
    """Either ``code`` with a Bearer token, or ``email`` with ``otp``."""

    code: Optional[str] = None
    email: Optional[str] = None
    otp: Optional[str] = None
