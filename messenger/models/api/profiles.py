from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from .base import CamelModel


class ProfileFields(CamelModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=32)
    address: Optional[str] = Field(default=None, max_length=255)
    avatar_url: Optional[str] = Field(default=None, max_length=512)
    status_message: Optional[str] = Field(default=None, max_length=255)


class CreateProfileRequest(ProfileFields):
    pass


class UpdateProfileRequest(ProfileFields):
    """All fields are optional; only provided fields are updated."""


class ProfileResponse(ProfileFields):
    """Response model for profile data joined with the owning identity."""

    user_id: UUID
    username: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
