from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from .base import CamelModel


class ChatType(str, Enum):
    PRIVATE = "private"
    GROUP = "group"


class ChatResponse(CamelModel):
    """Response model for chat data."""

    id: UUID
    type: ChatType
    name: Optional[str]
    owner_id: Optional[UUID]
    participants: List[UUID]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def has_participant(self, user_id: UUID) -> bool:
        return user_id in self.participants


class CreateChatRequest(CamelModel):
    type: ChatType
    name: Optional[str] = None
    participants: List[UUID] = Field(default_factory=list)


class UpdateChatRequest(CamelModel):
    name: Optional[str] = None
    participants: Optional[List[UUID]] = None
