from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .base import CamelModel


class CallStatus(str, Enum):
    ONGOING = "ongoing"
    ENDED = "ended"
    MISSED = "missed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not CallStatus.ONGOING


class StartCallRequest(CamelModel):
    receiver_id: UUID
    chat_id: Optional[UUID] = None


class CallResponse(CamelModel):
    """Response model for call data."""

    id: UUID
    chat_id: Optional[UUID]
    caller_id: UUID
    receiver_id: UUID
    status: CallStatus
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def involves(self, user_id: UUID) -> bool:
        return user_id in (self.caller_id, self.receiver_id)
