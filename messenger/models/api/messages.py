from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import Field

from .base import CamelModel


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    FILE = "file"


class MessageStatus(str, Enum):
    DELIVERED = "delivered"
    READ = "read"


class SendMessageRequest(CamelModel):
    """Request model for sending a message."""

    chat_id: UUID = Field(..., description="Chat the message belongs to")
    content: str = Field(..., description="Message content")
    type: MessageType = Field(default=MessageType.TEXT, description="Content type")


class UpdateMessageRequest(CamelModel):
    content: str


class UpdateMessageStatusRequest(CamelModel):
    status: Optional[str] = None


class MessageResponse(CamelModel):
    """Response model for message data."""

    id: UUID
    chat_id: UUID
    sender_id: UUID
    content: str
    type: MessageType
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessageReceiptResponse(CamelModel):
    message_id: UUID
    user_id: UUID
    status: MessageStatus
    updated_at: Optional[datetime] = None
