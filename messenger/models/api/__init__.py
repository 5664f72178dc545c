# API models for request/response contracts
from .calls import CallResponse, CallStatus, StartCallRequest
from .chats import ChatResponse, ChatType, CreateChatRequest, UpdateChatRequest
from .messages import (
    MessageResponse,
    MessageStatus,
    MessageType,
    SendMessageRequest,
    UpdateMessageRequest,
)
from .profiles import ProfileResponse
from .users import Role, UserResponse, UserStatus

__all__ = [
    "CallResponse",
    "CallStatus",
    "ChatResponse",
    "ChatType",
    "CreateChatRequest",
    "MessageResponse",
    "MessageStatus",
    "MessageType",
    "ProfileResponse",
    "Role",
    "SendMessageRequest",
    "StartCallRequest",
    "UpdateChatRequest",
    "UpdateMessageRequest",
    "UserResponse",
    "UserStatus",
]
