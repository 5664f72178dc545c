# Export all models
from .api import (
    CallResponse,
    ChatResponse,
    MessageResponse,
    ProfileResponse,
    Role,
    UserResponse,
)
from .db import (
    ActiveCallSlotModel,
    CallModel,
    ChatModel,
    ChatParticipantModel,
    MessageModel,
    MessageReceiptModel,
    OtpModel,
    RevokedRefreshTokenModel,
    UserModel,
    UserProfileModel,
)

__all__ = [
    # API models
    "CallResponse",
    "ChatResponse",
    "MessageResponse",
    "ProfileResponse",
    "Role",
    "UserResponse",
    # DB models
    "ActiveCallSlotModel",
    "CallModel",
    "ChatModel",
    "ChatParticipantModel",
    "MessageModel",
    "MessageReceiptModel",
    "OtpModel",
    "RevokedRefreshTokenModel",
    "UserModel",
    "UserProfileModel",
]
