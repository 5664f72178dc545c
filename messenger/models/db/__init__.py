# SQLAlchemy database models
from .call_model import ActiveCallSlotModel, CallModel
from .chat_model import ChatModel
from .message_model import MessageModel, MessageReceiptModel
from .otp_model import OtpModel
from .participant_model import ChatParticipantModel
from .profile_model import UserProfileModel
from .revoked_token_model import RevokedRefreshTokenModel
from .user_model import UserModel

__all__ = [
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
