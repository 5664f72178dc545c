# Repository classes for database operations
from .base_repository import BaseRepository
from .call_repository import CallRepository
from .chat_repository import ChatRepository
from .message_repository import MessageRepository
from .otp_repository import OtpRepository
from .profile_repository import ProfileRepository
from .token_repository import RevokedTokenRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "CallRepository",
    "ChatRepository",
    "MessageRepository",
    "OtpRepository",
    "ProfileRepository",
    "RevokedTokenRepository",
    "UserRepository",
]
