from sqlalchemy import Column, DateTime, ForeignKey, Uuid, func

from messenger.database import Base


class ChatParticipantModel(Base):
    """SQLAlchemy model for chat_participants table."""

    __tablename__ = "chat_participants"

    chat_id = Column(
        Uuid, ForeignKey("chats.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at = Column(DateTime(timezone=True), default=func.now())
