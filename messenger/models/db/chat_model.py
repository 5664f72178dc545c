import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid, func

from messenger.database import Base


class ChatModel(Base):
    """SQLAlchemy model for chats table."""

    __tablename__ = "chats"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(String(10), nullable=False)
    name = Column(String(255), nullable=True)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    # Sorted "<id>:<id>" of both participants, set for private chats only
    pair_key = Column(String(80), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    # Constraints (enforced by database CHECK constraints in migrations)
    # type IN ('private', 'group')
    # type = 'group' => name IS NOT NULL AND owner_id IS NOT NULL
