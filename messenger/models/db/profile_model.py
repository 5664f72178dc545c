import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid, func

from messenger.database import Base


class UserProfileModel(Base):
    """SQLAlchemy model for user_profiles table."""

    __tablename__ = "user_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone_number = Column(String(32), nullable=True)
    address = Column(String(255), nullable=True)
    avatar_url = Column(String(512), nullable=True)
    status_message = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )
