import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Uuid, func

from messenger.database import Base


class OtpModel(Base):
    """SQLAlchemy model for otps table."""

    __tablename__ = "otps"
    __table_args__ = (Index("idx_otps_user_code", "user_id", "code"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())
