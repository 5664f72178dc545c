from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid, func

from messenger.database import Base


class RevokedRefreshTokenModel(Base):
    """SQLAlchemy model for revoked_refresh_tokens table.

    The primary key on ``jti`` makes revocation a single atomic insert: a
    refresh token can be rotated or logged out at most once.
    """

    __tablename__ = "revoked_refresh_tokens"

    jti = Column(String(64), primary_key=True)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), default=func.now())
