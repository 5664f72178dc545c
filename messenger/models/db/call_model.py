import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Uuid, func, text

from messenger.database import Base

ONGOING_ONLY = text("status = 'ongoing'")


class CallModel(Base):
    """SQLAlchemy model for calls table."""

    __tablename__ = "calls"
    __table_args__ = (
        # At most one ongoing call per chat
        Index(
            "uq_calls_ongoing_chat",
            "chat_id",
            unique=True,
            postgresql_where=ONGOING_ONLY,
            sqlite_where=ONGOING_ONLY,
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    chat_id = Column(
        Uuid, ForeignKey("chats.id", ondelete="SET NULL"), nullable=True
    )
    caller_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="ongoing")
    start_time = Column(DateTime(timezone=True), default=func.now())
    end_time = Column(DateTime(timezone=True), nullable=True)

    # Constraints (enforced by database CHECK constraints in migrations)
    # status IN ('ongoing', 'ended', 'missed', 'rejected')


class ActiveCallSlotModel(Base):
    """SQLAlchemy model for active_call_slots table.

    One row per participant of an ongoing call. The primary key on
    ``user_id`` is what guarantees a single ongoing call per identity.
    """

    __tablename__ = "active_call_slots"

    user_id = Column(Uuid, ForeignKey("users.id"), primary_key=True)
    call_id = Column(
        Uuid, ForeignKey("calls.id", ondelete="CASCADE"), nullable=False, index=True
    )
