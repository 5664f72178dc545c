from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from messenger.models.api.calls import CallResponse, CallStatus
from messenger.models.db.call_model import ActiveCallSlotModel, CallModel
from messenger.repositories.base_repository import BaseRepository


class CallRepository(BaseRepository[CallModel, CallResponse]):
    """Repository for calls and the active-call slots that guard them."""

    conflict_message = "A participant or the chat already has an ongoing call"

    def __init__(self, db: AsyncSession):
        super().__init__(db, CallModel)

    async def list_for_user(
        self, user_id: UUID, limit: int = 50, offset: int = 0
    ) -> List[CallResponse]:
        query = (
            select(self.model_class)
            .where(
                or_(
                    self.model_class.caller_id == user_id,
                    self.model_class.receiver_id == user_id,
                )
            )
            .order_by(self.model_class.start_time.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        db_models = result.scalars().all()
        return [self._to_pydantic(db_model) for db_model in db_models]

    async def create_ongoing(
        self,
        caller_id: UUID,
        receiver_id: UUID,
        chat_id: Optional[UUID],
        start_time: datetime,
    ) -> CallResponse:
        """Insert an ongoing call and claim one slot per participant.

        Fails with ConflictError when either participant already holds a slot
        or the chat already has an ongoing call. Both checks are constraints,
        so they hold under concurrent requests.
        """
        db_model = CallModel(
            id=uuid4(),
            chat_id=chat_id,
            caller_id=caller_id,
            receiver_id=receiver_id,
            status=CallStatus.ONGOING.value,
            start_time=start_time,
        )
        self.db.add(db_model)
        await self._flush()

        await self._insert_rows(
            ActiveCallSlotModel,
            [
                {"user_id": user_id, "call_id": db_model.id}
                for user_id in (caller_id, receiver_id)
            ],
        )
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model)

    async def finish(
        self, call_id: UUID, status: CallStatus, end_time: datetime
    ) -> bool:
        """Move an ongoing call to a terminal status and free its slots.

        The update only matches rows still ``ongoing``, so a terminal call is
        never transitioned twice. Returns False when nothing was updated.
        """
        result = await self.db.execute(
            update(self.model_class)
            .where(
                self.model_class.id == call_id,
                self.model_class.status == CallStatus.ONGOING.value,
            )
            .values(status=status.value, end_time=end_time)
        )
        if not result.rowcount:
            return False

        await self.release_slots(call_id)
        return True

    async def release_slots(self, call_id: UUID) -> None:
        await self.db.execute(
            delete(ActiveCallSlotModel).where(ActiveCallSlotModel.call_id == call_id)
        )

    async def delete_call(self, call_id: UUID) -> bool:
        await self.release_slots(call_id)
        result = await self.db.execute(
            delete(self.model_class).where(self.model_class.id == call_id)
        )
        return bool(result.rowcount)

    def _to_pydantic(self, db_model: Any) -> CallResponse:
        """Convert SQLAlchemy CallModel to Pydantic CallResponse."""
        return CallResponse(
            id=db_model.id,
            chat_id=db_model.chat_id,
            caller_id=db_model.caller_id,
            receiver_id=db_model.receiver_id,
            status=db_model.status,
            start_time=db_model.start_time,
            end_time=db_model.end_time,
        )
