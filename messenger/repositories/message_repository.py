from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from messenger.errors import ConflictError
from messenger.models.api.messages import (
    MessageReceiptResponse,
    MessageResponse,
    MessageStatus,
    MessageType,
)
from messenger.models.db.message_model import MessageModel, MessageReceiptModel
from messenger.models.db.participant_model import ChatParticipantModel
from messenger.repositories.base_repository import BaseRepository


class MessageRepository(BaseRepository[MessageModel, MessageResponse]):
    """Repository for message operations. Soft-deleted messages are hidden."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, MessageModel)

    def _live(self) -> Any:
        return (
            select(self.model_class)
            .where(self.model_class.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )

    async def get_by_id(self, id: UUID) -> Optional[MessageResponse]:
        result = await self.db.execute(self._live().where(self.model_class.id == id))
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def get_by_chat(
        self, chat_id: UUID, limit: int = 50, offset: int = 0
    ) -> List[MessageResponse]:
        """Get messages for a chat, newest first."""
        query = (
            self._live()
            .where(self.model_class.chat_id == chat_id)
            .order_by(self.model_class.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        db_models = result.scalars().all()
        return [self._to_pydantic(db_model) for db_model in db_models]

    async def get_for_user(
        self, user_id: UUID, limit: int = 50, offset: int = 0
    ) -> List[MessageResponse]:
        """Get messages across every chat the user participates in."""
        query = (
            self._live()
            .join(
                ChatParticipantModel,
                ChatParticipantModel.chat_id == self.model_class.chat_id,
            )
            .where(ChatParticipantModel.user_id == user_id)
            .order_by(self.model_class.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        db_models = result.scalars().all()
        return [self._to_pydantic(db_model) for db_model in db_models]

    async def create_message(
        self, chat_id: UUID, sender_id: UUID, content: str, message_type: MessageType
    ) -> MessageResponse:
        db_model = MessageModel(
            id=uuid4(),
            chat_id=chat_id,
            sender_id=sender_id,
            content=content,
            type=message_type.value,
        )
        self.db.add(db_model)
        await self._flush()
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model)

    async def update_content(
        self, message_id: UUID, content: str
    ) -> Optional[MessageResponse]:
        db_model = await self._get_model(message_id, for_update=True)
        if db_model is None or db_model.deleted_at is not None:
            return None

        db_model.content = content
        await self._flush()
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model)

    async def soft_delete(self, message_id: UUID, deleted_at: datetime) -> bool:
        result = await self.db.execute(
            update(self.model_class)
            .where(
                self.model_class.id == message_id,
                self.model_class.deleted_at.is_(None),
            )
            .values(deleted_at=deleted_at)
        )
        return bool(result.rowcount)

    async def upsert_receipt(
        self, message_id: UUID, user_id: UUID, status: MessageStatus
    ) -> MessageReceiptResponse:
        """Record the delivery/read status of a message for one recipient.

        Two requests may both find no receipt and race to insert one. The
        insert runs in a savepoint, so the loser falls back to updating the
        row the winner wrote without aborting the surrounding transaction.
        """
        receipt = await self._get_receipt(message_id, user_id)
        if receipt is None:
            try:
                async with self.db.begin_nested():
                    receipt = MessageReceiptModel(
                        id=uuid4(),
                        message_id=message_id,
                        user_id=user_id,
                        status=status.value,
                    )
                    self.db.add(receipt)
                    await self._flush()
            except ConflictError:
                receipt = await self._get_receipt(message_id, user_id)
                if receipt is None:
                    raise

        # A read message never goes back to merely delivered
        if receipt.status != MessageStatus.READ.value:
            receipt.status = status.value

        await self._flush()
        await self.db.refresh(receipt)
        return MessageReceiptResponse(
            message_id=receipt.message_id,
            user_id=receipt.user_id,
            status=receipt.status,
            updated_at=receipt.updated_at,
        )

    async def _get_receipt(self, message_id: UUID, user_id: UUID) -> Any:
        query = (
            select(MessageReceiptModel)
            .where(
                MessageReceiptModel.message_id == message_id,
                MessageReceiptModel.user_id == user_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    def _to_pydantic(self, db_model: Any) -> MessageResponse:
        """Convert SQLAlchemy MessageModel to Pydantic MessageResponse."""
        return MessageResponse(
            id=db_model.id,
            chat_id=db_model.chat_id,
            sender_id=db_model.sender_id,
            content=db_model.content,
            type=db_model.type,
            created_at=db_model.created_at,
            updated_at=db_model.updated_at,
        )

