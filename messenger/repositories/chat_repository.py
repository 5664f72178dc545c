from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from messenger.errors import NotFoundError
from messenger.models.api.chats import ChatResponse, ChatType
from messenger.models.db.chat_model import ChatModel
from messenger.models.db.message_model import MessageModel
from messenger.models.db.participant_model import ChatParticipantModel
from messenger.repositories.base_repository import BaseRepository


def private_pair_key(first: UUID, second: UUID) -> str:
    """Order-independent key identifying the private chat between two users."""
    return ":".join(sorted((str(first), str(second))))


class ChatRepository(BaseRepository[ChatModel, ChatResponse]):
    """Repository for chat operations. Participants live in their own table."""

    conflict_message = "Chat already exists"

    def __init__(self, db: AsyncSession):
        super().__init__(db, ChatModel)

    async def get_by_id(self, id: UUID) -> Optional[ChatResponse]:
        """Get a chat by ID with its participant ids loaded."""
        db_model = await self._get_model(id)
        if db_model is None:
            return None
        participants = await self._participants_for([db_model.id])
        return self._to_pydantic(db_model, participants.get(db_model.id, []))

    async def get_private_by_pair(self, pair_key: str) -> Optional[ChatResponse]:
        query = select(self.model_class).where(self.model_class.pair_key == pair_key)
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        if db_model is None:
            return None
        participants = await self._participants_for([db_model.id])
        return self._to_pydantic(db_model, participants.get(db_model.id, []))

    async def list_for_user(
        self, user_id: UUID, limit: int = 50, offset: int = 0
    ) -> List[ChatResponse]:
        """List chats the user participates in, most recently active first."""
        query = (
            select(self.model_class)
            .join(
                ChatParticipantModel,
                ChatParticipantModel.chat_id == self.model_class.id,
            )
            .where(ChatParticipantModel.user_id == user_id)
            .order_by(self.model_class.updated_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        db_models = result.scalars().all()
        participants = await self._participants_for([m.id for m in db_models])
        return [
            self._to_pydantic(db_model, participants.get(db_model.id, []))
            for db_model in db_models
        ]

    async def create_chat(
        self,
        chat_type: ChatType,
        participants: Iterable[UUID],
        name: Optional[str] = None,
        owner_id: Optional[UUID] = None,
        pair_key: Optional[str] = None,
    ) -> ChatResponse:
        """Insert a chat and all of its participants.

        The unique ``pair_key`` makes a second private chat for the same pair
        fail at flush time with a ConflictError.
        """
        member_ids = list(dict.fromkeys(participants))
        db_model = ChatModel(
            id=uuid4(),
            type=chat_type.value,
            name=name,
            owner_id=owner_id,
            pair_key=pair_key,
        )
        self.db.add(db_model)
        await self._flush()

        await self._insert_rows(
            ChatParticipantModel,
            [{"chat_id": db_model.id, "user_id": user_id} for user_id in member_ids],
        )
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model, member_ids)

    async def update_name(self, chat_id: UUID, name: str) -> None:
        db_model = await self._get_model(chat_id, for_update=True)
        if db_model is None:
            raise NotFoundError("Chat not found")
        db_model.name = name
        await self._flush()
        await self.db.refresh(db_model)

    async def replace_participants(
        self, chat_id: UUID, participants: Iterable[UUID]
    ) -> None:
        await self.db.execute(
            delete(ChatParticipantModel).where(ChatParticipantModel.chat_id == chat_id)
        )
        await self._insert_rows(
            ChatParticipantModel,
            [
                {"chat_id": chat_id, "user_id": user_id}
                for user_id in dict.fromkeys(participants)
            ],
        )

    async def touch(self, chat_id: UUID, now: datetime) -> None:
        """Bump updated_at so the chat sorts as recently active."""
        await self.db.execute(
            update(self.model_class)
            .where(self.model_class.id == chat_id)
            .values(updated_at=now)
        )

    async def delete_chat(self, chat_id: UUID) -> bool:
        await self.db.execute(
            delete(MessageModel).where(MessageModel.chat_id == chat_id)
        )
        await self.db.execute(
            delete(ChatParticipantModel).where(ChatParticipantModel.chat_id == chat_id)
        )
        result = await self.db.execute(
            delete(self.model_class).where(self.model_class.id == chat_id)
        )
        return bool(result.rowcount)

    async def _participants_for(self, chat_ids: List[UUID]) -> Dict[UUID, List[UUID]]:
        if not chat_ids:
            return {}
        query = (
            select(ChatParticipantModel.chat_id, ChatParticipantModel.user_id)
            .where(ChatParticipantModel.chat_id.in_(chat_ids))
            .order_by(ChatParticipantModel.created_at)
        )
        result = await self.db.execute(query)
        participants: Dict[UUID, List[UUID]] = {}
        for chat_id, user_id in result.all():
            participants.setdefault(chat_id, []).append(user_id)
        return participants

    def _to_pydantic(  # type: ignore[override]
        self, db_model: Any, participants: Optional[List[UUID]] = None
    ) -> ChatResponse:
        """Convert SQLAlchemy ChatModel to Pydantic ChatResponse."""
        return ChatResponse(
            id=db_model.id,
            type=db_model.type,
            name=db_model.name,
            owner_id=db_model.owner_id,
            participants=participants or [],
            created_at=db_model.created_at,
            updated_at=db_model.updated_at,
        )
