from typing import Iterable, List, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from messenger.database import atomic
from messenger.errors import BadRequestError, ConflictError, NotFoundError
from messenger.logging import get_logger
from messenger.models.api.chats import (
    ChatResponse,
    ChatType,
    CreateChatRequest,
    UpdateChatRequest,
)
from messenger.models.api.users import UserResponse
from messenger.repositories.chat_repository import ChatRepository, private_pair_key
from messenger.repositories.user_repository import UserRepository
from messenger.services.authorization import Action, Resource, ensure_can_act
from messenger.services.otp_service import utcnow

logger = get_logger(__name__)


class ChatService:
    """Service for creating and managing private and group chats."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.chat_repo = ChatRepository(db)
        self.user_repo = UserRepository(db)

    async def create_chat(
        self, actor: UserResponse, request: CreateChatRequest
    ) -> Tuple[ChatResponse, bool]:
        """Create a chat with the actor as a participant.

        Returns the chat and whether it was newly created. A private chat for
        a pair that already has one is returned as is.
        """
        participants = list(dict.fromkeys([actor.id, *request.participants]))

        if request.type == ChatType.PRIVATE:
            if len(participants) != 2:
                raise BadRequestError("Private chat must have exactly 2 participants")
            await self._ensure_users_exist(participants)
            return await self._get_or_create_private(participants)

        name = (request.name or "").strip()
        if not name:
            raise BadRequestError("Group chat must have a name")
        await self._ensure_users_exist(participants)

        async with atomic(self.db):
            chat = await self.chat_repo.create_chat(
                ChatType.GROUP, participants, name=name, owner_id=actor.id
            )
        logger.info(
            "chat_created",
            chat_id=str(chat.id),
            type=chat.type.value,
            participants=len(participants),
        )
        return chat, True

    async def list_chats(
        self, actor: UserResponse, limit: int = 50, offset: int = 0
    ) -> List[ChatResponse]:
        return await self.chat_repo.list_for_user(actor.id, limit=limit, offset=offset)

    async def get_chat(self, actor: UserResponse, chat_id: UUID) -> ChatResponse:
        chat = await self._get_or_404(chat_id)
        ensure_can_act(actor, Action.CHAT_READ, Resource(chat=chat))
        return chat

    async def update_chat(
        self, actor: UserResponse, chat_id: UUID, request: UpdateChatRequest
    ) -> ChatResponse:
        """Rename a group chat and/or replace its participants.

        The owner always stays a participant.
        """
        if request.name is None and request.participants is None:
            raise BadRequestError("Nothing to update")

        chat = await self._get_or_404(chat_id)
        resource = Resource(chat=chat)

        if request.name is not None:
            ensure_can_act(actor, Action.CHAT_RENAME, resource)
            if not request.name.strip():
                raise BadRequestError("Group chat must have a name")
        if request.participants is not None:
            ensure_can_act(actor, Action.CHAT_MANAGE_PARTICIPANTS, resource)

        participants: List[UUID] = []
        if request.participants is not None:
            participants = list(dict.fromkeys([chat.owner_id, *request.participants]))
            await self._ensure_users_exist(participants)

        async with atomic(self.db):
            if request.name is not None:
                await self.chat_repo.update_name(chat_id, request.name.strip())
            if request.participants is not None:
                await self.chat_repo.replace_participants(chat_id, participants)
            await self.chat_repo.touch(chat_id, utcnow())

        logger.info("chat_updated", chat_id=str(chat_id), actor_id=str(actor.id))
        return await self._get_or_404(chat_id)

    async def delete_chat(self, actor: UserResponse, chat_id: UUID) -> None:
        chat = await self._get_or_404(chat_id)
        ensure_can_act(actor, Action.CHAT_DELETE, Resource(chat=chat))

        async with atomic(self.db):
            await self.chat_repo.delete_chat(chat_id)
        logger.info("chat_deleted", chat_id=str(chat_id), actor_id=str(actor.id))

    async def _get_or_create_private(
        self, participants: List[UUID]
    ) -> Tuple[ChatResponse, bool]:
        pair_key = private_pair_key(participants[0], participants[1])

        existing = await self.chat_repo.get_private_by_pair(pair_key)
        if existing is not None:
            return existing, False

        try:
            async with atomic(self.db):
                chat = await self.chat_repo.create_chat(
                    ChatType.PRIVATE, participants, pair_key=pair_key
                )
        except ConflictError:
            # Lost the race to a concurrent request for the same pair
            existing = await self.chat_repo.get_private_by_pair(pair_key)
            if existing is None:
                raise
            return existing, False

        logger.info("chat_created", chat_id=str(chat.id), type=chat.type.value)
        return chat, True

    async def _ensure_users_exist(self, user_ids: Iterable[UUID]) -> None:
        wanted = set(user_ids)
        found = await self.user_repo.existing_ids(wanted)
        if found != wanted:
            raise NotFoundError("One or more participants not found")

    async def _get_or_404(self, chat_id: UUID) -> ChatResponse:
        chat = await self.chat_repo.get_by_id(chat_id)
        if chat is None:
            raise NotFoundError("Chat not found")
        return chat
