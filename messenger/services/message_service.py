from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from messenger.database import atomic
from messenger.errors import BadRequestError, NotFoundError
from messenger.logging import get_logger
from messenger.models.api.chats import ChatResponse
from messenger.models.api.messages import (
    MessageReceiptResponse,
    MessageResponse,
    MessageStatus,
    SendMessageRequest,
    UpdateMessageRequest,
    UpdateMessageStatusRequest,
)
from messenger.models.api.users import UserResponse
from messenger.repositories.chat_repository import ChatRepository
from messenger.repositories.message_repository import MessageRepository
from messenger.services.authorization import Action, Resource, ensure_can_act
from messenger.services.otp_service import utcnow

logger = get_logger(__name__)


class MessageService:
    """Service for sending, reading and modifying chat messages."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.message_repo = MessageRepository(db)
        self.chat_repo = ChatRepository(db)

    async def send_message(
        self, actor: UserResponse, request: SendMessageRequest
    ) -> MessageResponse:
        """
        Send a message into a chat:
        1. Check the chat exists and the actor is a participant
        2. Store the message
        3. Bump the chat so it sorts as recently active
        """
        chat = await self._get_chat_or_404(request.chat_id)
        ensure_can_act(actor, Action.MESSAGE_SEND, Resource(chat=chat))

        if not request.content.strip():
            raise BadRequestError("Message content is required")

        async with atomic(self.db):
            message = await self.message_repo.create_message(
                chat.id, actor.id, request.content, request.type
            )
            await self.chat_repo.touch(chat.id, utcnow())

        logger.info(
            "message_sent",
            message_id=str(message.id),
            chat_id=str(chat.id),
            sender_id=str(actor.id),
        )
        return message

    async def list_messages(
        self,
        actor: UserResponse,
        chat_id: Optional[UUID] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[MessageResponse]:
        """List messages of one chat, or of every chat the actor belongs to."""
        if chat_id is None:
            return await self.message_repo.get_for_user(
                actor.id, limit=limit, offset=offset
            )

        chat = await self._get_chat_or_404(chat_id)
        ensure_can_act(actor, Action.MESSAGE_LIST, Resource(chat=chat))
        return await self.message_repo.get_by_chat(chat_id, limit=limit, offset=offset)

    async def get_message(
        self, actor: UserResponse, message_id: UUID
    ) -> MessageResponse:
        message, chat = await self._get_with_chat(message_id)
        ensure_can_act(actor, Action.MESSAGE_READ, Resource(chat=chat, message=message))
        return message

    async def update_message(
        self, actor: UserResponse, message_id: UUID, request: UpdateMessageRequest
    ) -> MessageResponse:
        message = await self._get_or_404(message_id)
        ensure_can_act(actor, Action.MESSAGE_UPDATE, Resource(message=message))

        if not request.content.strip():
            raise BadRequestError("Message content is required")

        async with atomic(self.db):
            updated = await self.message_repo.update_content(
                message_id, request.content
            )
        if updated is None:
            raise NotFoundError("Message not found")
        return updated

    async def update_status(
        self,
        actor: UserResponse,
        message_id: UUID,
        request: UpdateMessageStatusRequest,
    ) -> MessageReceiptResponse:
        """Mark a message delivered or read for the acting recipient."""
        try:
            status = MessageStatus(request.status)
        except ValueError as e:
            raise BadRequestError("Invalid message status") from e

        message, chat = await self._get_with_chat(message_id)
        ensure_can_act(
            actor, Action.MESSAGE_MARK_STATUS, Resource(chat=chat, message=message)
        )

        async with atomic(self.db):
            receipt = await self.message_repo.upsert_receipt(
                message_id, actor.id, status
            )
        logger.info(
            "message_status_updated",
            message_id=str(message_id),
            user_id=str(actor.id),
            status=receipt.status.value,
        )
        return receipt

    async def delete_message(self, actor: UserResponse, message_id: UUID) -> None:
        message = await self._get_or_404(message_id)
        ensure_can_act(actor, Action.MESSAGE_DELETE, Resource(message=message))

        async with atomic(self.db):
            deleted = await self.message_repo.soft_delete(message_id, utcnow())
        if not deleted:
            raise NotFoundError("Message not found")
        logger.info(
            "message_deleted", message_id=str(message_id), actor_id=str(actor.id)
        )

    async def _get_with_chat(
        self, message_id: UUID
    ) -> Tuple[MessageResponse, ChatResponse]:
        message = await self._get_or_404(message_id)
        chat = await self._get_chat_or_404(message.chat_id)
        return message, chat

    async def _get_or_404(self, message_id: UUID) -> MessageResponse:
        message = await self.message_repo.get_by_id(message_id)
        if message is None:
            raise NotFoundError("Message not found")
        return message

    async def _get_chat_or_404(self, chat_id: UUID) -> ChatResponse:
        chat = await self.chat_repo.get_by_id(chat_id)
        if chat is None:
            raise NotFoundError("Chat not found")
        return chat
