from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from messenger.database import atomic
from messenger.errors import BadRequestError, NotFoundError
from messenger.logging import get_logger
from messenger.models.api.calls import CallResponse, CallStatus, StartCallRequest
from messenger.models.api.users import UserResponse
from messenger.repositories.call_repository import CallRepository
from messenger.repositories.chat_repository import ChatRepository
from messenger.repositories.user_repository import UserRepository
from messenger.services.authorization import Action, Resource, ensure_can_act
from messenger.services.otp_service import utcnow

logger = get_logger(__name__)

TRANSITION_ACTIONS = {
    CallStatus.ENDED: Action.CALL_END,
    CallStatus.REJECTED: Action.CALL_REJECT,
    CallStatus.MISSED: Action.CALL_MISS,
}


class CallService:
    """Service for the call lifecycle.

    A user takes part in at most one ongoing call and a chat hosts at most one
    ongoing call. Both rules are database constraints checked when the call
    is inserted, so concurrent starts cannot both succeed.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.call_repo = CallRepository(db)
        self.chat_repo = ChatRepository(db)
        self.user_repo = UserRepository(db)

    async def start_call(
        self, actor: UserResponse, request: StartCallRequest
    ) -> CallResponse:
        receiver = await self.user_repo.get_by_id(request.receiver_id)
        if receiver is None:
            raise NotFoundError("Receiver not found")

        chat = None
        if request.chat_id is not None:
            chat = await self.chat_repo.get_by_id(request.chat_id)
            if chat is None:
                raise NotFoundError("Chat not found")

        ensure_can_act(
            actor, Action.CALL_START, Resource(chat=chat, receiver_id=receiver.id)
        )

        # Raises ConflictError if either side or the chat is already in a call
        async with atomic(self.db):
            call = await self.call_repo.create_ongoing(
                caller_id=actor.id,
                receiver_id=receiver.id,
                chat_id=request.chat_id,
                start_time=utcnow(),
            )

        logger.info(
            "call_started",
            call_id=str(call.id),
            caller_id=str(actor.id),
            receiver_id=str(receiver.id),
        )
        return call

    async def list_calls(
        self, actor: UserResponse, limit: int = 50, offset: int = 0
    ) -> List[CallResponse]:
        return await self.call_repo.list_for_user(actor.id, limit=limit, offset=offset)

    async def get_call(self, actor: UserResponse, call_id: UUID) -> CallResponse:
        call = await self._get_or_404(call_id)
        ensure_can_act(actor, Action.CALL_READ, Resource(call=call))
        return call

    async def end_call(self, actor: UserResponse, call_id: UUID) -> CallResponse:
        return await self._transition(actor, call_id, CallStatus.ENDED)

    async def reject_call(self, actor: UserResponse, call_id: UUID) -> CallResponse:
        return await self._transition(actor, call_id, CallStatus.REJECTED)

    async def miss_call(self, actor: UserResponse, call_id: UUID) -> CallResponse:
        return await self._transition(actor, call_id, CallStatus.MISSED)

    async def delete_call(self, actor: UserResponse, call_id: UUID) -> None:
        call = await self._get_or_404(call_id)
        ensure_can_act(actor, Action.CALL_DELETE, Resource(call=call))

        async with atomic(self.db):
            await self.call_repo.delete_call(call_id)
        logger.info("call_deleted", call_id=str(call_id), actor_id=str(actor.id))

    async def _transition(
        self, actor: UserResponse, call_id: UUID, status: CallStatus
    ) -> CallResponse:
        """Move an ongoing call to a terminal status.

        Raises:
            BadRequestError: If the call is already terminal, including when a
                concurrent request finished it first
        """
        call = await self._get_or_404(call_id)
        ensure_can_act(actor, TRANSITION_ACTIONS[status], Resource(call=call))
        if call.status.is_terminal:
            raise BadRequestError(f"Call is already {call.status.value}")

        async with atomic(self.db):
            finished = await self.call_repo.finish(call_id, status, utcnow())

        updated = await self._get_or_404(call_id)
        if not finished:
            raise BadRequestError(f"Call is already {updated.status.value}")

        logger.info("call_finished", call_id=str(call_id), status=status.value)
        return updated

    async def _get_or_404(self, call_id: UUID) -> CallResponse:
        call = await self.call_repo.get_by_id(call_id)
        if call is None:
            raise NotFoundError("Call not found")
        return call
