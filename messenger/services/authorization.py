"""Authorization decisions for chat, message, call and profile operations.

``can_act`` is a pure function over already-loaded data: it never touches the
database. Services load the target resource, ask for a decision and call
``Decision.raise_if_denied`` (or ``ensure_can_act``) before mutating anything.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Type
from uuid import UUID

from messenger.errors import BadRequestError, ForbiddenError, ServiceError
from messenger.models.api.calls import CallResponse
from messenger.models.api.chats import ChatResponse, ChatType
from messenger.models.api.messages import MessageResponse
from messenger.models.api.users import Role, UserResponse


class Action(str, Enum):
    CHAT_READ = "chat:read"
    CHAT_RENAME = "chat:rename"
    CHAT_MANAGE_PARTICIPANTS = "chat:manage_participants"
    CHAT_DELETE = "chat:delete"
    MESSAGE_SEND = "message:send"
    MESSAGE_LIST = "message:list"
    MESSAGE_READ = "message:read"
    MESSAGE_UPDATE = "message:update"
    MESSAGE_DELETE = "message:delete"
    MESSAGE_MARK_STATUS = "message:mark_status"
    CALL_START = "call:start"
    CALL_READ = "call:read"
    CALL_END = "call:end"
    CALL_REJECT = "call:reject"
    CALL_MISS = "call:miss"
    CALL_DELETE = "call:delete"
    PROFILE_UPDATE = "profile:update"
    PROFILE_DELETE = "profile:delete"


@dataclass(frozen=True)
class Resource:
    """The data a decision needs. Only the fields relevant to the action are set."""

    chat: Optional[ChatResponse] = None
    message: Optional[MessageResponse] = None
    call: Optional[CallResponse] = None
    owner_id: Optional[UUID] = None
    receiver_id: Optional[UUID] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""
    error: Type[ServiceError] = ForbiddenError

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(
        cls, reason: str, error: Type[ServiceError] = ForbiddenError
    ) -> "Decision":
        return cls(allowed=False, reason=reason, error=error)

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise self.error(self.reason)


def _is_admin(actor: UserResponse) -> bool:
    return actor.role == Role.ADMIN


def _require_chat(resource: Resource) -> ChatResponse:
    if resource.chat is None:
        raise ValueError("Chat is required for this action")
    return resource.chat


def _membership(actor: UserResponse, chat: ChatResponse) -> Decision:
    if not chat.has_participant(actor.id):
        return Decision.deny("You are not a participant of this chat")
    return Decision.allow()


def _chat_decision(actor: UserResponse, action: Action, chat: ChatResponse) -> Decision:
    is_private = chat.type == ChatType.PRIVATE

    if action is Action.CHAT_RENAME and is_private:
        return Decision.deny("Private chats cannot be renamed")
    if action is Action.CHAT_MANAGE_PARTICIPANTS and is_private:
        return Decision.deny("Participants of a private chat cannot be changed")

    membership = _membership(actor, chat)
    if not membership.allowed or action is Action.CHAT_READ:
        return membership
    if action is Action.CHAT_DELETE and is_private:
        return membership

    # Rename, participant changes and group deletion
    if chat.owner_id != actor.id and not _is_admin(actor):
        return Decision.deny("Only the owner can update a group chat")
    return Decision.allow()


def _message_decision(
    actor: UserResponse, action: Action, resource: Resource
) -> Decision:
    if action in (Action.MESSAGE_SEND, Action.MESSAGE_LIST, Action.MESSAGE_READ):
        return _membership(actor, _require_chat(resource))

    message = resource.message
    if message is None:
        raise ValueError("Message is required for this action")

    if action in (Action.MESSAGE_UPDATE, Action.MESSAGE_DELETE):
        if message.sender_id != actor.id and not _is_admin(actor):
            return Decision.deny("You can only modify your own messages")
        return Decision.allow()

    # MESSAGE_MARK_STATUS
    membership = _membership(actor, _require_chat(resource))
    if not membership.allowed:
        return membership
    if message.sender_id == actor.id:
        return Decision.deny(
            "Cannot update status of your own message", error=BadRequestError
        )
    return Decision.allow()


def _call_decision(actor: UserResponse, action: Action, resource: Resource) -> Decision:
    if action is Action.CALL_START:
        if resource.receiver_id is None:
            raise ValueError("Receiver is required to start a call")
        if resource.receiver_id == actor.id:
            return Decision.deny("You cannot call yourself", error=BadRequestError)
        if resource.chat is None:
            return Decision.allow()
        membership = _membership(actor, resource.chat)
        if not membership.allowed:
            return membership
        if not resource.chat.has_participant(resource.receiver_id):
            return Decision.deny(
                "Receiver is not a participant of this chat", error=BadRequestError
            )
        return Decision.allow()

    call = resource.call
    if call is None:
        raise ValueError("Call is required for this action")

    if call.involves(actor.id):
        return Decision.allow()
    if action is Action.CALL_DELETE and _is_admin(actor):
        return Decision.allow()
    return Decision.deny("You are not a participant of this call")


def _profile_decision(
    actor: UserResponse, action: Action, resource: Resource
) -> Decision:
    if _is_admin(actor):
        return Decision.allow()
    if action is Action.PROFILE_UPDATE and resource.owner_id == actor.id:
        return Decision.allow()
    if action is Action.PROFILE_DELETE:
        return Decision.deny("Only an admin can delete a profile")
    return Decision.deny("You can only update your own profile")


def can_act(actor: UserResponse, action: Action, resource: Resource) -> Decision:
    """Decide whether ``actor`` may perform ``action`` on ``resource``.

    Moderators currently carry no rights beyond a regular user.
    """
    if action.value.startswith("chat:"):
        return _chat_decision(actor, action, _require_chat(resource))
    if action.value.startswith("message:"):
        return _message_decision(actor, action, resource)
    if action.value.startswith("call:"):
        return _call_decision(actor, action, resource)
    return _profile_decision(actor, action, resource)


def ensure_can_act(actor: UserResponse, action: Action, resource: Resource) -> None:
    """Raise the decision's error if the action is denied."""
    can_act(actor, action, resource).raise_if_denied()
