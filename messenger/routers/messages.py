from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from messenger.database import get_db
from messenger.dependencies import get_active_identity
from messenger.models.api.base import DetailResponse
from messenger.models.api.messages import (
    MessageReceiptResponse,
    MessageResponse,
    SendMessageRequest,
    UpdateMessageRequest,
    UpdateMessageStatusRequest,
)
from messenger.models.api.users import UserResponse
from messenger.services.message_service import MessageService

router = APIRouter()


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    request: SendMessageRequest,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Send a message to a chat the caller participates in."""
    service = MessageService(db)
    return await service.send_message(user, request)


@router.get("", response_model=List[MessageResponse])
async def list_messages(
    chat_id: Optional[UUID] = Query(None, description="Only messages of this chat"),
    limit: int = Query(
        50, description="Maximum number of messages to return", ge=1, le=1000
    ),
    offset: int = Query(0, description="Number of messages to skip", ge=0),
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> List[MessageResponse]:
    """
    List messages, newest first.

    Query parameters:
    - chat_id: Restrict to one chat (default: every chat of the caller)
    - limit: Maximum number of messages to return (default: 50, max: 1000)
    - offset: Number of messages to skip (default: 0)
    """
    service = MessageService(db)
    return await service.list_messages(
        user, chat_id=chat_id, limit=limit, offset=offset
    )


@router.get("/{message_id}", response_model=MessageResponse)
async def get_message(
    message_id: UUID,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    service = MessageService(db)
    return await service.get_message(user, message_id)


@router.put("/{message_id}", response_model=MessageResponse)
async def update_message(
    message_id: UUID,
    request: UpdateMessageRequest,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    service = MessageService(db)
    return await service.update_message(user, message_id, request)


@router.put("/{message_id}/status", response_model=MessageReceiptResponse)
async def update_message_status(
    message_id: UUID,
    request: UpdateMessageStatusRequest,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> MessageReceiptResponse:
    """Mark a received message as delivered or read."""
    service = MessageService(db)
    return await service.update_status(user, message_id, request)


@router.delete("/{message_id}", response_model=DetailResponse)
async def delete_message(
    message_id: UUID,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> DetailResponse:
    service = MessageService(db)
    await service.delete_message(user, message_id)
    return DetailResponse(message="Message deleted successfully")
