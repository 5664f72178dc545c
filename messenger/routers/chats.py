from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from messenger.database import get_db
from messenger.dependencies import get_active_identity
from messenger.models.api.base import DetailResponse
from messenger.models.api.chats import (
    ChatResponse,
    CreateChatRequest,
    UpdateChatRequest,
)
from messenger.models.api.users import UserResponse
from messenger.services.chat_service import ChatService

router = APIRouter()


@router.post("", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(
    request: CreateChatRequest,
    response: Response,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> ChatResponse:
    """
    Create a private or group chat.

    Creating a private chat that already exists for the same pair returns the
    existing chat with status 200.
    """
    service = ChatService(db)
    chat, created = await service.create_chat(user, request)
    if not created:
        response.status_code = status.HTTP_200_OK
    return chat


@router.get("", response_model=List[ChatResponse])
async def list_chats(
    limit: int = Query(
        50, description="Maximum number of chats to return", ge=1, le=1000
    ),
    offset: int = Query(0, description="Number of chats to skip", ge=0),
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> List[ChatResponse]:
    """List the chats the caller participates in, most recently active first."""
    service = ChatService(db)
    return await service.list_chats(user, limit=limit, offset=offset)


@router.get("/{chat_id}", response_model=ChatResponse)
async def get_chat(
    chat_id: UUID,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> ChatResponse:
    service = ChatService(db)
    return await service.get_chat(user, chat_id)


@router.put("/{chat_id}", response_model=ChatResponse)
async def update_chat(
    chat_id: UUID,
    request: UpdateChatRequest,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> ChatResponse:
    """Rename a group chat or replace its participants (owner or admin only)."""
    service = ChatService(db)
    return await service.update_chat(user, chat_id, request)


@router.delete("/{chat_id}", response_model=DetailResponse)
async def delete_chat(
    chat_id: UUID,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> DetailResponse:
    service = ChatService(db)
    await service.delete_chat(user, chat_id)
    return DetailResponse(message="Chat deleted successfully")
