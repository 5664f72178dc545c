from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from messenger.database import get_db
from messenger.dependencies import get_active_identity
from messenger.models.api.base import DetailResponse
from messenger.models.api.calls import CallResponse, StartCallRequest
from messenger.models.api.users import UserResponse
from messenger.services.call_service import CallService

router = APIRouter()


@router.post("", response_model=CallResponse, status_code=status.HTTP_201_CREATED)
async def start_call(
    request: StartCallRequest,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> CallResponse:
    """Start a call. Fails with 409 if either side is already in a call."""
    service = CallService(db)
    return await service.start_call(user, request)


@router.get("", response_model=List[CallResponse])
async def list_calls(
    limit: int = Query(
        50, description="Maximum number of calls to return", ge=1, le=1000
    ),
    offset: int = Query(0, description="Number of calls to skip", ge=0),
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> List[CallResponse]:
    service = CallService(db)
    return await service.list_calls(user, limit=limit, offset=offset)


@router.get("/{call_id}", response_model=CallResponse)
async def get_call(
    call_id: UUID,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> CallResponse:
    service = CallService(db)
    return await service.get_call(user, call_id)


@router.put("/{call_id}/end", response_model=CallResponse)
async def end_call(
    call_id: UUID,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> CallResponse:
    service = CallService(db)
    return await service.end_call(user, call_id)


@router.put("/{call_id}/reject", response_model=CallResponse)
async def reject_call(
    call_id: UUID,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> CallResponse:
    service = CallService(db)
    return await service.reject_call(user, call_id)


@router.put("/{call_id}/miss", response_model=CallResponse)
async def miss_call(
    call_id: UUID,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> CallResponse:
    service = CallService(db)
    return await service.miss_call(user, call_id)


@router.delete("/{call_id}", response_model=DetailResponse)
async def delete_call(
    call_id: UUID,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> DetailResponse:
    service = CallService(db)
    await service.delete_call(user, call_id)
    return DetailResponse(message="Call deleted successfully")
