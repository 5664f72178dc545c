from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from messenger.database import get_db
from messenger.dependencies import get_active_identity
from messenger.models.api.base import DetailResponse
from messenger.models.api.profiles import (
    CreateProfileRequest,
    ProfileResponse,
    UpdateProfileRequest,
)
from messenger.models.api.users import UserResponse
from messenger.services.profile_service import ProfileService

router = APIRouter()


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    request: CreateProfileRequest,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    """Create the caller's own profile."""
    service = ProfileService(db)
    return await service.create_profile(user, request)


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    limit: int = Query(
        100, description="Maximum number of profiles to return", ge=1, le=1000
    ),
    offset: int = Query(0, description="Number of profiles to skip", ge=0),
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> List[ProfileResponse]:
    service = ProfileService(db)
    return await service.list_profiles(limit=limit, offset=offset)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: UUID,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    service = ProfileService(db)
    return await service.get_profile(user_id)


@router.put("/{user_id}", response_model=ProfileResponse)
async def update_profile(
    user_id: UUID,
    request: UpdateProfileRequest,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    """Update a profile. Only the owner or an admin may do this."""
    service = ProfileService(db)
    return await service.update_profile(user, user_id, request)


@router.delete("/{user_id}", response_model=DetailResponse)
async def delete_profile(
    user_id: UUID,
    user: UserResponse = Depends(get_active_identity),
    db: AsyncSession = Depends(get_db),
) -> DetailResponse:
    """Delete a profile (admin only)."""
    service = ProfileService(db)
    await service.delete_profile(user, user_id)
    return DetailResponse(message="User profile deleted successfully")
