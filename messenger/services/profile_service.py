from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from messenger.database import atomic
from messenger.errors import BadRequestError, ConflictError, NotFoundError
from messenger.logging import get_logger
from messenger.models.api.profiles import (
    CreateProfileRequest,
    ProfileResponse,
    UpdateProfileRequest,
)
from messenger.models.api.users import UserResponse
from messenger.repositories.profile_repository import ProfileRepository
from messenger.services.authorization import Action, Resource, ensure_can_act

logger = get_logger(__name__)


class ProfileService:
    """Service for user profile operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.profile_repo = ProfileRepository(db)

    async def create_profile(
        self, actor: UserResponse, request: CreateProfileRequest
    ) -> ProfileResponse:
        """Create the acting user's own profile."""
        if await self.profile_repo.get_by_user_id(actor.id) is not None:
            raise ConflictError("User profile already exists")

        async with atomic(self.db):
            profile = await self.profile_repo.create_profile(
                actor.id, request.model_dump(exclude_unset=True)
            )
        logger.info("profile_created", user_id=str(actor.id))
        return profile

    async def list_profiles(
        self, limit: int = 100, offset: int = 0
    ) -> List[ProfileResponse]:
        return await self.profile_repo.list_active(limit=limit, offset=offset)

    async def get_profile(self, user_id: UUID) -> ProfileResponse:
        return await self._get_or_404(user_id)

    async def update_profile(
        self, actor: UserResponse, user_id: UUID, request: UpdateProfileRequest
    ) -> ProfileResponse:
        ensure_can_act(actor, Action.PROFILE_UPDATE, Resource(owner_id=user_id))

        fields = request.model_dump(exclude_unset=True)
        if not fields:
            raise BadRequestError("Nothing to update")

        async with atomic(self.db):
            profile = await self.profile_repo.update_profile(user_id, fields)
        if profile is None:
            raise NotFoundError("User profile not found")

        logger.info(
            "profile_updated",
            user_id=str(user_id),
            actor_id=str(actor.id),
            fields=sorted(fields),
        )
        return profile

    async def delete_profile(self, actor: UserResponse, user_id: UUID) -> None:
        ensure_can_act(actor, Action.PROFILE_DELETE, Resource(owner_id=user_id))

        async with atomic(self.db):
            deleted = await self.profile_repo.delete_profile(user_id)
        if not deleted:
            raise NotFoundError("User profile not found")
        logger.info("profile_deleted", user_id=str(user_id), actor_id=str(actor.id))

    async def _get_or_404(self, user_id: UUID) -> ProfileResponse:
        profile = await self.profile_repo.get_by_user_id(user_id)
        if profile is None:
            raise NotFoundError("User profile not found")
        return profile
