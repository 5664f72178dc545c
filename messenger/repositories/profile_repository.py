from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from messenger.errors import NotFoundError
from messenger.models.api.profiles import ProfileResponse
from messenger.models.api.users import UserStatus
from messenger.models.db.profile_model import UserProfileModel
from messenger.models.db.user_model import UserModel
from messenger.repositories.base_repository import BaseRepository


class ProfileRepository(BaseRepository[UserProfileModel, ProfileResponse]):
    """Repository for user profiles, always joined with the owning identity."""

    conflict_message = "User profile already exists"

    def __init__(self, db: AsyncSession):
        super().__init__(db, UserProfileModel)

    def _joined(self) -> Any:
        return (
            select(self.model_class, UserModel)
            .join(UserModel, UserModel.id == self.model_class.user_id)
            .where(UserModel.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )

    async def get_by_user_id(self, user_id: UUID) -> Optional[ProfileResponse]:
        result = await self.db.execute(
            self._joined().where(self.model_class.user_id == user_id)
        )
        row = result.one_or_none()
        return self._to_pydantic(row) if row else None

    async def list_active(
        self, limit: int = 100, offset: int = 0
    ) -> List[ProfileResponse]:
        """List profiles of active identities."""
        query = (
            self._joined()
            .where(UserModel.status == UserStatus.ACTIVE.value)
            .order_by(UserModel.username)
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        return [self._to_pydantic(row) for row in result.all()]

    async def create_profile(
        self, user_id: UUID, fields: Dict[str, Any]
    ) -> ProfileResponse:
        self.db.add(UserProfileModel(user_id=user_id, **fields))
        await self._flush()
        profile = await self.get_by_user_id(user_id)
        if profile is None:
            raise NotFoundError("User not found")
        return profile

    async def update_profile(
        self, user_id: UUID, fields: Dict[str, Any]
    ) -> Optional[ProfileResponse]:
        query = (
            select(self.model_class)
            .where(self.model_class.user_id == user_id)
            .with_for_update()
        )
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        if db_model is None:
            return None

        for field, value in fields.items():
            setattr(db_model, field, value)
        await self._flush()
        return await self.get_by_user_id(user_id)

    async def delete_profile(self, user_id: UUID) -> bool:
        result = await self.db.execute(
            delete(self.model_class).where(self.model_class.user_id == user_id)
        )
        return bool(result.rowcount)

    def _to_pydantic(self, db_model: Any) -> ProfileResponse:
        """Convert a (UserProfileModel, UserModel) row to ProfileResponse."""
        profile, user = db_model
        return ProfileResponse(
            user_id=profile.user_id,
            username=user.username,
            email=user.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            phone_number=profile.phone_number,
            address=profile.address,
            avatar_url=profile.avatar_url,
            status_message=profile.status_message,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )
