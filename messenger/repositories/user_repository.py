from typing import Any, Iterable, Optional, Set, Tuple
from uuid import UUID, uuid4

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from messenger.models.api.users import (
    CurrentUserResponse,
    Role,
    UserResponse,
    UserStatus,
)
from messenger.models.db.profile_model import UserProfileModel
from messenger.models.db.user_model import UserModel
from messenger.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[UserModel, UserResponse]):
    """Repository for identity records. Tombstoned rows are invisible."""

    conflict_message = "User already exists"

    def __init__(self, db: AsyncSession):
        super().__init__(db, UserModel)

    def _live(self) -> Any:
        return (
            select(self.model_class)
            .where(self.model_class.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )

    async def get_by_id(self, id: UUID) -> Optional[UserResponse]:
        """Get a live identity by ID."""
        result = await self.db.execute(self._live().where(self.model_class.id == id))
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def get_by_email(self, email: str) -> Optional[UserResponse]:
        result = await self.db.execute(
            self._live().where(self.model_class.email == email)
        )
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def get_credentials_by_email(
        self, email: str
    ) -> Optional[Tuple[UserResponse, str]]:
        """Return the identity together with its password hash."""
        result = await self.db.execute(
            self._live().where(self.model_class.email == email)
        )
        db_model = result.scalar_one_or_none()
        if db_model is None:
            return None
        return self._to_pydantic(db_model), db_model.password_hash

    async def exists_by_email_or_username(self, email: str, username: str) -> bool:
        """Check uniqueness against every row, tombstones included."""
        query = (
            select(self.model_class.id)
            .where(
                or_(
                    self.model_class.email == email,
                    self.model_class.username == username,
                )
            )
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none() is not None

    async def existing_ids(self, user_ids: Iterable[UUID]) -> Set[UUID]:
        """Return which of the given ids belong to live identities."""
        ids = set(user_ids)
        if not ids:
            return set()
        query = select(self.model_class.id).where(
            self.model_class.id.in_(ids), self.model_class.deleted_at.is_(None)
        )
        result = await self.db.execute(query)
        return set(result.scalars().all())

    async def create_user(
        self, email: str, username: str, password_hash: str
    ) -> UserResponse:
        """Insert a new identity in the pending state."""
        db_model = UserModel(
            id=uuid4(),
            email=email,
            username=username,
            password_hash=password_hash,
            role=Role.USER.value,
            status=UserStatus.PENDING.value,
        )
        self.db.add(db_model)
        await self._flush()
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model)

    async def activate(self, user_id: UUID) -> bool:
        """Flip a pending identity to active. Returns False if it was not pending."""
        result = await self.db.execute(
            update(self.model_class)
            .where(
                self.model_class.id == user_id,
                self.model_class.status == UserStatus.PENDING.value,
                self.model_class.deleted_at.is_(None),
            )
            .values(status=UserStatus.ACTIVE.value)
        )
        return bool(result.rowcount)

    async def soft_delete(self, user_id: UUID, deleted_at: Any) -> bool:
        result = await self.db.execute(
            update(self.model_class)
            .where(
                self.model_class.id == user_id, self.model_class.deleted_at.is_(None)
            )
            .values(deleted_at=deleted_at)
        )
        return bool(result.rowcount)

    async def get_with_profile(self, user_id: UUID) -> Optional[CurrentUserResponse]:
        """Get a live identity joined with its profile, if any."""
        query = (
            select(self.model_class, UserProfileModel)
            .outerjoin(
                UserProfileModel, UserProfileModel.user_id == self.model_class.id
            )
            .where(
                self.model_class.id == user_id, self.model_class.deleted_at.is_(None)
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        row = result.one_or_none()
        if row is None:
            return None

        user, profile = row
        return CurrentUserResponse(
            **self._to_pydantic(user).model_dump(),
            first_name=profile.first_name if profile else None,
            last_name=profile.last_name if profile else None,
            avatar_url=profile.avatar_url if profile else None,
            status_message=profile.status_message if profile else None,
        )

    def _to_pydantic(self, db_model: Any) -> UserResponse:
        """Convert SQLAlchemy UserModel to Pydantic UserResponse."""
        return UserResponse(
            id=db_model.id,
            email=db_model.email,
            username=db_model.username,
            role=db_model.role,
            status=db_model.status,
            created_at=db_model.created_at,
            updated_at=db_model.updated_at,
        )
