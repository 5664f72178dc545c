from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from messenger.errors import ConflictError, ForbiddenError, NotFoundError
from messenger.models.api.profiles import CreateProfileRequest, UpdateProfileRequest
from messenger.services.profile_service import ProfileService


class TestProfileService:
    """Integration tests for ProfileService against SQLite."""

    @pytest.fixture
    def service(self, test_db: AsyncSession) -> ProfileService:
        return ProfileService(test_db)

    async def test_create_and_get(
        self, service: ProfileService, create_user: Any
    ) -> None:
        alice = await create_user("alice")

        created = await service.create_profile(
            alice, CreateProfileRequest(first_name="Alice", last_name="Liddell")
        )

        assert created.user_id == alice.id
        assert created.username == "alice"
        fetched = await service.get_profile(alice.id)
        assert fetched.first_name == "Alice"

    async def test_duplicate_profile_conflicts(
        self, service: ProfileService, create_user: Any
    ) -> None:
        alice = await create_user("alice")
        await service.create_profile(alice, CreateProfileRequest())

        with pytest.raises(ConflictError):
            await service.create_profile(alice, CreateProfileRequest())

    async def test_update_only_sets_given_fields(
        self, service: ProfileService, create_user: Any
    ) -> None:
        alice = await create_user("alice")
        await service.create_profile(
            alice, CreateProfileRequest(first_name="Alice", address="Wonderland")
        )

        updated = await service.update_profile(
            alice, alice.id, UpdateProfileRequest(status_message="Down the hole")
        )

        assert updated.status_message == "Down the hole"
        assert updated.address == "Wonderland"

    async def test_other_user_cannot_update(
        self, service: ProfileService, create_user: Any
    ) -> None:
        alice = await create_user("alice")
        bob = await create_user("bob")
        await service.create_profile(alice, CreateProfileRequest())

        with pytest.raises(ForbiddenError):
            await service.update_profile(
                bob, alice.id, UpdateProfileRequest(first_name="Bob")
            )

    async def test_admin_deletes_profile(
        self, service: ProfileService, create_user: Any
    ) -> None:
        alice = await create_user("alice")
        admin = await create_user("root", role="admin")
        await service.create_profile(alice, CreateProfileRequest())

        with pytest.raises(ForbiddenError):
            await service.delete_profile(alice, alice.id)
        await service.delete_profile(admin, alice.id)

        with pytest.raises(NotFoundError):
            await service.get_profile(alice.id)

    async def test_missing_profile(self, service: ProfileService) -> None:
        with pytest.raises(NotFoundError):
            await service.get_profile(uuid4())

    async def test_list_profiles(
        self, service: ProfileService, create_user: Any
    ) -> None:
        alice = await create_user("alice")
        bob = await create_user("bob")
        await service.create_profile(bob, CreateProfileRequest())
        await service.create_profile(alice, CreateProfileRequest())

        profiles = await service.list_profiles()
        assert [p.username for p in profiles] == ["alice", "bob"]
