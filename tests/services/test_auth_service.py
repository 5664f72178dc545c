from typing import Any
from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from messenger.config import Settings
from messenger.errors import (
    BadRequestError,
    ConflictError,
    InvalidOrExpiredCodeError,
    InvalidTokenError,
    NotFoundError,
    UnauthorizedError,
)
from messenger.models.api.users import (
    LoginRequest,
    RegisterRequest,
    UserStatus,
)
from messenger.repositories.user_repository import UserRepository
from messenger.services.auth_service import AuthService, normalize_email


def registration(**overrides: Any) -> RegisterRequest:
    fields = {
        "email": "alice@mail.com",
        "username": "alice",
        "password": "s3cret-pass",
        "confirm_password": "s3cret-pass",
    }
    fields.update(overrides)
    return RegisterRequest(**fields)


class TestNormalizeEmail:
    def test_lowercases(self) -> None:
        assert normalize_email("  Alice@Mail.COM ") == "alice@mail.com"

    def test_malformed_is_bad_request(self) -> None:
        with pytest.raises(BadRequestError):
            normalize_email("not-an-email")


class TestAuthService:
    """Integration tests for AuthService against SQLite."""

    @pytest.fixture
    def service(
        self, test_db: AsyncSession, test_settings: Settings, email_client: Any
    ) -> AuthService:
        return AuthService(test_db, test_settings, email_client)

    async def _register_active(self, service: AuthService, email_client: Any) -> Any:
        result = await service.register(registration())
        await service.verify_otp_by_email(
            "alice@mail.com", email_client.last_code("alice@mail.com")
        )
        return result

    # Registration

    async def test_register_creates_pending_user_and_sends_code(
        self, service: AuthService, test_db: AsyncSession, email_client: Any
    ) -> None:
        result = await service.register(registration())

        assert result.otp_sent is True
        user = await UserRepository(test_db).get_by_id(result.id)
        assert user is not None
        assert user.status == UserStatus.PENDING
        assert email_client.sent[0]["to"] == "alice@mail.com"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"email": None},
            {"username": None},
            {"username": "   "},
            {"password": None},
            {"confirm_password": None},
        ],
    )
    async def test_register_missing_fields(
        self, service: AuthService, overrides: dict
    ) -> None:
        with pytest.raises(BadRequestError, match="All fields are required"):
            await service.register(registration(**overrides))

    async def test_register_rejects_short_password(self, service: AuthService) -> None:
        with pytest.raises(BadRequestError, match="at least 8"):
            await service.register(
                registration(password="short", confirm_password="short")
            )

    async def test_register_rejects_overlong_password(
        self, service: AuthService
    ) -> None:
        password = "p" * 73
        with pytest.raises(BadRequestError, match="at most 72 bytes"):
            await service.register(
                registration(password=password, confirm_password=password)
            )

    async def test_register_counts_password_bytes_not_characters(
        self, service: AuthService
    ) -> None:
        password = "\u00e9" * 40
        with pytest.raises(BadRequestError, match="at most 72 bytes"):
            await service.register(
                registration(password=password, confirm_password=password)
            )

    async def test_register_rejects_mismatched_confirmation(
        self, service: AuthService
    ) -> None:
        with pytest.raises(BadRequestError, match="do not match"):
            await service.register(registration(confirm_password="other-pass"))

    async def test_register_rejects_malformed_email(self, service: AuthService) -> None:
        with pytest.raises(BadRequestError):
            await service.register(registration(email="alice-at-mail"))

    @pytest.mark.parametrize(
        "overrides",
        [{"username": "someone-else"}, {"email": "other@mail.com"}],
    )
    async def test_register_duplicate_is_conflict(
        self, service: AuthService, overrides: dict
    ) -> None:
        await service.register(registration())

        with pytest.raises(ConflictError, match="User already exists"):
            await service.register(registration(**overrides))

    async def test_register_race_hits_unique_constraint(
        self, service: AuthService
    ) -> None:
        """The pre-check is bypassed; the unique index still rejects the insert."""
        await service.register(registration())

        with patch.object(
            UserRepository, "exists_by_email_or_username", return_value=False
        ):
            with pytest.raises(ConflictError):
                await service.register(registration(username="alice2"))

    async def test_register_reports_failed_delivery(
        self, service: AuthService, test_db: AsyncSession, email_client: Any
    ) -> None:
        email_client.fail = True

        result = await service.register(registration())

        assert result.otp_sent is False
        assert await UserRepository(test_db).get_by_id(result.id) is not None

    # Login

    async def test_login_pending_user_gets_tokens(
        self, service: AuthService, test_settings: Settings
    ) -> None:
        await service.register(registration())

        tokens = await service.login(
            LoginRequest(email="ALICE@mail.com", password="s3cret-pass")
        )

        assert tokens.access_token
        assert tokens.refresh_token
        assert tokens.access_expires_in == test_settings.access_token_ttl_seconds
        assert tokens.refresh_expires_in == test_settings.refresh_token_ttl_seconds

    async def test_login_failures_are_indistinguishable(
        self, service: AuthService
    ) -> None:
        await service.register(registration())

        with pytest.raises(UnauthorizedError) as wrong_password:
            await service.login(LoginRequest(email="alice@mail.com", password="nope"))
        with pytest.raises(UnauthorizedError) as unknown_user:
            await service.login(LoginRequest(email="bob@mail.com", password="nope"))

        assert wrong_password.value.message == unknown_user.value.message
        assert wrong_password.value.message == "Invalid credentials"

    async def test_login_with_overlong_password_is_unauthorized(
        self, service: AuthService
    ) -> None:
        await service.register(registration())

        with pytest.raises(UnauthorizedError) as known_user:
            await service.login(
                LoginRequest(email="alice@mail.com", password="p" * 100)
            )
        with pytest.raises(UnauthorizedError) as unknown_user:
            await service.login(LoginRequest(email="bob@mail.com", password="p" * 100))

        assert known_user.value.message == unknown_user.value.message
        assert known_user.value.message == "Invalid credentials"

    async def test_login_requires_email_and_password(
        self, service: AuthService
    ) -> None:
        with pytest.raises(BadRequestError):
            await service.login(LoginRequest(email="alice@mail.com"))

    # OTP

    async def test_verify_otp_by_email_activates(
        self, service: AuthService, test_db: AsyncSession, email_client: Any
    ) -> None:
        result = await self._register_active(service, email_client)

        user = await UserRepository(test_db).get_by_id(result.id)
        assert user is not None
        assert user.status == UserStatus.ACTIVE

    async def test_verify_otp_unknown_email(self, service: AuthService) -> None:
        with pytest.raises(InvalidOrExpiredCodeError):
            await service.verify_otp_by_email("ghost@mail.com", "123456")

    async def test_resend_otp_ignores_unknown_email(
        self, service: AuthService, email_client: Any
    ) -> None:
        await service.resend_otp("ghost@mail.com")
        assert email_client.sent == []

    async def test_resend_otp_sends_new_code(
        self, service: AuthService, email_client: Any
    ) -> None:
        await service.register(registration())
        await service.resend_otp("alice@mail.com")

        assert len(email_client.sent) == 2
        await service.verify_otp_by_email(
            "alice@mail.com", email_client.last_code("alice@mail.com")
        )

    # Sessions

    async def test_refresh_rotates_and_rejects_replay(
        self, service: AuthService, email_client: Any
    ) -> None:
        await self._register_active(service, email_client)
        tokens = await service.login(
            LoginRequest(email="alice@mail.com", password="s3cret-pass")
        )

        refreshed = await service.refresh_token(tokens.refresh_token)
        assert refreshed.access_token
        assert refreshed.refresh_token != tokens.refresh_token

        with pytest.raises(InvalidTokenError):
            await service.refresh_token(tokens.refresh_token)
        # The rotated token still works
        await service.refresh_token(refreshed.refresh_token)

    async def test_refresh_rejects_access_token(
        self, service: AuthService, email_client: Any
    ) -> None:
        await self._register_active(service, email_client)
        tokens = await service.login(
            LoginRequest(email="alice@mail.com", password="s3cret-pass")
        )

        with pytest.raises(InvalidTokenError):
            await service.refresh_token(tokens.access_token)

    async def test_logout_revokes_refresh_token(
        self, service: AuthService, email_client: Any
    ) -> None:
        await self._register_active(service, email_client)
        tokens = await service.login(
            LoginRequest(email="alice@mail.com", password="s3cret-pass")
        )

        await service.logout(tokens.refresh_token)
        # Idempotent
        await service.logout(tokens.refresh_token)

        with pytest.raises(InvalidTokenError):
            await service.refresh_token(tokens.refresh_token)

    async def test_logout_requires_token(self, service: AuthService) -> None:
        with pytest.raises(BadRequestError):
            await service.logout(None)

    async def test_logout_rejects_invalid_token(self, service: AuthService) -> None:
        with pytest.raises(UnauthorizedError):
            await service.logout("garbage")

    async def test_deleted_account_cannot_refresh(
        self, service: AuthService, test_db: AsyncSession, email_client: Any
    ) -> None:
        result = await self._register_active(service, email_client)
        tokens = await service.login(
            LoginRequest(email="alice@mail.com", password="s3cret-pass")
        )
        user = await UserRepository(test_db).get_by_id(result.id)
        assert user is not None

        await service.delete_account(user)

        with pytest.raises(NotFoundError):
            await service.refresh_token(tokens.refresh_token)
        with pytest.raises(UnauthorizedError):
            await service.login(
                LoginRequest(email="alice@mail.com", password="s3cret-pass")
            )

    async def test_get_current_user_includes_profile_fields(
        self, service: AuthService, email_client: Any
    ) -> None:
        result = await self._register_active(service, email_client)

        current = await service.get_current_user(result.id)

        assert current.username == "alice"
        assert current.first_name is None
