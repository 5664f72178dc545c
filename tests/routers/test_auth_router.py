from typing import Generator
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from messenger.dependencies import get_auth_service
from messenger.errors import ConflictError, InvalidTokenError, UnauthorizedError
from messenger.main import app
from messenger.models.api.users import (
    LoginRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    TokenPairResponse,
)


class TestAuthRouter:
    """Unit tests for the auth router endpoints; the service is mocked."""

    @pytest.fixture
    def auth_service(self, client: TestClient) -> Generator[MagicMock, None, None]:
        service = MagicMock()
        service.register = AsyncMock()
        service.login = AsyncMock()
        service.logout = AsyncMock()
        service.refresh_token = AsyncMock()
        service.resend_otp = AsyncMock()
        service.verify_otp_by_email = AsyncMock()
        app.dependency_overrides[get_auth_service] = lambda: service
        yield service
        app.dependency_overrides.pop(get_auth_service, None)

    def test_register_returns_201(
        self, client: TestClient, auth_service: MagicMock
    ) -> None:
        user_id = uuid4()
        auth_service.register.return_value = RegisterResponse(id=user_id, otp_sent=True)

        response = client.post(
            "/auth/register",
            json={
                "email": "alice@mail.com",
                "username": "alice",
                "password": "s3cret-pass",
                "confirmPassword": "s3cret-pass",
            },
        )

        assert response.status_code == 201
        assert response.json()["id"] == str(user_id)
        assert response.json()["otpSent"] is True
        call_args = auth_service.register.call_args[0][0]
        assert isinstance(call_args, RegisterRequest)
        assert call_args.confirm_password == "s3cret-pass"

    def test_register_conflict_maps_to_409(
        self, client: TestClient, auth_service: MagicMock
    ) -> None:
        auth_service.register.side_effect = ConflictError("User already exists")

        response = client.post("/auth/register", json={})

        assert response.status_code == 409
        assert response.json()["detail"] == "User already exists"

    def test_login_returns_token_pair(
        self, client: TestClient, auth_service: MagicMock
    ) -> None:
        auth_service.login.return_value = TokenPairResponse(
            access_token="access",
            refresh_token="refresh",
            access_expires_in=900,
            refresh_expires_in=604800,
        )

        response = client.post(
            "/auth/login", json={"email": "alice@mail.com", "password": "s3cret-pass"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["accessToken"] == "access"
        assert body["refreshToken"] == "refresh"
        assert isinstance(auth_service.login.call_args[0][0], LoginRequest)

    def test_login_failure_maps_to_401(
        self, client: TestClient, auth_service: MagicMock
    ) -> None:
        auth_service.login.side_effect = UnauthorizedError("Invalid credentials")

        response = client.post("/auth/login", json={"email": "a@mail.com"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_refresh_uses_bearer_token(
        self, client: TestClient, auth_service: MagicMock
    ) -> None:
        auth_service.refresh_token.return_value = RefreshResponse(
            access_token="new-access",
            refresh_token="new-refresh",
            access_expires_in=900,
        )

        response = client.post(
            "/auth/refresh-token", headers={"Authorization": "Bearer old-refresh"}
        )

        assert response.status_code == 200
        assert response.json()["refreshToken"] == "new-refresh"
        auth_service.refresh_token.assert_awaited_once_with("old-refresh")

    def test_refresh_without_token_is_401(
        self, client: TestClient, auth_service: MagicMock
    ) -> None:
        response = client.post("/auth/refresh-token")

        assert response.status_code == 401
        assert not auth_service.refresh_token.called

    def test_refresh_with_revoked_token_is_401(
        self, client: TestClient, auth_service: MagicMock
    ) -> None:
        auth_service.refresh_token.side_effect = InvalidTokenError(
            "Refresh token has been revoked"
        )

        response = client.post(
            "/auth/refresh-token", headers={"Authorization": "Bearer revoked"}
        )

        assert response.status_code == 401

    def test_logout(self, client: TestClient, auth_service: MagicMock) -> None:
        response = client.post("/auth/logout", json={"refreshToken": "refresh"})

        assert response.status_code == 200
        auth_service.logout.assert_awaited_once_with("refresh")

    def test_send_otp_by_email_without_token(
        self, client: TestClient, auth_service: MagicMock
    ) -> None:
        response = client.post("/auth/send-otp", json={"email": "alice@mail.com"})

        assert response.status_code == 200
        auth_service.resend_otp.assert_awaited_once_with("alice@mail.com")

    def test_verify_otp_by_email_without_token(
        self, client: TestClient, auth_service: MagicMock
    ) -> None:
        response = client.post(
            "/auth/verify-otp", json={"email": "alice@mail.com", "otp": "123456"}
        )

        assert response.status_code == 200
        auth_service.verify_otp_by_email.assert_awaited_once_with(
            "alice@mail.com", "123456"
        )

    def test_me_requires_token(self, client: TestClient) -> None:
        response = client.get("/auth/me")

        assert response.status_code == 401
        assert response.json()["detail"] == "Authorization token is required"
