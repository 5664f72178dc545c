from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from messenger.clients.base_email_client import BaseEmailClient
from messenger.clients.email_provider_client import EmailProviderClient
from messenger.errors import UnavailableError


class TestBaseEmailClient:
    """Unit tests for BaseEmailClient abstract base class."""

    def test_base_email_client_is_abstract(self) -> None:
        """Test that BaseEmailClient cannot be instantiated directly."""
        with pytest.raises(TypeError):
            BaseEmailClient()  # type: ignore

    def test_send_must_be_implemented(self) -> None:
        class IncompleteClient(BaseEmailClient):
            pass

        with pytest.raises(
            TypeError,
            match="Can't instantiate abstract class.*without an implementation",
        ):
            IncompleteClient()  # type: ignore


class TestEmailProviderClient:
    """Unit tests for EmailProviderClient."""

    @pytest.fixture
    def email_client(self) -> EmailProviderClient:
        """Create email client for testing."""
        return EmailProviderClient(
            base_url="http://localhost:8002",
            api_key="test-key",
            from_address="no-reply@mail.com",
        )

    def _mock_http(self, mock_client_class: Any, response: Any) -> AsyncMock:
        mock_client = AsyncMock()
        mock_client.__aenter__.return_value = mock_client
        mock_client.__aexit__.return_value = None
        mock_client.post.return_value = response
        mock_client_class.return_value = mock_client
        return mock_client

    @pytest.mark.asyncio
    async def test_send(self, email_client: EmailProviderClient) -> None:
        """Test sending an email builds the provider payload."""
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock()
        mock_response.content = b'{"message_id": "email-123"}'
        mock_response.json.return_value = {"message_id": "email-123"}

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = self._mock_http(mock_client_class, mock_response)

            await email_client.send(
                "alice@mail.com", "Your verification code", "Your OTP code is: 123456"
            )

            mock_client.post.assert_called_once()
            call_args = mock_client.post.call_args
            assert call_args[0][0] == "http://localhost:8002/mail/send"

            payload = call_args[1]["json"]
            recipients = payload["personalizations"][0]["to"]
            assert recipients == [{"email": "alice@mail.com"}]
            assert payload["from"] == {"email": "no-reply@mail.com"}
            assert payload["subject"] == "Your verification code"
            assert payload["content"][0]["value"] == "Your OTP code is: 123456"
            assert call_args[1]["headers"]["Authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_send_accepts_empty_response(
        self, email_client: EmailProviderClient
    ) -> None:
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock()
        mock_response.content = b""

        with patch("httpx.AsyncClient") as mock_client_class:
            self._mock_http(mock_client_class, mock_response)

            await email_client.send("alice@mail.com", "subject", "body")

            mock_response.json.assert_not_called()

    @pytest.mark.asyncio
    async def test_http_error_becomes_unavailable(
        self, email_client: EmailProviderClient
    ) -> None:
        """Transport and status errors surface as a retryable service error."""
        mock_response = MagicMock()
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Server error", request=MagicMock(), response=MagicMock()
        )

        with patch("httpx.AsyncClient") as mock_client_class:
            self._mock_http(mock_client_class, mock_response)

            with pytest.raises(UnavailableError, match="Email delivery failed"):
                await email_client.send("alice@mail.com", "subject", "body")

    @pytest.mark.asyncio
    async def test_connection_error_becomes_unavailable(
        self, email_client: EmailProviderClient
    ) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = self._mock_http(mock_client_class, MagicMock())
            mock_client.post.side_effect = httpx.ConnectError("Connection refused")

            with pytest.raises(UnavailableError):
                await email_client.send("alice@mail.com", "subject", "body")
