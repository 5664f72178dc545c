from typing import Any, Dict

import httpx

from messenger.clients.base_email_client import BaseEmailClient
from messenger.errors import UnavailableError
from messenger.logging import get_logger

logger = get_logger(__name__)


class EmailProviderClient(BaseEmailClient):
    """Email provider client using httpx."""

    def __init__(
        self, base_url: str, api_key: str, from_address: str, timeout: float = 10.0
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.from_address = from_address
        self.timeout = timeout

    async def send(self, to: str, subject: str, body: str) -> None:
        """Send email message via provider API."""
        # SendGrid-style payload
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_address},
            "subject": subject,
            "content": [{"type": "text/plain", "value": body}],
        }

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/mail/send", json=payload, headers=headers
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                "email_delivery_failed",
                provider_url=self.base_url,
                error_type=type(e).__name__,
            )
            raise UnavailableError("Email delivery failed") from e

        data: Dict[str, Any] = response.json() if response.content else {}
        logger.info(
            "email_sent",
            message_id=str(data.get("message_id", "")),
            status=str(data.get("status", "accepted")),
        )
