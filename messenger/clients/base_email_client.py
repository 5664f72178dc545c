from abc import ABC, abstractmethod


class BaseEmailClient(ABC):
    """Abstract base class for email delivery providers."""

    @abstractmethod
    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver a plain-text email.

        Raises:
            UnavailableError: If the provider could not accept the message
        """
