"""One-time passcode issuance and verification."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from messenger.clients.base_email_client import BaseEmailClient
from messenger.database import atomic
from messenger.errors import InvalidOrExpiredCodeError
from messenger.logging import get_logger
from messenger.models.api.users import UserResponse
from messenger.repositories.otp_repository import OtpRepository
from messenger.repositories.user_repository import UserRepository

logger = get_logger(__name__)

OTP_EMAIL_SUBJECT = "Your OTP code for authentication"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_code() -> str:
    """Uniformly random 6-digit code, leading zeros allowed."""
    return f"{secrets.randbelow(10**6):06d}"


class OtpService:
    """Service for issuing and consuming one-time passcodes.

    ``issue``, ``verify`` and ``purge_expired`` only flush; callers wrap them
    in ``atomic``.
    """

    def __init__(
        self,
        db: AsyncSession,
        ttl_seconds: int = 300,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock
        self.otp_repo = OtpRepository(db)
        self.user_repo = UserRepository(db)

    async def issue(self, user_id: UUID) -> str:
        """Store a fresh code for the identity and return it."""
        now = self.clock()
        code = generate_code()
        await self.otp_repo.add(
            user_id, code, expires_at=now + self.ttl, created_at=now
        )
        logger.info("otp_issued", user_id=str(user_id))
        return code

    async def verify(self, user_id: UUID, code: str) -> None:
        """Consume a matching unexpired code and activate a pending identity.

        Raises:
            InvalidOrExpiredCodeError: If no matching unexpired code exists
        """
        consumed = await self.otp_repo.consume(user_id, code, self.clock())
        if not consumed:
            logger.info("otp_rejected", user_id=str(user_id))
            raise InvalidOrExpiredCodeError()

        activated = await self.user_repo.activate(user_id)
        logger.info("otp_verified", user_id=str(user_id), activated=activated)

    async def purge_expired(self) -> int:
        removed = await self.otp_repo.delete_expired(self.clock())
        if removed:
            logger.info("otp_purged", removed=removed)
        return removed

    async def send_by_email(
        self, user: UserResponse, email_client: BaseEmailClient
    ) -> None:
        """Issue a code in its own transaction, then deliver it by email."""
        async with atomic(self.db):
            code = await self.issue(user.id)
        await self.deliver(user.email, code, email_client)

    async def deliver(
        self, email: str, code: str, email_client: BaseEmailClient
    ) -> None:
        await email_client.send(
            to=email,
            subject=OTP_EMAIL_SUBJECT,
            body=f"Your OTP code is: {code}",
        )
        logger.info("otp_delivered", channel="email")
