from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from messenger.models.db.otp_model import OtpModel


class OtpRepository:
    """Repository for one-time passcodes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(
        self, user_id: UUID, code: str, expires_at: datetime, created_at: datetime
    ) -> None:
        self.db.add(
            OtpModel(
                id=uuid4(),
                user_id=user_id,
                code=code,
                expires_at=expires_at,
                created_at=created_at,
            )
        )
        await self.db.flush()

    async def consume(self, user_id: UUID, code: str, now: datetime) -> bool:
        """Delete a matching, unexpired code in one conditional write.

        Returns True only if a row was deleted, so concurrent verifications of
        the same code cannot both succeed.
        """
        result = await self.db.execute(
            delete(OtpModel)
            .where(
                OtpModel.user_id == user_id,
                OtpModel.code == code,
                OtpModel.expires_at > now,
            )
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    async def delete_expired(self, now: datetime) -> int:
        result = await self.db.execute(
            delete(OtpModel)
            .where(OtpModel.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
