from datetime import datetime
from uuid import UUID

from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from messenger.errors import InvalidTokenError
from messenger.models.db.revoked_token_model import RevokedRefreshTokenModel


class RevokedTokenRepository:
    """Repository for refresh-token revocation markers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_revoked(self, jti: str) -> bool:
        query = select(RevokedRefreshTokenModel.jti).where(
            RevokedRefreshTokenModel.jti == jti
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none() is not None

    async def revoke(
        self, jti: str, user_id: UUID, expires_at: datetime, revoked_at: datetime
    ) -> None:
        """Record a refresh token as spent.

        Raises:
            InvalidTokenError: If the token was already revoked, including by a
                concurrent request racing on the same token
        """
        statement = insert(RevokedRefreshTokenModel).values(
            jti=jti, user_id=user_id, expires_at=expires_at, revoked_at=revoked_at
        )
        try:
            await self.db.execute(statement)
        except IntegrityError as e:
            raise InvalidTokenError("Refresh token has already been used") from e
