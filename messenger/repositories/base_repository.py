from typing import Any, Dict, Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from messenger.database import Base
from messenger.errors import ConflictError

ModelType = TypeVar("ModelType", bound=Base)
PydanticType = TypeVar("PydanticType", bound=BaseModel)


class BaseRepository(Generic[ModelType, PydanticType]):
    """Generic base repository with common lookup and write helpers.

    Repositories only flush. Committing is the caller's job, so that several
    writes can share one transaction (see ``messenger.database.atomic``).
    """

    conflict_message = "Resource already exists"

    def __init__(self, db: AsyncSession, model_class: Any):
        self.db = db
        self.model_class = model_class

    async def get_by_id(self, id: UUID) -> Optional[PydanticType]:
        """Get a single record by ID."""
        db_model = await self._get_model(id)
        return self._to_pydantic(db_model) if db_model else None

    async def _get_model(self, id: UUID, for_update: bool = False) -> Any:
        query = (
            select(self.model_class)
            .where(self.model_class.id == id)
            .execution_options(populate_existing=True)
        )  # type: ignore
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _insert_rows(self, model_class: Any, rows: List[Dict[str, Any]]) -> None:
        """Bulk insert plain rows without tracking them in the identity map."""
        if not rows:
            return
        try:
            await self.db.execute(insert(model_class), rows)
        except IntegrityError as e:
            raise ConflictError(self.conflict_message) from e

    async def _flush(self) -> None:
        """Flush pending writes, reporting unique-key violations as conflicts."""
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise ConflictError(self.conflict_message) from e

    def _to_pydantic(self, db_model: ModelType) -> PydanticType:
        """Convert SQLAlchemy model to Pydantic model.

        This should be overridden in subclasses for specific conversion logic.
        """
        raise NotImplementedError

