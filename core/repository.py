"""Async repository pattern for document-store access.

Provides a generic base repository with get/find/create/update/delete
operations over one collection (table). The store is treated as a keyed
collection queried by simple field-equality filters; subclasses add
collection-specific queries.

Every call is a network round trip that may fail; errors from SQLAlchemy
propagate unchanged so callers can classify them.
"""

from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.base import Base

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=Base)

_IMMUTABLE_FIELDS = ("id", "created_at")


# ---------------------------------------------------------------------------
# Base repository
# ---------------------------------------------------------------------------

class BaseRepository(Generic[ModelT]):
    """Generic async repository with field-equality queries.

    Subclass and set `model` to your SQLAlchemy model::

        class TaskRepository(BaseRepository[Task]):
            model = Task

            async def list_for_board(self, board_id: str):
                return await self.find(board_id=board_id)
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    def _where(self, stmt, filters: dict[str, Any]):
        for col_name, value in filters.items():
            column = getattr(self.model, col_name)
            if isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(column.in_(list(value)))
            elif value is None:
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column == value)
        return stmt

    # -- Get by ID --

    async def get(self, item_id: str) -> ModelT | None:
        """Get a single document by id."""
        return await self.session.get(self.model, item_id)

    # -- Query by fields --

    async def find(
        self,
        order_by: Any = None,
        limit: int | None = None,
        **filters: Any,
    ) -> Sequence[ModelT]:
        """Find documents whose fields equal the given values.

        List/tuple/set values match any of their members.
        """
        stmt = self._where(select(self.model), filters)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_one(self, **filters: Any) -> ModelT | None:
        rows = await self.find(limit=1, **filters)
        return rows[0] if rows else None

    async def count(self, **filters: Any) -> int:
        stmt = self._where(select(func.count()).select_from(self.model), filters)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    # -- Create --

    async def create(self, data: dict[str, Any]) -> ModelT:
        """Create a new document."""
        item = self.model(**data)
        self.session.add(item)
        await self.session.flush()
        return item

    # -- Update --

    async def update(self, item_id: str, data: dict[str, Any]) -> ModelT | None:
        """Update an existing document. Returns None if not found."""
        item = await self.get(item_id)
        if item is None:
            return None
        return await self.apply(item, data)

    async def apply(self, item: ModelT, data: dict[str, Any]) -> ModelT:
        """Apply field updates to an already-loaded document."""
        for key, value in data.items():
            if hasattr(item, key) and key not in _IMMUTABLE_FIELDS:
                setattr(item, key, value)
        await self.session.flush()
        return item

    # -- Delete --

    async def delete(self, item_id: str) -> bool:
        """Delete a document. Returns True if deleted, False if not found."""
        item = await self.get(item_id)
        if item is None:
            return False
        await self.session.delete(item)
        await self.session.flush()
        return True

    async def delete_where(self, **filters: Any) -> int:
        """Delete every document matching the filters. Returns the count."""
        stmt = self._where(delete(self.model), filters).execution_options(
            synchronize_session="fetch"
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
