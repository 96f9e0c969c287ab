"""Record store: table-level persistence the aggregate loader is written against."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any, Protocol

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

# Register all models so the table map is complete
import token_engine.models  # noqa: F401
from token_engine.core.database import Base

logger = structlog.get_logger()


class RecordStore(Protocol):
    async def get(self, table: str, record_id: uuid.UUID) -> dict[str, Any] | None: ...

    async def find(
        self, table: str, *, order_by: str | None = None, **filters: Any
    ) -> list[dict[str, Any]]: ...

    async def insert(self, table: str, values: Mapping[str, Any]) -> dict[str, Any]: ...

    async def update(
        self,
        table: str,
        record_id: uuid.UUID,
        values: Mapping[str, Any],
        *,
        expected: Mapping[str, Any] | None = None,
    ) -> int: ...

    async def delete(self, table: str, record_id: uuid.UUID) -> int: ...

    async def delete_where(self, table: str, **filters: Any) -> int: ...

    async def commit(self) -> None: ...


def _table_models() -> dict[str, type[Any]]:
    return {
        mapper.class_.__tablename__: mapper.class_
        for mapper in Base.registry.mappers
    }


class SqlRecordStore:
    """RecordStore over an AsyncSession; rows come back as plain dicts."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._models = _table_models()

    def _model(self, table: str) -> type[Any]:
        try:
            return self._models[table]
        except KeyError:
            raise LookupError(f"No model mapped to table {table!r}") from None

    def _criteria(self, model: type[Any], filters: Mapping[str, Any]) -> list[Any]:
        return [getattr(model, key) == value for key, value in filters.items()]

    async def get(self, table: str, record_id: uuid.UUID) -> dict[str, Any] | None:
        model = self._model(table)
        stmt = (
            select(model)
            .where(model.id == record_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        obj = result.scalar_one_or_none()
        return obj.as_record() if obj is not None else None

    async def find(
        self, table: str, *, order_by: str | None = None, **filters: Any
    ) -> list[dict[str, Any]]:
        model = self._model(table)
        stmt = (
            select(model)
            .where(*self._criteria(model, filters))
            .execution_options(populate_existing=True)
        )
        if order_by:
            stmt = stmt.order_by(getattr(model, order_by))
        result = await self.db.execute(stmt)
        return [obj.as_record() for obj in result.scalars().all()]

    async def insert(self, table: str, values: Mapping[str, Any]) -> dict[str, Any]:
        obj = self._model(table)(**values)
        self.db.add(obj)
        await self.db.flush()
        return obj.as_record()

    async def update(
        self,
        table: str,
        record_id: uuid.UUID,
        values: Mapping[str, Any],
        *,
        expected: Mapping[str, Any] | None = None,
    ) -> int:
        """Update one row; with ``expected``, only if those columns still match.

        Returns the number of rows changed, so 0 means not found or lost race.
        """
        model = self._model(table)
        stmt = (
            update(model)
            .where(model.id == record_id, *self._criteria(model, expected or {}))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def delete(self, table: str, record_id: uuid.UUID) -> int:
        return await self.delete_where(table, id=record_id)

    async def delete_where(self, table: str, **filters: Any) -> int:
        model = self._model(table)
        stmt = (
            delete(model)
            .where(*self._criteria(model, filters))
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def commit(self) -> None:
        await self.db.commit()
