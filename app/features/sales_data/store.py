"""Data-store port used by the sales loader and its SQLAlchemy adapter.

The loader only speaks ``DataStore``: row selects with simple predicates,
writes, and named aggregation procedures. ``SqlAlchemyDataStore`` serves
that port from PostgreSQL and enforces the same per-response row cap a
hosted REST gateway would, so loader fallbacks behave identically in
production and tests.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Literal, Protocol, runtime_checkable

from sqlalchemy import Date, Table, delete, func, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from app.core.exceptions import (
    DataStoreError,
    MissingConflictTargetError,
    PermissionDeniedError,
    UniqueViolationError,
)
from app.core.logging import get_logger
from app.features.data_platform.models import (
    AuditLog,
    Brand,
    SalesData,
    SKUSalesData,
    Target,
    UserBrandPermission,
)
from app.features.sales_data.procedures import PROCEDURES

logger = get_logger(__name__)

Operator = Literal["eq", "ilike", "gte", "lte", "in"]

# Columns managed by the store; never written from row payloads
READ_ONLY_COLUMNS = frozenset({"id", "created_at", "updated_at"})


@dataclass(frozen=True)
class Predicate:
    """Single column condition.

    ``ilike`` matches case-insensitively with SQL wildcards; a value without
    wildcards is an exact case-insensitive match.
    """

    column: str
    op: Operator
    value: Any


@dataclass(frozen=True)
class RowQuery:
    """Row select against one table.

    Attributes:
        columns: Columns to return; empty means every column.
        filters: Predicates combined with AND.
        order_by: Columns to sort by.
        descending: Sort direction for every ``order_by`` column.
        offset: Rows to skip.
        limit: Rows requested; the store never returns more than its cap.
    """

    columns: tuple[str, ...] = ()
    filters: tuple[Predicate, ...] = ()
    order_by: tuple[str, ...] = ()
    descending: bool = False
    offset: int = 0
    limit: int | None = None


@runtime_checkable
class DataStore(Protocol):
    """Operations the loader needs from the managed store."""

    row_cap: int

    async def select(self, table: str, query: RowQuery) -> list[dict[str, Any]]:
        """Return matching rows, at most ``row_cap`` of them."""
        ...

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        """Insert rows and return how many were written."""
        ...

    async def upsert(
        self, table: str, rows: Sequence[Mapping[str, Any]], on_conflict: str
    ) -> int:
        """Insert rows, updating those that collide on ``on_conflict``."""
        ...

    async def update(
        self, table: str, values: Mapping[str, Any], filters: Sequence[Predicate]
    ) -> int:
        """Update matching rows and return how many changed."""
        ...

    async def delete(self, table: str, filters: Sequence[Predicate]) -> int:
        """Delete matching rows and return how many were removed."""
        ...

    async def rpc(
        self,
        name: str,
        params: Mapping[str, Any],
        offset: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Run a named aggregation procedure, capped like ``select``."""
        ...


# =============================================================================
# Error translation
# =============================================================================


def _sqlstate(exc: BaseException) -> str | None:
    """Dig the SQLSTATE out of a driver exception chain."""
    candidates: list[BaseException | None] = [exc, getattr(exc, "orig", None)]
    orig = getattr(exc, "orig", None)
    if orig is not None:
        candidates.append(orig.__cause__)
    for candidate in candidates:
        if candidate is None:
            continue
        for attr in ("sqlstate", "pgcode"):
            code = getattr(candidate, attr, None)
            if isinstance(code, str) and code:
                return code
    return None


def translate_error(exc: BaseException, operation: str, table: str) -> DataStoreError:
    """Map a driver exception to the typed store error for its SQLSTATE.

    Args:
        exc: Exception raised by SQLAlchemy or the driver.
        operation: Store operation name, for the error details.
        table: Table or procedure name, for the error details.

    Returns:
        A DataStoreError subclass carrying the original exception.
    """
    sqlstate = _sqlstate(exc)
    details = {"operation": operation, "table": table}
    message = str(getattr(exc, "orig", None) or exc)
    if sqlstate == "23505":
        return UniqueViolationError(message=message, cause=exc, details=details)
    if sqlstate == "42P10":
        return MissingConflictTargetError(message=message, cause=exc, details=details)
    if sqlstate == "42501":
        return PermissionDeniedError(message=message, cause=exc, details=details)
    return DataStoreError(message=message, cause=exc, sqlstate=sqlstate, details=details)


# =============================================================================
# SQLAlchemy adapter
# =============================================================================


TABLES: dict[str, Table] = {
    "sales_data": SalesData.__table__,  # type: ignore[dict-item]
    "sku_sales_data": SKUSalesData.__table__,  # type: ignore[dict-item]
    "brands": Brand.__table__,  # type: ignore[dict-item]
    "targets": Target.__table__,  # type: ignore[dict-item]
    "user_brand_permissions": UserBrandPermission.__table__,  # type: ignore[dict-item]
    "audit_logs": AuditLog.__table__,  # type: ignore[dict-item]
}


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def _coerce_param(column: Any, value: Any) -> Any:
    """Parse ISO strings for date columns so predicates bind correctly."""
    if isinstance(value, str) and isinstance(column.type, Date):
        return date.fromisoformat(value[:10])
    return value


class SqlAlchemyDataStore:
    """DataStore served from PostgreSQL through an async session factory.

    Args:
        session_maker: Factory for AsyncSession objects.
        row_cap: Maximum rows returned by one select or procedure call.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        row_cap: int = 1000,
    ) -> None:
        self._session_maker = session_maker
        self.row_cap = row_cap

    def _table(self, name: str) -> Table:
        try:
            return TABLES[name]
        except KeyError:
            raise DataStoreError(
                message=f"Unknown table '{name}'",
                sqlstate="42P01",
                details={"table": name},
            ) from None

    def _writable(self, table: Table, row: Mapping[str, Any]) -> dict[str, Any]:
        return {
            key: _coerce_param(table.c[key], value)
            for key, value in row.items()
            if key in table.c and key not in READ_ONLY_COLUMNS
        }

    def _condition(self, table: Table, predicate: Predicate) -> ColumnElement[bool]:
        if predicate.column not in table.c:
            raise DataStoreError(
                message=f"Unknown column '{predicate.column}' on '{table.name}'",
                sqlstate="42703",
                details={"table": table.name, "column": predicate.column},
            )
        column = table.c[predicate.column]
        value = predicate.value
        if predicate.op == "eq":
            return column == _coerce_param(column, value)
        if predicate.op == "ilike":
            return column.ilike(str(value))
        if predicate.op == "gte":
            return column >= _coerce_param(column, value)
        if predicate.op == "lte":
            return column <= _coerce_param(column, value)
        if predicate.op == "in":
            return column.in_([_coerce_param(column, v) for v in value])
        msg = f"Unsupported operator {predicate.op!r}"
        raise DataStoreError(message=msg, details={"column": predicate.column})

    def _cap(self, limit: int | None) -> int:
        return self.row_cap if limit is None else min(limit, self.row_cap)

    async def select(self, table: str, query: RowQuery) -> list[dict[str, Any]]:
        tbl = self._table(table)
        columns = [tbl.c[c] for c in query.columns if c in tbl.c] or list(tbl.c)
        stmt = select(*columns).where(*(self._condition(tbl, p) for p in query.filters))
        order = [tbl.c[c] for c in query.order_by if c in tbl.c] or [tbl.c.id]
        stmt = stmt.order_by(*(c.desc() if query.descending else c for c in order))
        stmt = stmt.offset(query.offset).limit(self._cap(query.limit))

        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                return [
                    {k: _jsonable(v) for k, v in row.items()} for row in result.mappings()
                ]
        except SQLAlchemyError as exc:
            raise translate_error(exc, "select", table) from exc

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        if not rows:
            return 0
        tbl = self._table(table)
        values = [self._writable(tbl, row) for row in rows]
        try:
            async with self._session_maker() as session:
                await session.execute(insert(tbl), values)
                await session.commit()
        except SQLAlchemyError as exc:
            raise translate_error(exc, "insert", table) from exc
        return len(values)

    async def upsert(
        self, table: str, rows: Sequence[Mapping[str, Any]], on_conflict: str
    ) -> int:
        if not rows:
            return 0
        tbl = self._table(table)
        values = [self._writable(tbl, row) for row in rows]
        stmt = pg_insert(tbl).values(values)
        updatable = {
            col.name: stmt.excluded[col.name]
            for col in tbl.c
            if col.name not in READ_ONLY_COLUMNS and col.name != on_conflict
        }
        if "updated_at" in tbl.c:
            updatable["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=[on_conflict], set_=updatable
        ).returning(tbl.c.id)

        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                written = len(result.fetchall())
                await session.commit()
        except SQLAlchemyError as exc:
            raise translate_error(exc, "upsert", table) from exc
        return written

    async def update(
        self, table: str, values: Mapping[str, Any], filters: Sequence[Predicate]
    ) -> int:
        tbl = self._table(table)
        payload = self._writable(tbl, values)
        if not payload:
            return 0
        stmt = update(tbl).where(*(self._condition(tbl, p) for p in filters)).values(payload)
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise translate_error(exc, "update", table) from exc
        return int(result.rowcount or 0)  # type: ignore[attr-defined]

    async def delete(self, table: str, filters: Sequence[Predicate]) -> int:
        if not filters:
            raise DataStoreError(
                message="Refusing to delete without filters", details={"table": table}
            )
        tbl = self._table(table)
        stmt = delete(tbl).where(*(self._condition(tbl, p) for p in filters))
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise translate_error(exc, "delete", table) from exc
        return int(result.rowcount or 0)  # type: ignore[attr-defined]

    async def rpc(
        self,
        name: str,
        params: Mapping[str, Any],
        offset: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        builder = PROCEDURES.get(name)
        if builder is None:
            raise DataStoreError(
                message=f"Function {name} does not exist",
                sqlstate="42883",
                details={"procedure": name},
            )
        try:
            stmt = builder(params)
        except ValueError as exc:
            raise DataStoreError(
                message=str(exc), sqlstate="22023", details={"procedure": name}
            ) from exc
        stmt = stmt.offset(offset).limit(self._cap(limit))

        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                return [
                    {k: _jsonable(v) for k, v in row.items()} for row in result.mappings()
                ]
        except SQLAlchemyError as exc:
            raise translate_error(exc, "rpc", name) from exc


__all__ = [
    "DataStore",
    "Predicate",
    "RowQuery",
    "SqlAlchemyDataStore",
    "TABLES",
    "translate_error",
]

