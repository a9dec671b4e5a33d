"""Table-scoped data access.

Repositories build parameterized statements with SQLAlchemy Core. Column
names are looked up on the table model, never taken verbatim from request
input; all values are bound parameters.

Read paths never raise on storage failures: the error is logged and an empty
result is returned. Write paths return ``None``/``False`` instead.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any, ClassVar, Optional, Union

from sqlalchemy import Column, Date, DateTime, Integer, Table, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from taskhub.core.validation import parse_date
from taskhub.database import Database

logger = logging.getLogger(__name__)

# Failures treated as storage errors: driver/SQLAlchemy errors, unknown
# columns, and values the column type cannot take.
STORAGE_ERRORS = (SQLAlchemyError, LookupError, ValueError, TypeError, ArithmeticError)


class UnknownColumn(KeyError):
    pass


class InvalidValue(ValueError):
    """A value the column's type cannot hold."""

    def __init__(self, column: str, value: Any) -> None:
        super().__init__(f"invalid value for {column}: {value!r}")
        self.column = column
        self.value = value


def column_of(table: Table, name: str) -> Column:
    try:
        return table.c[name]
    except KeyError:
        raise UnknownColumn(f"{table.name}.{name}") from None


def to_int(value: Any) -> int:
    """Whole numbers only: ``"7"``, ``7``, ``"7.0"``. ``"1.5"`` or ``"1e999"`` raise ValueError."""
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip()
        try:
            return int(s)
        except ValueError:
            value = float(s)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ValueError(f"not an integer: {value!r}")


def coerce_value(col: Column, value: Any) -> Any:
    """Bring request-shaped values (mostly strings) to the column's type."""
    if value is None:
        return None
    if isinstance(col.type, (Integer, Date, DateTime)) and value == "":
        return None
    try:
        if isinstance(col.type, DateTime):
            if isinstance(value, datetime):
                return value
            if isinstance(value, date):
                return datetime(value.year, value.month, value.day)
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        if isinstance(col.type, Date):
            parsed = parse_date(value)
            if parsed is None:
                raise ValueError(value)
            return parsed
        if isinstance(col.type, Integer) and not isinstance(value, bool):
            return to_int(value)
    except (ValueError, TypeError):
        raise InvalidValue(col.name, value) from None
    return value


def row_values(table: Table, data: Mapping[str, Any]) -> dict[str, Any]:
    return {name: coerce_value(column_of(table, name), value) for name, value in data.items()}


def order_by_clause(table: Table, order: Union[str, Sequence[str]]):
    """``"due_date ASC, priority DESC"`` -> list of column orderings."""
    terms = order.split(",") if isinstance(order, str) else list(order)
    clauses = []
    for term in terms:
        bits = term.split()
        if not bits:
            continue
        col = column_of(table, bits[0])
        direction = bits[1].upper() if len(bits) > 1 else "ASC"
        if direction not in ("ASC", "DESC"):
            raise ValueError(f"invalid order direction {direction!r}")
        clauses.append(col.desc() if direction == "DESC" else col.asc())
    return clauses


class Repository:
    model: ClassVar[Any] = None
    primary_key: ClassVar[str] = "id"

    def __init__(self, db: Database) -> None:
        self.db = db

    @property
    def table(self) -> Table:
        return self.model.__table__

    def _not_deleted(self, stmt):
        return stmt.where(self.table.c.is_deleted == 0)

    def _filtered(self, stmt, where: Optional[Mapping[str, Any]]):
        stmt = self._not_deleted(stmt)
        for name, value in (where or {}).items():
            col = column_of(self.table, name)
            stmt = stmt.where(col == coerce_value(col, value))
        return stmt

    # ---- reads ----

    def find_all(
        self,
        where: Optional[Mapping[str, Any]] = None,
        order: Union[str, Sequence[str], None] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        try:
            stmt = self._filtered(select(self.table), where)
            if order:
                stmt = stmt.order_by(*order_by_clause(self.table, order))
            if limit is not None:
                stmt = stmt.limit(int(limit))
                if offset is not None:
                    stmt = stmt.offset(int(offset))
            return self.db.fetch_all(stmt)
        except STORAGE_ERRORS as e:
            logger.error("Database error in find_all table=%s: %s", self.table.name, e)
            return []

    def find_by_id(self, id: Any) -> Optional[dict[str, Any]]:
        try:
            pk = column_of(self.table, self.primary_key)
            stmt = self._not_deleted(select(self.table).where(pk == coerce_value(pk, id)))
            return self.db.fetch_one(stmt)
        except STORAGE_ERRORS as e:
            logger.error("Database error in find_by_id table=%s id=%s: %s", self.table.name, id, e)
            return None

    def count(self, where: Optional[Mapping[str, Any]] = None) -> int:
        try:
            stmt = self._filtered(select(func.count()).select_from(self.table), where)
            return int(self.db.scalar(stmt) or 0)
        except STORAGE_ERRORS as e:
            logger.error("Database error in count table=%s: %s", self.table.name, e)
            return 0

    # ---- writes ----

    def create(self, data: Mapping[str, Any]) -> Optional[int]:
        try:
            result = self.db.execute(insert(self.table).values(**row_values(self.table, data)))
            return int(result.inserted_id) if result.inserted_id is not None else None
        except STORAGE_ERRORS as e:
            logger.error("Database error in create table=%s: %s", self.table.name, e)
            return None

    def update(self, id: Any, data: Mapping[str, Any]) -> bool:
        if not data:
            return False
        try:
            pk = column_of(self.table, self.primary_key)
            stmt = (
                update(self.table)
                .where(pk == coerce_value(pk, id))
                .values(**row_values(self.table, data))
            )
            return self.db.execute(stmt).rowcount > 0
        except STORAGE_ERRORS as e:
            logger.error("Database error in update table=%s id=%s: %s", self.table.name, id, e)
            return False

    def delete(self, id: Any) -> bool:
        """Soft delete: the row stays, flagged with is_deleted = 1."""
        try:
            pk = column_of(self.table, self.primary_key)
            stmt = (
                update(self.table)
                .where(pk == coerce_value(pk, id))
                .values(is_deleted=1, updated_at=func.current_timestamp())
            )
            return self.db.execute(stmt).rowcount > 0
        except STORAGE_ERRORS as e:
            logger.error("Database error in delete table=%s id=%s: %s", self.table.name, id, e)
            return False

    # ---- escape hatch ----

    def query(self, sql: str, params: Any = None, fetch_all: bool = True):
        """
        Run a hand-written statement.

        Mapping params bind by name (``:name``); a sequence binds positionally
        in the driver's own paramstyle (``?`` for sqlite). Returns a list of
        rows, or one row (or None) when fetch_all is False. None on error.
        """
        try:
            if fetch_all:
                return self.db.fetch_all(sql, params)
            return self.db.fetch_one(sql, params)
        except STORAGE_ERRORS as e:
            logger.error("Database error in query: %s", e)
            return None

    # ---- transactions ----

    def begin(self) -> bool:
        return self.db.begin()

    def commit(self) -> bool:
        return self.db.commit()

    def rollback(self) -> bool:
        return self.db.rollback()
