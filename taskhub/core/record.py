"""Active-record base.

A record is a dataclass whose fields mirror the columns of one table. It
validates itself against declared rules and persists through the shared
:class:`~taskhub.database.Database` passed to each operation.

Storage failures never raise out of a record: they are logged and collected
under ``errors["database"]``, and the operation returns False/None.
Values a column cannot hold (``category_id="1.5"``) are reported under their
field instead.
"""
from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any, ClassVar, Mapping, Optional, TypeVar

from sqlalchemy import insert, select, update, func

from taskhub.core.repository import STORAGE_ERRORS, InvalidValue, row_values, to_int
from taskhub.core.validation import RuleSpec, validate
from taskhub.database import Database

logger = logging.getLogger(__name__)

R = TypeVar("R", bound="Record")

DATABASE_ERROR_KEY = "database"


class Record:
    """Subclasses are dataclasses; every field must have a default."""

    model: ClassVar[Any] = None
    primary_key: ClassVar[str] = "id"
    rules: ClassVar[dict[str, RuleSpec]] = {}

    def __post_init__(self) -> None:
        self.errors: dict[str, list[str]] = {}

    # ---- attributes ----

    @classmethod
    def attribute_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def fill(self: R, data: Mapping[str, Any]) -> R:
        names = set(self.attribute_names())
        for key, value in data.items():
            if key in names:
                setattr(self, key, value)
        return self

    def get(self, key: str, default: Any = None) -> Any:
        value = getattr(self, key, None) if key in self.attribute_names() else None
        return default if value is None else value

    def set(self: R, key: str, value: Any) -> R:
        if key not in self.attribute_names():
            raise AttributeError(f"{type(self).__name__} has no attribute {key!r}")
        setattr(self, key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.attribute_names()}

    @property
    def key(self) -> Any:
        return getattr(self, self.primary_key)

    # ---- validation ----

    def validate(self) -> bool:
        self.errors = validate(self.to_dict(), self.rules)
        return not self.errors

    def _storage_error(self, operation: str, e: Exception) -> None:
        logger.error("Database error in %s table=%s: %s", operation, self.model.__tablename__, e)
        self.errors.setdefault(DATABASE_ERROR_KEY, []).append(str(e))

    def _invalid_value(self, e: InvalidValue) -> None:
        self.errors.setdefault(e.column, []).append(f"{e.column} has an invalid value")

    # ---- persistence ----

    def save(self, db: Database) -> bool:
        if not self.validate():
            return False
        if self.key in (None, "", 0):
            return self._insert(db)
        return self._update(db)

    def _insert(self, db: Database) -> bool:
        table = self.model.__table__
        data = {k: v for k, v in self.to_dict().items() if v is not None and k != self.primary_key}
        try:
            values = row_values(table, data)
            result = db.execute(insert(table).values(**values))
        except InvalidValue as e:
            self._invalid_value(e)
            return False
        except STORAGE_ERRORS as e:
            self._storage_error("insert", e)
            return False
        self.fill(values)
        setattr(self, self.primary_key, result.inserted_id)
        return True

    def _update(self, db: Database) -> bool:
        table = self.model.__table__
        data = {}
        for k, v in self.to_dict().items():
            if k == self.primary_key:
                continue
            # never push NULL into a NOT NULL column (e.g. timestamps not loaded)
            if v is None and not table.c[k].nullable:
                continue
            data[k] = v
        try:
            values = row_values(table, data)
            pk = table.c[self.primary_key]
            db.execute(update(table).where(pk == to_int(self.key)).values(**values))
        except InvalidValue as e:
            self._invalid_value(e)
            return False
        except STORAGE_ERRORS as e:
            self._storage_error("update", e)
            return False
        self.fill(values)
        return True

    def delete(self, db: Database) -> bool:
        if self.key in (None, ""):
            return False
        table = self.model.__table__
        try:
            stmt = (
                update(table)
                .where(table.c[self.primary_key] == to_int(self.key))
                .values(is_deleted=1, updated_at=func.current_timestamp())
            )
            ok = db.execute(stmt).rowcount > 0
        except STORAGE_ERRORS as e:
            self._storage_error("delete", e)
            return False
        if ok and "is_deleted" in self.attribute_names():
            self.is_deleted = 1
        return ok

    # ---- finders ----

    @classmethod
    def find(cls: type[R], db: Database, id: Any) -> Optional[R]:
        table = cls.model.__table__
        try:
            stmt = (
                select(table)
                .where(table.c[cls.primary_key] == to_int(id), table.c.is_deleted == 0)
                .limit(1)
            )
            row = db.fetch_one(stmt)
        except STORAGE_ERRORS as e:
            logger.error("Database error in find table=%s id=%s: %s", table.name, id, e)
            return None
        return cls().fill(row) if row is not None else None

    @classmethod
    def all(cls: type[R], db: Database) -> list[R]:
        table = cls.model.__table__
        try:
            rows = db.fetch_all(select(table).where(table.c.is_deleted == 0))
        except STORAGE_ERRORS as e:
            logger.error("Database error in all table=%s: %s", table.name, e)
            return []
        return [cls().fill(row) for row in rows]
