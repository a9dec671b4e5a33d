from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import func, select

from taskhub.core.record import Record
from taskhub.core.repository import STORAGE_ERRORS
from taskhub.database import Database
from taskhub.models.category import Category
from taskhub.models.task import Task

if TYPE_CHECKING:
    from taskhub.records.task import TaskRecord

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {"name": "Work", "color": "#e74c3c", "icon": "briefcase", "description": "Work-related tasks"},
    {"name": "Study", "color": "#3498db", "icon": "book", "description": "Study and education tasks"},
    {"name": "Personal", "color": "#2ecc71", "icon": "user", "description": "Personal tasks and goals"},
    {"name": "Health", "color": "#9b59b6", "icon": "heart", "description": "Health and wellness tasks"},
    {"name": "Errands", "color": "#f1c40f", "icon": "shopping-cart", "description": "Errands and shopping tasks"},
]


@dataclass
class CategoryRecord(Record):
    model = Category
    rules = {
        "name": "required|max:100",
        "color": "max:7",
        "icon": "max:50",
        "description": "max:255",
    }

    id: Optional[int] = None
    name: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    is_active: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_deleted: int = 0

    @classmethod
    def find_by_name(cls, db: Database, name: str) -> list["CategoryRecord"]:
        table = Category.__table__
        stmt = select(table).where(
            table.c.name == name, table.c.is_active == 1, table.c.is_deleted == 0
        )
        try:
            rows = db.fetch_all(stmt)
        except STORAGE_ERRORS as e:
            logger.error("Database error in find_by_name: %s", e)
            return []
        return [cls().fill(row) for row in rows]

    @classmethod
    def create_default_categories(cls, db: Database) -> bool:
        """Insert the default categories that are not there yet."""
        ok = True
        for data in DEFAULT_CATEGORIES:
            if cls.find_by_name(db, data["name"]):
                continue
            category = cls().fill(data)
            if not category.save(db):
                logger.warning("Could not create category %s: %s", data["name"], category.errors)
                ok = False
        return ok

    def task_count(self, db: Database) -> int:
        if not self.id:
            return 0
        table = Task.__table__
        stmt = (
            select(func.count())
            .select_from(table)
            .where(table.c.category_id == self.id, table.c.is_deleted == 0)
        )
        try:
            return int(db.scalar(stmt) or 0)
        except STORAGE_ERRORS as e:
            logger.error("Database error in task_count: %s", e)
            return 0

    def tasks(self, db: Database) -> list["TaskRecord"]:
        from taskhub.records.task import TaskRecord

        if not self.id:
            return []
        table = Task.__table__
        stmt = select(table).where(table.c.category_id == self.id, table.c.is_deleted == 0)
        try:
            rows = db.fetch_all(stmt)
        except STORAGE_ERRORS as e:
            logger.error("Database error in tasks: %s", e)
            return []
        return [TaskRecord().fill(row) for row in rows]
