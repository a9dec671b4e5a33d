from __future__ import annotations

import logging
from datetime import date, timedelta
from math import ceil
from typing import Any, Mapping, Optional

from sqlalchemy import case, func, insert, or_, select

from taskhub.core.repository import STORAGE_ERRORS, Repository
from taskhub.models.audit_log import AuditLog
from taskhub.models.task import Task

logger = logging.getLogger(__name__)

CLOSED_STATUSES = ("completed", "cancelled")

# higher rank sorts first
PRIORITY_RANK = {"low": 1, "medium": 2, "high": 3, "urgent": 4}


class TaskRepository(Repository):
    model = Task

    def find_by_category(self, category_id: int) -> list[dict[str, Any]]:
        return self.find_all(where={"category_id": category_id})

    def find_by_status(self, status: str) -> list[dict[str, Any]]:
        return self.find_all(where={"status": status})

    def find_by_priority(self, priority: str) -> list[dict[str, Any]]:
        return self.find_all(where={"priority": priority})

    def _open_tasks(self):
        t = self.table
        return select(t).where(t.c.is_deleted == 0, t.c.status.not_in(CLOSED_STATUSES))

    def _fetch(self, stmt, operation: str) -> list[dict[str, Any]]:
        try:
            return self.db.fetch_all(stmt)
        except STORAGE_ERRORS as e:
            logger.error("Database error in %s: %s", operation, e)
            return []

    def find_overdue(self, today: Optional[date] = None) -> list[dict[str, Any]]:
        today = today or date.today()
        stmt = self._open_tasks().where(self.table.c.due_date < today)
        return self._fetch(stmt, "find_overdue")

    def find_due_today(self, today: Optional[date] = None) -> list[dict[str, Any]]:
        today = today or date.today()
        stmt = self._open_tasks().where(self.table.c.due_date == today)
        return self._fetch(stmt, "find_due_today")

    def find_upcoming(self, days: int = 7, today: Optional[date] = None) -> list[dict[str, Any]]:
        today = today or date.today()
        stmt = (
            self._open_tasks()
            .where(self.table.c.due_date.between(today, today + timedelta(days=days)))
            .order_by(self.table.c.due_date.asc())
        )
        return self._fetch(stmt, "find_upcoming")

    def search(self, keyword: str) -> list[dict[str, Any]]:
        t = self.table
        pattern = f"%{keyword}%"
        stmt = select(t).where(
            t.c.is_deleted == 0,
            or_(t.c.title.like(pattern), t.c.description.like(pattern)),
        )
        return self._fetch(stmt, "search")

    def paginate(
        self,
        page: int = 1,
        per_page: int = 10,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        One page of tasks plus pagination info::

            {"items": [...], "pagination": {"total", "per_page", "current_page",
                                            "total_pages", "has_more"}}

        Empty filter values are ignored. Ordered by due date, then priority
        (most urgent first).
        """
        page = max(page, 1)
        per_page = max(per_page, 1)
        where = {k: v for k, v in (filters or {}).items() if v is not None and v != ""}

        t = self.table
        priority_rank = case(PRIORITY_RANK, value=t.c.priority, else_=0)
        total = self.count(where)
        try:
            stmt = (
                self._filtered(select(t), where)
                .order_by(t.c.due_date.asc(), priority_rank.desc(), t.c.id.asc())
                .limit(per_page)
                .offset((page - 1) * per_page)
            )
            items = self.db.fetch_all(stmt)
        except STORAGE_ERRORS as e:
            logger.error("Database error in paginate: %s", e)
            items = []

        total_pages = ceil(total / per_page)
        return {
            "items": items,
            "pagination": {
                "total": total,
                "per_page": per_page,
                "current_page": page,
                "total_pages": total_pages,
                "has_more": page < total_pages,
            },
        }

    def statistics(self, today: Optional[date] = None) -> dict[str, Any]:
        today = today or date.today()
        stats: dict[str, Any] = {
            "total": 0,
            "pending": 0,
            "in_progress": 0,
            "completed": 0,
            "cancelled": 0,
            "overdue": 0,
            "due_today": 0,
            "by_priority": {p: 0 for p in PRIORITY_RANK},
        }
        t = self.table
        try:
            by_status = self.db.fetch_all(
                select(t.c.status, func.count().label("count"))
                .where(t.c.is_deleted == 0)
                .group_by(t.c.status)
            )
            for row in by_status:
                stats[row["status"]] = int(row["count"])
                stats["total"] += int(row["count"])

            by_priority = self.db.fetch_all(
                select(t.c.priority, func.count().label("count"))
                .where(t.c.is_deleted == 0)
                .group_by(t.c.priority)
            )
            for row in by_priority:
                stats["by_priority"][row["priority"]] = int(row["count"])

            open_count = (
                select(func.count())
                .select_from(t)
                .where(t.c.is_deleted == 0, t.c.status.not_in(CLOSED_STATUSES))
            )
            stats["overdue"] = int(self.db.scalar(open_count.where(t.c.due_date < today)) or 0)
            stats["due_today"] = int(self.db.scalar(open_count.where(t.c.due_date == today)) or 0)
        except STORAGE_ERRORS as e:
            logger.error("Database error in statistics: %s", e)
        return stats

    def log_activity(self, task_id: int, action: str, details: str = "") -> bool:
        stmt = insert(AuditLog.__table__).values(
            table_name=self.table.name,
            record_id=int(task_id),
            action=action,
            details=details,
        )
        try:
            self.db.execute(stmt)
        except STORAGE_ERRORS as e:
            logger.error("Database error in log_activity task=%s: %s", task_id, e)
            return False
        return True
