from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Optional

from taskhub.core.record import Record
from taskhub.core.validation import parse_date
from taskhub.database import Database
from taskhub.models.task import Task
from taskhub.records.category import CategoryRecord

STATUS_OPTIONS = {
    "pending": "Pending",
    "in_progress": "In Progress",
    "completed": "Completed",
    "cancelled": "Cancelled",
}

PRIORITY_OPTIONS = {
    "low": "Low",
    "medium": "Medium",
    "high": "High",
    "urgent": "Urgent",
}


def now() -> datetime:
    """Current UTC time, naive, to the second (matches CURRENT_TIMESTAMP)."""
    return datetime.now(UTC).replace(tzinfo=None, microsecond=0)


TASK_RULES = {
    "title": "required|max:255",
    "description": "max:1000",
    "category_id": "numeric",
    "priority": "in:" + ",".join(PRIORITY_OPTIONS),
    "status": "in:" + ",".join(STATUS_OPTIONS),
    "due_date": "date",
}


@dataclass
class TaskRecord(Record):
    model = Task
    rules = TASK_RULES

    id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    priority: Optional[str] = "medium"
    status: Optional[str] = "pending"
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_deleted: int = 0

    def save(self, db: Database) -> bool:
        self.updated_at = now()
        return super().save(db)

    def mark_completed(self, db: Database) -> bool:
        self.status = "completed"
        self.completed_at = now()
        return self.save(db)

    def mark_in_progress(self, db: Database) -> bool:
        self.status = "in_progress"
        return self.save(db)

    def is_overdue(self, today: Optional[date] = None) -> bool:
        if self.status in ("completed", "cancelled"):
            return False
        due = parse_date(self.due_date)
        if due is None:
            return False
        return due < (today or date.today())

    def category_name(self, db: Database) -> Optional[str]:
        if not self.category_id:
            return None
        category = CategoryRecord.find(db, self.category_id)
        return category.name if category else None

    @property
    def status_label(self) -> str:
        return STATUS_OPTIONS.get(self.status or "", self.status or "")

    @property
    def priority_label(self) -> str:
        return PRIORITY_OPTIONS.get(self.priority or "", self.priority or "")
