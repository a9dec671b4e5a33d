from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    category_id: Optional[int] = None
    priority: str
    status: str
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def task_out(task) -> dict:
    """Record or row -> JSON-ready dict."""
    return TaskOut.model_validate(task).model_dump(mode="json")
