from __future__ import annotations

import logging
from typing import Any

import taskhub.config as _cfg
from taskhub.controllers.api.base import ApiController
from taskhub.core.record import DATABASE_ERROR_KEY
from taskhub.records.task import TASK_RULES, TaskRecord, now
from taskhub.repositories.task import TaskRepository
from taskhub.schemas.task import task_out

logger = logging.getLogger(__name__)

WRITABLE_FIELDS = ("title", "description", "category_id", "priority", "status", "due_date")

CREATE_RULES = TASK_RULES
# partial updates: title may be omitted
UPDATE_RULES = {**TASK_RULES, "title": "max:255"}

FILTERS = ("status", "priority", "category_id")


def _writable(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k in WRITABLE_FIELDS}


class TaskApiController(ApiController):
    def __init__(self, context) -> None:
        super().__init__(context)
        self.tasks = TaskRepository(self.db)

    def _save_failed(self, task: TaskRecord, message: str):
        status_code = 500 if DATABASE_ERROR_KEY in task.errors else 422
        return self.error(message, task.errors, status_code)

    def index(self):
        page = max(self.int_param("page", 1), 1)
        per_page = min(max(self.int_param("per_page", _cfg.DEFAULT_PER_PAGE), 1), _cfg.MAX_PER_PAGE)
        filters = {k: self.param(k) for k in FILTERS}
        filters = {k: v for k, v in filters.items() if v is not None and v != ""}

        errors = self.validate(filters, {k: UPDATE_RULES[k] for k in filters})
        if errors:
            return self.error("Invalid filters", errors, 422)

        result = self.tasks.paginate(page, per_page, filters)
        return self.success({
            "tasks": [task_out(row) for row in result["items"]],
            "pagination": result["pagination"],
        })

    def show(self, id: str):
        task = TaskRecord.find(self.db, id)
        if task is None:
            return self.error("Task not found", None, 404)
        return self.success(task_out(task))

    def store(self):
        rejected = self.csrf_error()
        if rejected is not None:
            return rejected
        data = self.payload()
        if data is None:
            return self.error("Request body must be a JSON object")
        data = _writable(data)

        invalid = self.validation_error(data, CREATE_RULES)
        if invalid is not None:
            return invalid

        task = TaskRecord().fill(data)
        if task.status == "completed":
            task.completed_at = now()
        if not task.save(self.db):
            return self._save_failed(task, "Failed to create task")

        self.tasks.log_activity(task.id, "create", "Task created via API")
        task = TaskRecord.find(self.db, task.id) or task
        return self.success(task_out(task), "Task created successfully", 201)

    def update(self, id: str):
        rejected = self.csrf_error()
        if rejected is not None:
            return rejected
        task = TaskRecord.find(self.db, id)
        if task is None:
            return self.error("Task not found", None, 404)

        data = self.payload()
        if data is None:
            return self.error("Request body must be a JSON object")
        data = _writable(data)

        invalid = self.validation_error(data, UPDATE_RULES)
        if invalid is not None:
            return invalid

        # completed_at is stamped once, on the transition into "completed"
        if data.get("status") == "completed" and task.status != "completed":
            data["completed_at"] = now()

        task.fill(data)
        if not task.save(self.db):
            return self._save_failed(task, "Failed to update task")

        self.tasks.log_activity(task.id, "update", "Task updated via API")
        return self.success(task_out(task), "Task updated successfully")

    def destroy(self, id: str):
        rejected = self.csrf_error()
        if rejected is not None:
            return rejected
        task = TaskRecord.find(self.db, id)
        if task is None:
            return self.error("Task not found", None, 404)

        if not task.delete(self.db):
            return self.error("Failed to delete task", task.errors, 500)

        self.tasks.log_activity(task.id, "delete", "Task deleted via API")
        return self.success(None, "Task deleted successfully")

    def complete(self, id: str):
        rejected = self.csrf_error()
        if rejected is not None:
            return rejected
        task = TaskRecord.find(self.db, id)
        if task is None:
            return self.error("Task not found", None, 404)

        if task.status != "completed":
            if not task.mark_completed(self.db):
                return self._save_failed(task, "Failed to mark task as completed")
            self.tasks.log_activity(task.id, "complete", "Task marked as completed via API")
        return self.success(task_out(task), "Task marked as completed")

    def stats(self):
        return self.success(self.tasks.statistics())

    def overdue(self):
        return self.success([task_out(row) for row in self.tasks.find_overdue()])

    def today(self):
        return self.success([task_out(row) for row in self.tasks.find_due_today()])

    def upcoming(self):
        days = min(max(self.int_param("days", 7), 0), 365)
        return self.success([task_out(row) for row in self.tasks.find_upcoming(days)])

    def search(self):
        keyword = str(self.param("q", "")).strip()
        if not keyword:
            return self.error("Search keyword is required")
        return self.success([task_out(row) for row in self.tasks.search(keyword)])
