from __future__ import annotations

import logging
from typing import Any

import taskhub.config as _cfg
from taskhub.core.controller import Controller
from taskhub.core.security import validate_csrf_token
from taskhub.records.task import PRIORITY_OPTIONS, STATUS_OPTIONS, TaskRecord, now
from taskhub.repositories.category import CategoryRepository
from taskhub.repositories.task import TaskRepository

logger = logging.getLogger(__name__)

FORM_FIELDS = ("title", "description", "category_id", "priority", "status", "due_date")


class TaskController(Controller):
    """Server-rendered task pages. State-changing actions need the form's CSRF token."""

    def __init__(self, context) -> None:
        super().__init__(context)
        self.tasks = TaskRepository(self.db)
        self.categories = CategoryRepository(self.db)

    def _form_data(self) -> dict[str, Any]:
        # empty inputs mean "no value"
        data = self.request_data()
        return {k: (None if data[k] == "" else data[k]) for k in FORM_FIELDS if k in data}

    def _csrf_ok(self) -> bool:
        ok = validate_csrf_token(self.context.session, self.csrf_from_request())
        if not ok:
            logger.warning("CSRF token mismatch on %s %s", self.context.method, self.context.path)
        return ok

    def _form(self, template: str, task: TaskRecord, errors: dict, status_code: int = 200):
        return self.render(
            template,
            status_code=status_code,
            task=task,
            errors=errors,
            categories=self.categories.active(),
            statuses=STATUS_OPTIONS,
            priorities=PRIORITY_OPTIONS,
        )

    def index(self):
        page = max(self.int_param("page", 1), 1)
        per_page = min(max(self.int_param("per_page", _cfg.DEFAULT_PER_PAGE), 1), _cfg.MAX_PER_PAGE)
        filters = {
            "status": self.param("status") if self.param("status") in STATUS_OPTIONS else None,
            "priority": self.param("priority") if self.param("priority") in PRIORITY_OPTIONS else None,
            "category_id": self.param("category_id") if str(self.param("category_id", "")).isdigit() else None,
        }
        result = self.tasks.paginate(page, per_page, filters)
        return self.render(
            "tasks/index.html",
            tasks=[TaskRecord().fill(row) for row in result["items"]],
            pagination=result["pagination"],
            filters=filters,
            categories=self.categories.active(),
            statuses=STATUS_OPTIONS,
            priorities=PRIORITY_OPTIONS,
        )

    def show(self, id: str):
        task = TaskRecord.find(self.db, id)
        if task is None:
            return self.redirect("/tasks")
        return self.render(
            "tasks/show.html",
            task=task,
            category_name=task.category_name(self.db),
            overdue=task.is_overdue(),
        )

    def create(self):
        return self._form("tasks/create.html", TaskRecord(), {})

    def store(self):
        if not self._csrf_ok():
            return self.redirect("/tasks")

        task = TaskRecord().fill(self._form_data())
        if task.status == "completed":
            task.completed_at = now()
        if not task.save(self.db):
            return self._form("tasks/create.html", task, task.errors, status_code=422)

        self.tasks.log_activity(task.id, "create", "Task created")
        return self.redirect("/tasks")

    def edit(self, id: str):
        task = TaskRecord.find(self.db, id)
        if task is None:
            return self.redirect("/tasks")
        return self._form("tasks/edit.html", task, {})

    def update(self, id: str):
        if not self._csrf_ok():
            return self.redirect("/tasks")

        task = TaskRecord.find(self.db, id)
        if task is None:
            return self.redirect("/tasks")

        data = self._form_data()
        if data.get("status") == "completed" and task.status != "completed":
            data["completed_at"] = now()
        task.fill(data)
        if not task.save(self.db):
            return self._form("tasks/edit.html", task, task.errors, status_code=422)

        self.tasks.log_activity(task.id, "update", "Task updated")
        return self.redirect(f"/tasks/{task.id}")

    def destroy(self, id: str):
        if not self._csrf_ok():
            if self.is_ajax():
                return self.json({"success": False, "message": "Invalid CSRF token"}, 403)
            return self.redirect("/tasks")

        task = TaskRecord.find(self.db, id)
        ok = task is not None and task.delete(self.db)
        if ok:
            self.tasks.log_activity(task.id, "delete", "Task deleted")
        if self.is_ajax():
            return self.json({
                "status": "success" if ok else "error",
                "message": "Task deleted successfully" if ok else "Failed to delete task",
            })
        return self.redirect("/tasks")

    def complete(self, id: str):
        if not self._csrf_ok():
            if self.is_ajax():
                return self.json({"success": False, "message": "Invalid CSRF token"}, 403)
            return self.redirect("/tasks")

        task = TaskRecord.find(self.db, id)
        if task is None:
            if self.is_ajax():
                return self.json({"success": False, "message": "Task not found"}, 404)
            return self.redirect("/tasks")

        if task.status != "completed":
            if not task.mark_completed(self.db):
                if self.is_ajax():
                    return self.json(
                        {"success": False, "message": "Failed to mark task as completed", "errors": task.errors},
                        500,
                    )
                return self.redirect(f"/tasks/{task.id}")
            self.tasks.log_activity(task.id, "complete", "Task marked as completed")

        if self.is_ajax():
            return self.json({"success": True, "message": "Task marked as completed", "data": task.to_dict()})
        return self.redirect("/tasks")
