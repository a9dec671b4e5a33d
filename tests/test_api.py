from datetime import date

import pytest
from fastapi.testclient import TestClient

from taskhub.repositories.task import TaskRepository


def _create(client: TestClient, **fields) -> dict:
    body = {"title": "Write report", **fields}
    r = client.post("/api/tasks", json=body)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_create_task(client: TestClient):
    r = client.post("/api/tasks", json={"title": "Write report", "priority": "high", "due_date": "2025-01-31"})
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Task created successfully"

    data = body["data"]
    assert isinstance(data["id"], int)
    assert data["title"] == "Write report"
    assert data["status"] == "pending"
    assert data["priority"] == "high"
    assert data["due_date"] == "2025-01-31"
    assert data["completed_at"] is None
    assert data["created_at"] is not None


def test_create_ignores_unknown_and_protected_fields(client: TestClient):
    data = _create(client, is_deleted=1, completed_at="2020-01-01T00:00:00", owner="someone")
    assert data["completed_at"] is None
    assert client.get(f"/api/tasks/{data['id']}").status_code == 200


def test_create_completed_task_stamps_completion(client: TestClient):
    data = _create(client, status="completed")
    assert data["completed_at"] is not None


def test_create_validation_errors(client: TestClient):
    r = client.post("/api/tasks", json={"priority": "critical", "due_date": "someday"})
    assert r.status_code == 422
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert body["errors"]["title"] == ["title is required"]
    assert body["errors"]["priority"] == ["priority must be one of: low, medium, high, urgent"]
    assert body["errors"]["due_date"] == ["due_date must be a valid date"]


def test_title_length_limit(client: TestClient):
    assert client.post("/api/tasks", json={"title": "x" * 255}).status_code == 201
    r = client.post("/api/tasks", json={"title": "x" * 256})
    assert r.status_code == 422
    assert r.json()["errors"]["title"] == ["title must be less than 255 characters"]


def test_malformed_json_is_rejected(client: TestClient):
    r = client.post("/api/tasks", content="{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json() == {"success": False, "message": "Request body must be a JSON object"}

    r = client.post("/api/tasks", json=["a", "list"])
    assert r.status_code == 400


def test_show_and_missing_task(client: TestClient):
    data = _create(client)
    assert client.get(f"/api/tasks/{data['id']}").json()["data"]["title"] == "Write report"

    r = client.get("/api/tasks/9999")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Task not found"}


def test_complete_via_update_is_idempotent(client: TestClient):
    task_id = _create(client)["id"]

    first = client.put(f"/api/tasks/{task_id}", json={"status": "completed"})
    assert first.status_code == 200
    assert first.json()["message"] == "Task updated successfully"
    completed_at = first.json()["data"]["completed_at"]
    assert completed_at is not None

    second = client.put(f"/api/tasks/{task_id}", json={"status": "completed"})
    assert second.status_code == 200
    assert second.json()["data"]["completed_at"] == completed_at
    assert second.json()["data"]["status"] == "completed"


def test_partial_update(client: TestClient):
    task_id = _create(client, description="keep me")["id"]
    r = client.put(f"/api/tasks/{task_id}", json={"priority": "urgent"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["priority"] == "urgent"
    assert data["title"] == "Write report"
    assert data["description"] == "keep me"


def test_update_rejects_blank_title_and_bad_values(client: TestClient):
    task_id = _create(client)["id"]
    r = client.put(f"/api/tasks/{task_id}", json={"title": ""})
    assert r.status_code == 422
    assert r.json()["errors"]["title"] == ["title is required"]

    r = client.put(f"/api/tasks/{task_id}", json={"status": "archived"})
    assert r.status_code == 422
    assert "status" in r.json()["errors"]


def test_update_missing_task(client: TestClient):
    assert client.put("/api/tasks/9999", json={"title": "x"}).status_code == 404


def test_delete_is_soft(client: TestClient, db):
    task_id = _create(client)["id"]

    r = client.delete(f"/api/tasks/{task_id}")
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Task deleted successfully", "data": None}

    assert client.get(f"/api/tasks/{task_id}").status_code == 404
    assert client.delete(f"/api/tasks/{task_id}").status_code == 404

    raw = TaskRepository(db).query("SELECT is_deleted FROM tasks WHERE id = :id", {"id": task_id}, fetch_all=False)
    assert raw == {"is_deleted": 1}

    actions = db.fetch_all("SELECT action FROM audit_logs WHERE record_id = :id ORDER BY id", {"id": task_id})
    assert [a["action"] for a in actions] == ["create", "delete"]


def test_list_filters_and_pagination(client: TestClient):
    for i in range(12):
        _create(client, title=f"task {i}", status="completed" if i < 7 else "pending")

    r = client.get("/api/tasks?status=completed&page=2&per_page=5")
    assert r.status_code == 200
    data = r.json()["data"]
    assert len(data["tasks"]) == 2
    assert all(t["status"] == "completed" for t in data["tasks"])
    assert data["pagination"] == {
        "total": 7,
        "per_page": 5,
        "current_page": 2,
        "total_pages": 2,
        "has_more": False,
    }


def test_list_clamps_paging_and_validates_filters(client: TestClient):
    _create(client)
    r = client.get("/api/tasks?page=0&per_page=1000")
    pagination = r.json()["data"]["pagination"]
    assert pagination["current_page"] == 1
    assert pagination["per_page"] == 100

    r = client.get("/api/tasks?priority=critical")
    assert r.status_code == 422
    assert "priority" in r.json()["errors"]


def test_complete_endpoint(client: TestClient):
    task_id = _create(client)["id"]
    r = client.post(f"/api/tasks/{task_id}/complete")
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "completed"
    assert r.json()["data"]["completed_at"] is not None
    assert client.post("/api/tasks/9999/complete").status_code == 404


def test_stats_and_date_views(client: TestClient):
    today = date.today().isoformat()
    _create(client, title="due today", due_date=today)
    _create(client, title="long overdue", due_date="2000-01-01")
    _create(client, title="done", due_date="2000-01-01", status="completed")

    stats = client.get("/api/tasks/stats").json()["data"]
    assert stats["total"] == 3
    assert stats["completed"] == 1
    assert stats["overdue"] == 1
    assert stats["due_today"] == 1

    assert [t["title"] for t in client.get("/api/tasks/today").json()["data"]] == ["due today"]
    assert [t["title"] for t in client.get("/api/tasks/overdue").json()["data"]] == ["long overdue"]
    assert [t["title"] for t in client.get("/api/tasks/upcoming?days=3").json()["data"]] == ["due today"]


def test_search(client: TestClient):
    _create(client, title="Quarterly report")
    _create(client, title="Groceries")

    r = client.get("/api/tasks/search?q=quarterly")
    assert [t["title"] for t in r.json()["data"]] == ["Quarterly report"]
    assert client.get("/api/tasks/search").status_code == 400


def test_categories_are_seeded(client: TestClient):
    r = client.get("/api/categories")
    assert r.status_code == 200
    names = [c["name"] for c in r.json()["data"]]
    assert names == ["Errands", "Health", "Personal", "Study", "Work"]


def test_mismatching_csrf_header_is_forbidden(client: TestClient):
    r = client.post("/api/tasks", json={"title": "x"}, headers={"X-CSRF-Token": "forged"})
    assert r.status_code == 403
    assert r.json()["message"] == "Invalid CSRF token"


def test_matching_csrf_header_is_accepted(client: TestClient, csrf: str):
    r = client.post("/api/tasks", json={"title": "x"}, headers={"X-CSRF-Token": csrf})
    assert r.status_code == 201


def test_unknown_endpoint(client: TestClient):
    r = client.get("/api/nothing/here")
    assert r.status_code == 404
    assert r.json() == {"status": "error", "message": "Endpoint not found", "code": 404}


def test_cors_preflight(client: TestClient):
    r = client.options(
        "/api/tasks",
        headers={"Origin": "http://example.com", "Access-Control-Request-Method": "POST"},
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"


BAD_IDS = ["abc", "1.5", "1e999", "-1"]


@pytest.mark.parametrize("bad_id", BAD_IDS)
def test_malformed_ids_are_not_found(client: TestClient, db, bad_id):
    task_id = _create(client, title="one")["id"]
    assert task_id == 1

    for method in ("GET", "PUT", "DELETE"):
        kwargs = {"json": {"title": "changed"}} if method == "PUT" else {}
        r = client.request(method, f"/api/tasks/{bad_id}", **kwargs)
        assert r.status_code == 404, method
        assert r.json() == {"success": False, "message": "Task not found"}

    assert client.post(f"/api/tasks/{bad_id}/complete").status_code == 404

    row = TaskRepository(db).find_by_id(task_id)
    assert row["title"] == "one"
    assert row["is_deleted"] == 0


@pytest.mark.parametrize("bad_value", ["1.5", "-1"])
def test_unmatched_category_filter_lists_nothing(client: TestClient, bad_value):
    _create(client, category_id=1)
    r = client.get(f"/api/tasks?category_id={bad_value}")
    assert r.status_code == 200
    assert r.json()["data"]["tasks"] == []
    assert r.json()["data"]["pagination"]["total"] == 0


@pytest.mark.parametrize("bad_value", ["abc", "1e999"])
def test_non_numeric_category_filter_is_rejected(client: TestClient, bad_value):
    r = client.get(f"/api/tasks?category_id={bad_value}")
    assert r.status_code == 422
    assert r.json()["errors"]["category_id"] == ["category_id must be numeric"]


def test_overflowing_category_is_a_validation_error(client: TestClient):
    r = client.post("/api/tasks", json={"title": "x", "category_id": "1e999"})
    assert r.status_code == 422
    assert r.json()["errors"]["category_id"] == ["category_id must be numeric"]


def test_fractional_category_is_a_validation_error(client: TestClient):
    r = client.post("/api/tasks", json={"title": "x", "category_id": "1.5"})
    assert r.status_code == 422
    assert r.json()["success"] is False
    assert r.json()["errors"] == {"category_id": ["category_id has an invalid value"]}


def test_overflowing_page_falls_back_to_defaults(client: TestClient):
    r = client.get("/api/tasks?page=1e999&per_page=1e999")
    assert r.status_code == 200
    assert r.json()["data"]["pagination"]["current_page"] == 1
    assert r.json()["data"]["pagination"]["per_page"] == 10
