import pytest
from fastapi.testclient import TestClient

from taskhub.repositories.task import TaskRepository


def _form(csrf: str, **fields) -> dict:
    data = {
        "csrf_token": csrf,
        "title": "Buy milk",
        "description": "",
        "category_id": "",
        "priority": "low",
        "status": "pending",
        "due_date": "",
    }
    data.update(fields)
    return data


def test_home_page(client: TestClient):
    r = client.get("/")
    assert r.status_code == 200
    assert "Welcome to TaskHub" in r.text
    assert "Database: Connected" in r.text
    assert r.headers["x-frame-options"] == "SAMEORIGIN"
    assert r.headers["x-content-type-options"] == "nosniff"


def test_unknown_page_falls_back_to_home(client: TestClient):
    r = client.get("/no/such/page")
    assert r.status_code == 200
    assert 'data-route="no/such/page"' in r.text


def test_empty_task_list(client: TestClient):
    r = client.get("/tasks")
    assert r.status_code == 200
    assert "No tasks yet" in r.text


def test_create_form_sets_session_cookie(client: TestClient):
    r = client.get("/tasks/create")
    assert r.status_code == 200
    assert "taskhub_session" in r.cookies
    assert 'name="csrf_token"' in r.text
    # categories seeded at startup
    assert ">Work</option>" in r.text


def test_store_without_token_redirects_and_saves_nothing(client: TestClient, db):
    r = client.post("/tasks", data=_form(""), follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/tasks"
    assert TaskRepository(db).count() == 0


def test_store_with_wrong_token(client: TestClient, csrf: str, db):
    r = client.post("/tasks", data=_form(csrf[::-1]), follow_redirects=False)
    assert r.status_code == 302
    assert TaskRepository(db).count() == 0


def test_store_and_list(client: TestClient, csrf: str):
    r = client.post("/tasks", data=_form(csrf, due_date="2025-01-31"), follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/tasks"

    page = client.get("/tasks")
    assert "Buy milk" in page.text
    assert "Due 2025-01-31" in page.text


def test_store_invalid_rerenders_form(client: TestClient, csrf: str, db):
    r = client.post("/tasks", data=_form(csrf, title=""))
    assert r.status_code == 422
    assert "title is required" in r.text
    assert TaskRepository(db).count() == 0


def test_output_is_escaped(client: TestClient, csrf: str):
    client.post("/tasks", data=_form(csrf, title="<script>alert(1)</script>"), follow_redirects=False)
    page = client.get("/tasks")
    assert "<script>alert(1)</script>" not in page.text
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in page.text


def test_show_edit_update_delete(client: TestClient, csrf: str, db):
    client.post("/tasks", data=_form(csrf), follow_redirects=False)
    (row,) = TaskRepository(db).find_all()
    task_id = row["id"]

    show = client.get(f"/tasks/{task_id}")
    assert show.status_code == 200
    assert "Buy milk" in show.text

    edit = client.get(f"/tasks/{task_id}/edit")
    assert edit.status_code == 200
    assert 'name="_method" value="PUT"' in edit.text

    r = client.post(
        f"/tasks/{task_id}",
        data={"_method": "PUT", **_form(csrf, title="Buy oat milk")},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert r.headers["location"] == f"/tasks/{task_id}"
    assert TaskRepository(db).find_by_id(task_id)["title"] == "Buy oat milk"

    r = client.post(f"/tasks/{task_id}", data={"_method": "DELETE", "csrf_token": csrf}, follow_redirects=False)
    assert r.status_code == 302
    assert TaskRepository(db).find_by_id(task_id) is None

    missing = client.get(f"/tasks/{task_id}", follow_redirects=False)
    assert missing.status_code == 302
    assert missing.headers["location"] == "/tasks"


def test_complete_from_page(client: TestClient, csrf: str, db):
    client.post("/tasks", data=_form(csrf), follow_redirects=False)
    (row,) = TaskRepository(db).find_all()

    r = client.post(f"/tasks/{row['id']}/complete", data={"csrf_token": csrf}, follow_redirects=False)
    assert r.status_code == 302
    updated = TaskRepository(db).find_by_id(row["id"])
    assert updated["status"] == "completed"
    assert updated["completed_at"] is not None


def test_ajax_delete_answers_json(client: TestClient, csrf: str, db):
    client.post("/tasks", data=_form(csrf), follow_redirects=False)
    (row,) = TaskRepository(db).find_all()

    r = client.delete(
        f"/tasks/{row['id']}",
        headers={"X-Requested-With": "XMLHttpRequest", "X-CSRF-Token": csrf},
    )
    assert r.status_code == 200
    assert r.json() == {"status": "success", "message": "Task deleted successfully"}

    r = client.delete(f"/tasks/{row['id']}", headers={"X-Requested-With": "XMLHttpRequest"})
    assert r.status_code == 403


@pytest.mark.parametrize("bad_id", ["abc", "1.5", "1e999", "-1"])
def test_destroy_with_malformed_id_changes_nothing(client: TestClient, csrf: str, db, bad_id):
    client.post("/tasks", data=_form(csrf), follow_redirects=False)
    (row,) = TaskRepository(db).find_all()

    r = client.post(f"/tasks/{bad_id}", data={"_method": "DELETE", "csrf_token": csrf}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/tasks"
    assert TaskRepository(db).find_by_id(row["id"]) is not None

    r = client.delete(
        f"/tasks/{bad_id}",
        headers={"X-Requested-With": "XMLHttpRequest", "X-CSRF-Token": csrf},
    )
    assert r.status_code == 200
    assert r.json() == {"status": "error", "message": "Failed to delete task"}

    actions = db.fetch_all("SELECT action FROM audit_logs ORDER BY id")
    assert [a["action"] for a in actions] == ["create"]


def test_importing_the_app_module_has_no_side_effects():
    import taskhub.main as main

    assert not hasattr(main, "app")
