from __future__ import annotations

import re
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import taskhub.config as _cfg
from taskhub.database import Database
from taskhub.main import create_app

_CSRF_INPUT = re.compile(r'name="csrf_token" value="([0-9a-f]+)"')


@pytest.fixture()
def db(tmp_path: Path):
    """
    Fresh sqlite file per test.

    A file (not :memory:) because request handlers run on worker threads,
    each with its own connection.
    """
    database = Database(f"sqlite:///{tmp_path / 'taskhub.sqlite3'}")
    database.create_schema()
    yield database
    database.close()


@pytest.fixture()
def client(db: Database, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(_cfg, "SEED_CATEGORIES", True)
    app = create_app(database=db)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def csrf(client: TestClient) -> str:
    """Anti-forgery token of the client's session, taken from the create form."""
    r = client.get("/tasks/create")
    assert r.status_code == 200
    m = _CSRF_INPUT.search(r.text)
    assert m is not None
    return m.group(1)
