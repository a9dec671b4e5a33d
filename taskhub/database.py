from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Iterator, Mapping
from typing import Any, NamedTuple, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base

from taskhub.config import DATABASE_URL

logger = logging.getLogger(__name__)

Base = declarative_base()

# Connections are held per worker thread; size the pool to the request
# thread pool (anyio default: 40 threads).
WORKER_THREADS = 40


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url.rstrip("/") in ("sqlite:", "sqlite://") or ":memory:" in url)


class WriteResult(NamedTuple):
    rowcount: int
    inserted_id: Optional[int]


class Database:
    """
    Shared database handle.

    Constructed once by the application and passed to repositories and
    records. The engine is created on first use. Each worker thread keeps
    one connection and reuses it across requests; it is reopened only when
    missing or closed.

    Outside of an explicit begin()/commit() pair every statement commits
    on its own.
    """

    def __init__(self, url: str = DATABASE_URL, **engine_kwargs: Any) -> None:
        self.url = url
        self._engine_kwargs = engine_kwargs
        if not _is_memory_sqlite(url):
            self._engine_kwargs.setdefault("pool_size", WORKER_THREADS)
            self._engine_kwargs.setdefault("max_overflow", 10)
        self._engine: Optional[Engine] = None
        self._engine_lock = threading.Lock()
        self._local = threading.local()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            with self._engine_lock:
                if self._engine is None:
                    # Only apply sqlite-specific connect_args when using sqlite
                    connect_args = {"check_same_thread": False} if self.url.startswith("sqlite") else {}
                    self._engine = create_engine(
                        self.url,
                        connect_args=connect_args,
                        pool_pre_ping=True,
                        **self._engine_kwargs,
                    )
                    logger.info(
                        "Database engine ready url=%s",
                        self._engine.url.render_as_string(hide_password=True),
                    )
        return self._engine

    def connection(self) -> Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None or conn.closed:
            conn = self.engine.connect()
            self._local.conn = conn
            self._local.explicit = False
        return conn

    @property
    def in_transaction(self) -> bool:
        return bool(getattr(self._local, "explicit", False))

    # ---- transactions ----

    def begin(self) -> bool:
        if self.in_transaction:
            return False
        conn = self.connection()
        if conn.in_transaction():
            conn.commit()
        conn.begin()
        self._local.explicit = True
        return True

    def commit(self) -> bool:
        if not self.in_transaction:
            return False
        self._local.explicit = False
        self.connection().commit()
        return True

    def rollback(self) -> bool:
        if not self.in_transaction:
            return False
        self._local.explicit = False
        self.connection().rollback()
        return True

    # ---- statements ----

    @contextlib.contextmanager
    def _statement(self) -> Iterator[Connection]:
        conn = self.connection()
        try:
            yield conn
        except Exception:
            if not self.in_transaction and conn.in_transaction():
                conn.rollback()
            raise
        else:
            if not self.in_transaction and conn.in_transaction():
                conn.commit()

    @staticmethod
    def _run(conn: Connection, statement: Any, params: Any = None):
        if isinstance(statement, str):
            if params is None or isinstance(params, Mapping):
                # accept both "name" and ":name" keys
                bound = {str(k).lstrip(":"): v for k, v in (params or {}).items()}
                return conn.execute(text(statement), bound)
            return conn.exec_driver_sql(statement, tuple(params))
        if params:
            return conn.execute(statement, params)
        return conn.execute(statement)

    def fetch_all(self, statement: Any, params: Any = None) -> list[dict[str, Any]]:
        with self._statement() as conn:
            result = self._run(conn, statement, params)
            return [dict(row) for row in result.mappings()]

    def fetch_one(self, statement: Any, params: Any = None) -> Optional[dict[str, Any]]:
        with self._statement() as conn:
            row = self._run(conn, statement, params).mappings().first()
            return dict(row) if row is not None else None

    def scalar(self, statement: Any, params: Any = None) -> Any:
        with self._statement() as conn:
            return self._run(conn, statement, params).scalar()

    def execute(self, statement: Any, params: Any = None) -> WriteResult:
        with self._statement() as conn:
            result = self._run(conn, statement, params)
            inserted_id = None
            if result.is_insert:
                pk = result.inserted_primary_key
                inserted_id = pk[0] if pk else None
            elif result.lastrowid:
                inserted_id = result.lastrowid
            return WriteResult(result.rowcount, inserted_id)

    # ---- lifecycle ----

    def create_schema(self) -> None:
        # register the tables on Base.metadata
        from taskhub.models import audit_log, category, task  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def test_connection(self) -> bool:
        try:
            return self.scalar("SELECT 1") == 1
        except SQLAlchemyError as e:
            logger.error("Database connection test failed: %s", e)
            return False

    def close(self) -> None:
        conn = getattr(self._local, "conn", None)
        if conn is not None and not conn.closed:
            conn.close()
        self._local = threading.local()
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
