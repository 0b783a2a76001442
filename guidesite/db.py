"""
Database access shim for SQLite and Postgres.

Call sites write statements once, in the SQLite dialect (``?`` placeholders,
``INSERT OR REPLACE``, ``AUTOINCREMENT`` and ``DATETIME`` columns). The
backend chosen at startup rewrites them for its engine and every call returns
the same ``QueryResult`` shape.
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, ContextManager, Iterator, Optional, Protocol, Sequence

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, CursorResult, Engine, URL, make_url
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from guidesite.config import Settings

logger = logging.getLogger(__name__)

_INSERT_RE = re.compile(r"^\s*INSERT\b", re.IGNORECASE)
_RETURNING_RE = re.compile(r"\bRETURNING\b", re.IGNORECASE)
_UPSERT_RE = re.compile(
    r"^\s*INSERT\s+OR\s+REPLACE\s+INTO\s+(?P<table>\w+)\s*"
    r"\((?P<columns>[^)]*)\)\s*(?P<values>VALUES\s*\(.*\))\s*;?\s*$",
    re.IGNORECASE | re.DOTALL,
)
_AUTOINCREMENT_RE = re.compile(
    r"\bINTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT\b", re.IGNORECASE
)
_DATETIME_RE = re.compile(r"\bDATETIME\b", re.IGNORECASE)


class StoreError(Exception):
    """Raised when the backing store cannot execute a statement."""


@dataclass
class QueryResult:
    rows: list[dict] = field(default_factory=list)
    rowcount: int = 0
    lastrowid: Optional[int] = None

    def first(self) -> Optional[dict]:
        return self.rows[0] if self.rows else None

    def scalar(self) -> Any:
        row = self.first()
        if row is None:
            return None
        return next(iter(row.values()), None)


class Executor(Protocol):
    def execute(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        ...


class Backend(Protocol):
    """Interface shared by the SQLite and Postgres backends."""

    name: str

    def execute(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        ...

    def execute_ddl(self, statement: str) -> None:
        ...

    def transaction(self) -> ContextManager[Executor]:
        ...

    def ping(self) -> None:
        ...

    def dispose(self) -> None:
        ...


def translate_placeholders(statement: str, escape_percent: bool = True) -> tuple[str, int]:
    """
    Rewrite ``?`` placeholders to ``%s``, skipping quoted literals.

    Returns the rewritten statement and the number of placeholders found.
    Literal ``%`` signs are doubled when ``escape_percent`` is set, since the
    driver formats the whole statement once bind values are supplied.
    """
    parts: list[str] = []
    count = 0
    quote: Optional[str] = None
    for char in statement:
        if char == "%" and escape_percent:
            parts.append("%%")
            continue
        if quote:
            if char == quote:
                quote = None
            parts.append(char)
        elif char in ("'", '"'):
            quote = char
            parts.append(char)
        elif char == "?":
            parts.append("%s")
            count += 1
        else:
            parts.append(char)
    return "".join(parts), count


def translate_upsert(statement: str) -> str:
    """
    Rewrite ``INSERT OR REPLACE`` into ``INSERT ... ON CONFLICT``.

    The first listed column is the conflict target, so call sites must list
    the primary key first. Other statements are returned unchanged.
    """
    match = _UPSERT_RE.match(statement)
    if not match:
        return statement
    columns = [c.strip() for c in match.group("columns").split(",") if c.strip()]
    key, others = columns[0], columns[1:]
    if others:
        action = "DO UPDATE SET " + ", ".join(f"{c} = EXCLUDED.{c}" for c in others)
    else:
        action = "DO NOTHING"
    return (
        f"INSERT INTO {match.group('table')} ({', '.join(columns)}) "
        f"{match.group('values')} ON CONFLICT ({key}) {action}"
    )


def translate_ddl(statement: str) -> str:
    statement = _AUTOINCREMENT_RE.sub("SERIAL PRIMARY KEY", statement)
    return _DATETIME_RE.sub("TIMESTAMP", statement)


def rewrite_for_postgres(
    statement: str, params: Sequence[Any]
) -> tuple[str, tuple, bool]:
    """
    Turn a SQLite-dialect statement into one psycopg2 accepts.

    Inserts get ``RETURNING *`` so the new row's id can be reported; the
    third element of the result says whether that was added.
    """
    bound = tuple(params)
    sql, count = translate_placeholders(
        translate_upsert(statement), escape_percent=bool(bound)
    )
    if count != len(bound):
        raise StoreError(f"Statement expects {count} bind values, got {len(bound)}")
    returning_added = False
    if _INSERT_RE.match(sql) and not _RETURNING_RE.search(sql):
        sql = f"{sql.rstrip().rstrip(';')} RETURNING *"
        returning_added = True
    return sql, bound, returning_added


def _error_message(exc: SQLAlchemyError) -> str:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc)


class _ConnectionExecutor:
    """Runs statements on one connection inside an open transaction."""

    def __init__(self, backend: "_SqlAlchemyBackend", conn: Connection):
        self._backend = backend
        self._conn = conn

    def execute(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        return self._backend._run(self._conn, statement, params)


class _SqlAlchemyBackend:
    name = "sql"

    def __init__(self, engine: Engine):
        self.engine = engine

    def prepare(
        self, statement: str, params: Sequence[Any]
    ) -> tuple[str, tuple, bool]:
        """Return the driver statement, bind values and whether RETURNING was added."""
        return statement, tuple(params), False

    def prepare_ddl(self, statement: str) -> str:
        return statement

    def _normalize(
        self, statement: str, result: CursorResult, returning_added: bool
    ) -> QueryResult:
        if returning_added:
            returned = [dict(row) for row in result.mappings().all()]
            lastrowid = returned[-1].get("id") if returned else None
            return QueryResult(rowcount=len(returned), lastrowid=lastrowid)
        if result.returns_rows:
            rows = [dict(row) for row in result.mappings().all()]
            return QueryResult(rows=rows, rowcount=len(rows))
        lastrowid = result.lastrowid if _INSERT_RE.match(statement) else None
        return QueryResult(rowcount=result.rowcount, lastrowid=lastrowid)

    def _run(
        self, conn: Connection, statement: str, params: Sequence[Any]
    ) -> QueryResult:
        sql, bound, returning_added = self.prepare(statement, params)
        try:
            if bound:
                result = conn.exec_driver_sql(sql, bound)
            else:
                result = conn.exec_driver_sql(sql)
            return self._normalize(statement, result, returning_added)
        except SQLAlchemyError as exc:
            logger.error("Statement failed on %s: %s", self.name, _error_message(exc))
            raise StoreError(_error_message(exc)) from exc

    @contextmanager
    def transaction(self) -> Iterator[_ConnectionExecutor]:
        """Yield an executor whose statements commit together or not at all."""
        try:
            with self.engine.begin() as conn:
                yield _ConnectionExecutor(self, conn)
        except SQLAlchemyError as exc:
            raise StoreError(_error_message(exc)) from exc

    def execute(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        with self.transaction() as tx:
            return tx.execute(statement, params)

    def execute_ddl(self, statement: str) -> None:
        self.execute(self.prepare_ddl(statement))

    def ping(self) -> None:
        self.execute("SELECT 1")

    def dispose(self) -> None:
        self.engine.dispose()


class SqliteBackend(_SqlAlchemyBackend):
    """Embedded file-based backend; statements run as written."""

    name = "sqlite"

    def __init__(self, url: str | URL):
        url = make_url(url)
        kwargs: dict[str, Any] = {
            "future": True,
            "connect_args": {"check_same_thread": False},
        }
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise each thread gets its own empty DB.
            kwargs["poolclass"] = StaticPool
        super().__init__(create_engine(url, **kwargs))

    @classmethod
    def from_path(cls, path: str) -> "SqliteBackend":
        return cls(f"sqlite+pysqlite:///{path}")


class PostgresBackend(_SqlAlchemyBackend):
    """Client/server backend; rewrites SQLite-dialect statements."""

    name = "postgres"

    def __init__(self, url: str | URL, sslmode: Optional[str] = None):
        url = make_url(url)
        if url.drivername in ("postgres", "postgresql"):
            url = url.set(drivername="postgresql+psycopg2")
        connect_args = {"sslmode": sslmode} if sslmode else {}
        engine = create_engine(
            url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
            connect_args=connect_args,
        )
        super().__init__(engine)

    def prepare(
        self, statement: str, params: Sequence[Any]
    ) -> tuple[str, tuple, bool]:
        return rewrite_for_postgres(statement, params)

    def prepare_ddl(self, statement: str) -> str:
        return translate_ddl(statement)


def create_backend(settings: Settings) -> Backend:
    """Pick the backend from configuration. Does not touch the database."""
    raw_url = (settings.database_url or "").strip()
    if not raw_url:
        path = settings.effective_sqlite_path
        logger.info("Using SQLite database at %s", path)
        return SqliteBackend.from_path(path)

    url = make_url(raw_url)
    backend_name = url.get_backend_name()
    if backend_name in ("postgres", "postgresql"):
        logger.info(
            "Using Postgres database at %s", url.render_as_string(hide_password=True)
        )
        return PostgresBackend(url, sslmode=settings.database_sslmode)
    if backend_name == "sqlite":
        logger.info("Using SQLite database at %s", url.database or ":memory:")
        return SqliteBackend(url)
    raise StoreError(f"Unsupported database backend: {backend_name}")


def connect_backend(settings: Settings) -> Backend:
    """
    Build the configured backend and check that it answers.

    Fails instead of falling back to another backend, so the process never
    starts against a store other than the configured one.
    """
    try:
        backend = create_backend(settings)
    except (SQLAlchemyError, ImportError) as exc:
        raise StoreError(f"Could not configure database: {exc}") from exc
    try:
        backend.ping()
    except StoreError:
        logger.error("Database health check failed for %s backend", backend.name)
        backend.dispose()
        raise
    return backend
