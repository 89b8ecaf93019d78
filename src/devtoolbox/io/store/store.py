"""SQLite-backed cache store shared by every tool and the importer.

One connection, one re-entrant lock. Each public operation takes the lock
for exactly one statement or one whole transaction and releases it before
returning, so the async wrappers (which run the operation on a worker
thread) never hold it across an await.
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Protocol, TypeVar

from devtoolbox.foundation.errors import StorageError
from devtoolbox.foundation.logging import get_logger

T = TypeVar("T")
Params = Sequence[Any]
Row = sqlite3.Row

log = get_logger("devtoolbox.store")

MEMORY = ":memory:"

SCHEMA: tuple[str, ...] = (
    """CREATE TABLE IF NOT EXISTS repos (
        username TEXT NOT NULL,
        name TEXT NOT NULL,
        data TEXT NOT NULL,
        PRIMARY KEY (username, name)
    )""",
    """CREATE TABLE IF NOT EXISTS unicode_chars (
        codepoint TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        block TEXT NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS unicode_blocks (
        name TEXT PRIMARY KEY,
        range_start TEXT NOT NULL,
        range_end TEXT NOT NULL
    )""",
)


class Queryable(Protocol):
    """Anything statements can run against: the store itself or a transaction handle."""

    def execute(self, sql: str, params: Params = ()) -> int: ...
    def executemany(self, sql: str, rows: Iterable[Params]) -> int: ...
    def query(self, sql: str, params: Params = ()) -> list[Row]: ...
    def scalar(self, sql: str, params: Params = ()) -> Any: ...


class Transaction:
    """Scoped handle passed to a transaction body. Unusable once the body returns."""

    __slots__ = ("_conn", "_open")

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._open = True

    def _check(self) -> sqlite3.Connection:
        if not self._open:
            raise StorageError("transaction handle used outside its transaction")
        return self._conn

    def execute(self, sql: str, params: Params = ()) -> int:
        return self._check().execute(sql, params).rowcount

    def executemany(self, sql: str, rows: Iterable[Params]) -> int:
        return self._check().executemany(sql, rows).rowcount

    def query(self, sql: str, params: Params = ()) -> list[Row]:
        return self._check().execute(sql, params).fetchall()

    def scalar(self, sql: str, params: Params = ()) -> Any:
        row = self._check().execute(sql, params).fetchone()
        return None if row is None else row[0]


class CacheStore:
    """Lock-serialized access to the single SQLite connection.

    Example:
        >>> store = CacheStore.open(":memory:")
        >>> store.execute("INSERT INTO repos VALUES (?, ?, ?)", ("a", "b", "{}"))
        1
        >>> store.transaction(lambda tx: tx.scalar("SELECT COUNT(*) FROM repos"))
        1
    """

    __slots__ = ("_conn", "_lock", "_path", "_closed")

    def __init__(self, conn: sqlite3.Connection, path: str) -> None:
        self._conn = conn
        self._lock = threading.RLock()  # a transaction body may call the store directly
        self._path = path
        self._closed = False

    @classmethod
    def open(cls, path: str | Path) -> CacheStore:
        """Open (creating if needed) the store at `path` and ensure the schema exists."""
        target = str(path)
        try:
            if target != MEMORY:
                Path(target).parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode; transactions are explicit BEGIN/COMMIT
            conn = sqlite3.connect(target, check_same_thread=False, isolation_level=None)
            conn.row_factory = sqlite3.Row
            for statement in SCHEMA:
                conn.execute(statement)
        except (sqlite3.Error, OSError) as e:
            raise StorageError.from_exc(e, f"cannot open cache store {target}") from e
        log.info("store opened", path=target)
        return cls(conn, target)

    @property
    def path(self) -> str:
        return self._path

    @contextmanager
    def _locked(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            if self._closed:
                raise StorageError("cache store is closed")
            try:
                yield self._conn
            except sqlite3.Error as e:
                raise StorageError.from_exc(e) from e

    # ─────────────────────────────────────────────────────────────────
    # Synchronous Operations
    # ─────────────────────────────────────────────────────────────────

    def execute(self, sql: str, params: Params = ()) -> int:
        """Run one statement, returning rows affected."""
        with self._locked() as conn:
            return conn.execute(sql, params).rowcount

    def executemany(self, sql: str, rows: Iterable[Params]) -> int:
        with self._locked() as conn:
            return conn.executemany(sql, rows).rowcount

    def query(self, sql: str, params: Params = ()) -> list[Row]:
        with self._locked() as conn:
            return conn.execute(sql, params).fetchall()

    def scalar(self, sql: str, params: Params = ()) -> Any:
        """First column of the first row, or None."""
        with self._locked() as conn:
            row = conn.execute(sql, params).fetchone()
            return None if row is None else row[0]

    def transaction(self, body: Callable[[Transaction], T]) -> T:
        """Run `body` atomically: commit if it returns, roll back if it raises.

        Exceptions from `body` propagate unchanged after rollback; SQLite
        failures surface as StorageError. Store calls made from inside `body`
        on the same thread join the open transaction; starting a nested
        transaction raises StorageError.
        """
        with self._locked() as conn:
            conn.execute("BEGIN IMMEDIATE")
            tx = Transaction(conn)
            try:
                result = body(tx)
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            finally:
                tx._open = False
            return result

    # ─────────────────────────────────────────────────────────────────
    # Async Wrappers (worker thread; the lock is released before resuming)
    # ─────────────────────────────────────────────────────────────────

    async def aexecute(self, sql: str, params: Params = ()) -> int:
        return await asyncio.to_thread(self.execute, sql, params)

    async def aquery(self, sql: str, params: Params = ()) -> list[Row]:
        return await asyncio.to_thread(self.query, sql, params)

    async def atransaction(self, body: Callable[[Transaction], T]) -> T:
        return await asyncio.to_thread(self.transaction, body)

    async def arun(self, operation: Callable[..., T], *args: Any) -> T:
        """Run a record helper (e.g. `lookup_codepoint`) against this store off the loop."""
        return await asyncio.to_thread(operation, self, *args)

    def close(self) -> None:
        """Close the connection. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._conn.close()
        log.info("store closed", path=self._path)

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
