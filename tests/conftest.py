"""Shared test fixtures.

Two stand-ins for Postgres live here:

`MemoryStore` replaces the repository layer. It keeps committed rows in
dicts, stages writes per transaction and applies them only on commit. Like
Postgres it can only lock rows that exist: two transactions may both miss
an absent hive, and the second insert waits for the first inserter to
finish (as on a unique index) and then fails with ConflictError if that
transaction committed. `lock_absent=True` models an engine that serializes
writers on the name itself, so the second creator blocks on the read.

`FakeConnection` / `FakePool` replace asyncpg under the real `core.db` and
repository code. Statements are answered from a script, transactions and
savepoints are recorded, and a failed statement leaves the transaction
aborted until it (or the enclosing savepoint) rolls back.
"""

from __future__ import annotations

import asyncio
import itertools
from collections import defaultdict, deque
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import asyncpg
import pytest

from core import db
from core.errors import ConflictError
from entries import repository as entry_repository
from entries.repository import EntryKind
from hives import repository as hive_repository


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryTransaction:
    def __init__(self, store: "MemoryStore"):
        self.store = store
        self.staged_hives: dict[int, dict] = {}
        self.staged_entries: list[tuple[EntryKind, dict]] = []
        self.held: set[int] = set()

    async def lock_hive(self, hive_name: int) -> None:
        if hive_name in self.held:
            return
        await self.store.row_locks[hive_name].acquire()
        self.held.add(hive_name)

    def visible_hive(self, hive_name: int) -> dict | None:
        return self.staged_hives.get(hive_name) or self.store.hives.get(hive_name)

    def release(self) -> None:
        for hive_name in self.held:
            self.store.row_locks[hive_name].release()
        self.held.clear()
        # Wake inserters queued behind our uncommitted hives.
        for hive_name in self.staged_hives:
            pending = self.store.pending_inserts.pop(hive_name, None)
            if pending is not None:
                pending.set()


class MemoryStore:
    def __init__(self, *, lock_absent: bool = False):
        self.lock_absent = lock_absent
        self.hives: dict[int, dict] = {}
        self.entries: dict[EntryKind, list[dict]] = {EntryKind.LOG: [], EntryKind.TASK: []}
        self.row_locks: dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.pending_inserts: dict[int, asyncio.Event] = {}
        self.transaction_options: list[dict] = []
        self.hive_inserts = 0
        self.conflicts = 0
        self.commits = 0
        self.rollbacks = 0
        self._ids = itertools.count(1)

    # --- db.transaction replacement ---

    @asynccontextmanager
    async def transaction(self, **options):
        self.transaction_options.append(options)
        txn = MemoryTransaction(self)
        try:
            yield txn
        except BaseException:
            txn.release()
            self.rollbacks += 1
            raise
        for hive_name, row in txn.staged_hives.items():
            self.hives[hive_name] = row
        for kind, row in txn.staged_entries:
            self.entries[kind].append(row)
        txn.release()
        self.commits += 1

    # --- repository replacements ---

    async def get_hive_for_update(self, conn: MemoryTransaction, hive_name: int) -> dict | None:
        if self.lock_absent or conn.visible_hive(hive_name) is not None:
            await conn.lock_hive(hive_name)
        hive = conn.visible_hive(hive_name)
        return dict(hive) if hive is not None else None

    async def insert_hive(self, conn: MemoryTransaction, hive_name: int) -> dict:
        # Yield so concurrent tasks interleave here.
        await asyncio.sleep(0)
        pending = self.pending_inserts.get(hive_name)
        while pending is not None and hive_name not in conn.staged_hives:
            await pending.wait()
            pending = self.pending_inserts.get(hive_name)
        if conn.visible_hive(hive_name) is not None:
            self.conflicts += 1
            raise ConflictError("Duplicate value violates hives_hive_name_key.")
        self.hive_inserts += 1
        row = {"id": next(self._ids), "hive_name": hive_name, "created_at": _now(), "updated_at": _now()}
        conn.staged_hives[hive_name] = row
        self.pending_inserts[hive_name] = asyncio.Event()
        # The inserter owns the new row's lock.
        await conn.lock_hive(hive_name)
        return dict(row)

    async def insert_entry(self, conn: MemoryTransaction, kind: EntryKind, *, hive_id: int, content: str) -> dict:
        await asyncio.sleep(0)
        if conn.visible_hive(hive_id) is None:
            raise ConflictError("Referenced row is missing (logs_hive_id_fkey).")
        row = {
            "id": next(self._ids),
            "hive_id": hive_id,
            "content": content,
            "created_at": _now(),
            "updated_at": _now(),
        }
        conn.staged_entries.append((kind, row))
        return dict(row)

    async def get_hive(self, hive_name: int, *, conn: MemoryTransaction | None = None) -> dict | None:
        hive = conn.visible_hive(hive_name) if conn is not None else self.hives.get(hive_name)
        return dict(hive) if hive is not None else None

    async def list_entries(
        self,
        kind: EntryKind,
        *,
        hive_id: int | None = None,
        conn: MemoryTransaction | None = None,
    ) -> list[dict]:
        rows = list(self.entries[kind])
        if conn is not None:
            rows += [row for staged_kind, row in conn.staged_entries if staged_kind is kind]
        return [dict(row) for row in rows if hive_id is None or row["hive_id"] == hive_id]

    async def delete_hive(self, hive_name: int) -> dict | None:
        async with self.row_locks[hive_name]:
            row = self.hives.pop(hive_name, None)
            if row is None:
                return None
            # ON DELETE CASCADE
            for kind in self.entries:
                self.entries[kind] = [e for e in self.entries[kind] if e["hive_id"] != hive_name]
        return {"id": row["id"], "hive_name": hive_name}

    # --- arrange helpers ---

    def add_hive(self, hive_name: int) -> dict:
        row = {"id": next(self._ids), "hive_name": hive_name, "created_at": _now(), "updated_at": _now()}
        self.hives[hive_name] = row
        return row

    def add_entry(self, kind: EntryKind, hive_id: int, content: str) -> dict:
        row = {"id": next(self._ids), "hive_id": hive_id, "content": content, "created_at": _now(), "updated_at": _now()}
        self.entries[kind].append(row)
        return row


def _install(monkeypatch, store: MemoryStore) -> MemoryStore:
    monkeypatch.setattr(db, "transaction", store.transaction)
    monkeypatch.setattr(hive_repository, "get_hive_for_update", store.get_hive_for_update)
    monkeypatch.setattr(hive_repository, "insert_hive", store.insert_hive)
    monkeypatch.setattr(hive_repository, "get_hive", store.get_hive)
    monkeypatch.setattr(hive_repository, "delete_hive", store.delete_hive)
    monkeypatch.setattr(entry_repository, "insert_entry", store.insert_entry)
    monkeypatch.setattr(entry_repository, "list_entries", store.list_entries)
    return store


@pytest.fixture
def memory_store(monkeypatch):
    """Route the creator, resolver and hive reads through an in-memory store."""
    return _install(monkeypatch, MemoryStore())


@pytest.fixture
def serialized_store(monkeypatch):
    """In-memory store whose locking read also locks names that do not exist yet."""
    return _install(monkeypatch, MemoryStore(lock_absent=True))


class FakeTransaction:
    def __init__(self, conn: "FakeConnection", isolation: str | None, readonly: bool):
        self.conn = conn
        self.isolation = isolation
        self.readonly = readonly
        self.nested = False

    def _begin_statement(self) -> str:
        parts = ["BEGIN"]
        if self.isolation:
            parts.append("ISOLATION LEVEL " + self.isolation.replace("_", " ").upper())
        if self.readonly:
            parts.append("READ ONLY")
        return " ".join(parts)

    async def __aenter__(self):
        conn = self.conn
        self.nested = conn.depth > 0
        conn.log.append("SAVEPOINT" if self.nested else self._begin_statement())
        conn.depth += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        conn = self.conn
        conn.depth -= 1
        if exc_type is None:
            conn.log.append("RELEASE SAVEPOINT" if self.nested else "COMMIT")
        else:
            conn.log.append("ROLLBACK TO SAVEPOINT" if self.nested else "ROLLBACK")
            conn.aborted = False
        return False


class FakeConnection:
    def __init__(self):
        self.script: list[tuple[str, deque]] = []
        self.statements: list[tuple[str, tuple]] = []
        self.log: list[str] = []
        self.depth = 0
        self.aborted = False

    def on(self, fragment: str, *results: Any) -> "FakeConnection":
        """Answer statements containing `fragment` with `results`, in order."""
        self.script.append((fragment, deque(results)))
        return self

    def transaction(self, *, isolation: str | None = None, readonly: bool = False, deferrable: bool = False):
        return FakeTransaction(self, isolation, readonly)

    async def _run(self, sql: str, args: tuple, default: Any) -> Any:
        await asyncio.sleep(0)
        if self.aborted:
            raise asyncpg.exceptions.InFailedSQLTransactionError(
                "current transaction is aborted, commands ignored until end of transaction block"
            )
        self.statements.append((" ".join(sql.split()), args))
        for fragment, results in self.script:
            if fragment in sql and results:
                result = results.popleft()
                break
        else:
            return default
        if isinstance(result, BaseException):
            if isinstance(result, asyncpg.exceptions.PostgresError):
                self.aborted = True
            raise result
        return result

    async def fetchrow(self, sql: str, *args: Any):
        return await self._run(sql, args, None)

    async def fetch(self, sql: str, *args: Any):
        return await self._run(sql, args, [])

    async def execute(self, sql: str, *args: Any) -> str:
        return await self._run(sql, args, "SELECT 1")


class FakePool:
    def __init__(self, conn: FakeConnection):
        self.conn = conn
        self.acquired = 0
        self.released = 0

    @asynccontextmanager
    async def acquire(self):
        self.acquired += 1
        try:
            yield self.conn
        finally:
            self.released += 1


@pytest.fixture
def fake_pool(monkeypatch):
    """Install a scripted asyncpg stand-in as the module pool of `core.db`."""
    pool = FakePool(FakeConnection())
    monkeypatch.setattr(db, "_pool", pool)
    return pool


@pytest.fixture
def client():
    """FastAPI test client. Lifespan is not run, so no pool is opened."""
    from fastapi.testclient import TestClient

    from main import app

    return TestClient(app, raise_server_exceptions=False)
