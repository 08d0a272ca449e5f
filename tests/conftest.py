"""
Pytest fixtures and test configuration for spentsync tests.
"""

import uuid
from typing import Any, Dict, List, Optional

import pytest

from spentsync.storage import LocalRepository, ScopedStore
from spentsync.sync import SyncOrchestrator
from spentsync.sync.remote import (
    CATEGORIES_TABLE,
    EXPENSES_TABLE,
    RECURRING_EXCEPTIONS_TABLE,
    VENDOR_RULES_TABLE,
)
from spentsync.types import iso_to_ms

USER_ID = "7d4c2a8e-5f1b-4c3d-9e2a-1b6f0c8d7e5a"

# 2023-11-14T22:13:20.000Z
FIXED_NOW = 1_700_000_000_000


def new_id() -> str:
    return str(uuid.uuid4())


class FakeRemote:
    """In-memory RemoteStore with failure injection.

    ``fail_pull`` / ``fail_push`` map a table name to the exception raised
    when that table is queried / upserted.
    """

    def __init__(self, user_id: Optional[str] = USER_ID):
        self.user_id = user_id
        self.user_error: Optional[Exception] = None
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            EXPENSES_TABLE: [],
            CATEGORIES_TABLE: [],
            VENDOR_RULES_TABLE: [],
            RECURRING_EXCEPTIONS_TABLE: [],
        }
        self.fail_pull: Dict[str, Exception] = {}
        self.fail_push: Dict[str, Exception] = {}
        self.pull_calls: List[tuple] = []
        self.upserts: List[tuple] = []
        self.seeded: List[str] = []

    def current_user_id(self) -> Optional[str]:
        if self.user_error is not None:
            raise self.user_error
        return self.user_id

    def query_changed_since(self, table: str, since_iso: str) -> List[Dict[str, Any]]:
        self.pull_calls.append((table, since_iso))
        if table in self.fail_pull:
            raise self.fail_pull[table]
        since = iso_to_ms(since_iso)
        return [
            dict(row)
            for row in self.tables[table]
            if (iso_to_ms(row.get("updated_at")) or 0) > since
            or (iso_to_ms(row.get("deleted_at")) or 0) > since
        ]

    def upsert(self, table: str, rows) -> None:
        if table in self.fail_push:
            raise self.fail_push[table]
        rows = [dict(row) for row in rows]
        self.upserts.append((table, rows))
        key_fields = ("rule_id", "date") if table == RECURRING_EXCEPTIONS_TABLE else ("id",)
        for row in rows:
            key = tuple(row[f] for f in key_fields)
            existing = [r for r in self.tables[table] if tuple(r[f] for f in key_fields) != key]
            self.tables[table] = existing + [row]

    def ensure_system_categories(self, user_id: str) -> None:
        self.seeded.append(user_id)

    def pushed_ids(self, table: str) -> List[str]:
        return [row["id"] for t, rows in self.upserts if t == table for row in rows]


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database path."""
    return tmp_path / "spentsync.db"


@pytest.fixture
def store(temp_db):
    """Create a ScopedStore instance for testing."""
    store = ScopedStore(db_path=temp_db)
    yield store
    store.close()


@pytest.fixture
def repo(store):
    """Repository bound to the signed-in test user's scope."""
    return LocalRepository(store, USER_ID)


@pytest.fixture
def fake_remote():
    return FakeRemote()


@pytest.fixture
def clock():
    """Fixed clock returning FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def orchestrator(store, fake_remote, clock):
    return SyncOrchestrator(store, lambda: fake_remote, clock=clock)
