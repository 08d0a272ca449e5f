"""Scoped key/value store backed by SQLite.

Multiple tenants (signed-in users, or the anonymous guest) share one physical
database. Every entry is addressed by a scope-qualified key,
``scope + SCOPE_SEPARATOR + key``, and every read filters on the exact scope
prefix so one tenant never sees another tenant's records.

Each operation opens its own connection and runs in its own transaction:
single-record operations are atomic, but there is no transaction spanning
several records.
"""

import contextlib
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from spentsync.config import get_spentsync_home
from spentsync.errors import StorageUnavailableError
from spentsync.types import utc_now

from .schema import ALLOWED_COLLECTIONS, init_db, validate_collection_name

logger = logging.getLogger(__name__)

SCOPE_SEPARATOR = "::"
GUEST_SCOPE = "guest"


def scoped_key(scope: str, key: str) -> str:
    return f"{scope}{SCOPE_SEPARATOR}{key}"


def validate_scope(scope: str) -> str:
    """Reject empty scopes and scopes that would make key prefixes ambiguous."""
    if not scope or not scope.strip():
        raise ValueError("Scope cannot be empty")
    if SCOPE_SEPARATOR in scope:
        raise ValueError(f"Scope must not contain {SCOPE_SEPARATOR!r}")
    return scope


class ScopedStore:
    """Local persistent store partitioned into collections and scopes.

    Construct once and pass the instance to whatever needs it.

    Args:
        db_path: SQLite database file. Defaults to ``<spentsync home>/spentsync.db``.
        busy_timeout_ms: How long a write waits on a locked database.
    """

    def __init__(self, db_path: Optional[Path] = None, busy_timeout_ms: int = 5000):
        self.db_path = Path(db_path) if db_path is not None else get_spentsync_home() / "spentsync.db"
        self.busy_timeout_ms = busy_timeout_ms
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot create store directory: {e}") from e

        with self._connect() as conn:
            init_db(conn)

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
        return conn

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager that handles the transaction AND closes the connection.

        Any sqlite3 failure surfaces as StorageUnavailableError after rollback.
        """
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Cannot open store {self.db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            logger.debug(f"Store operation failed, rolling back: {e}")
            conn.rollback()
            raise StorageUnavailableError(f"Store operation failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def close(self):
        """Connections are per-operation; kept for API symmetry."""
        pass

    # === Single-record operations ===

    def get(self, collection: str, key: str, scope: str) -> Optional[Any]:
        """Return the value stored under ``key`` in ``scope``, or None."""
        validate_collection_name(collection)
        physical = scoped_key(validate_scope(scope), key)
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM records WHERE collection = ? AND key = ?",
                (collection, physical),
            ).fetchone()
        return json.loads(row["value"]) if row else None

    def set(self, collection: str, key: str, value: Any, scope: str) -> None:
        """Insert or replace one record."""
        validate_collection_name(collection)
        if not key:
            raise ValueError("Key cannot be empty")
        physical = scoped_key(validate_scope(scope), key)
        payload = json.dumps(value)
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO records (collection, key, value, updated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(collection, key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                (collection, physical, payload, utc_now()),
            )

    def remove(self, collection: str, key: str, scope: str) -> None:
        validate_collection_name(collection)
        physical = scoped_key(validate_scope(scope), key)
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM records WHERE collection = ? AND key = ?",
                (collection, physical),
            )

    # === Scope-wide operations ===

    def get_all(self, collection: str, scope: str) -> List[Any]:
        """Return every value in ``collection`` belonging to ``scope``.

        Filters on the exact key prefix with ``substr`` rather than LIKE, so
        ``%`` or ``_`` in a scope cannot widen the match.
        """
        validate_collection_name(collection)
        prefix = scoped_key(validate_scope(scope), "")
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT value FROM records
                   WHERE collection = ? AND substr(key, 1, ?) = ?
                   ORDER BY key""",
                (collection, len(prefix), prefix),
            ).fetchall()
        return [json.loads(row["value"]) for row in rows]

    def count(self, collection: str, scope: str) -> int:
        validate_collection_name(collection)
        prefix = scoped_key(validate_scope(scope), "")
        with self._connect() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM records WHERE collection = ? AND substr(key, 1, ?) = ?",
                (collection, len(prefix), prefix),
            ).fetchone()[0]

    def clear_scope(self, scope: str) -> int:
        """Delete every record of ``scope`` across all collections."""
        prefix = scoped_key(validate_scope(scope), "")
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM records WHERE substr(key, 1, ?) = ?",
                (len(prefix), prefix),
            )
            removed = cursor.rowcount
        logger.info(f"Cleared scope {scope!r}: {removed} records removed")
        return removed

    def clear_all(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM records")
        logger.info("Cleared all scopes")

    def scopes(self) -> List[str]:
        """List the distinct scopes that currently hold data."""
        with self._connect() as conn:
            rows = conn.execute("SELECT DISTINCT key FROM records").fetchall()
        found = {row["key"].split(SCOPE_SEPARATOR, 1)[0] for row in rows}
        return sorted(found)

    def stats(self, scope: str) -> Dict[str, int]:
        """Per-collection record counts for one scope."""
        return {collection: self.count(collection, scope) for collection in sorted(ALLOWED_COLLECTIONS)}
