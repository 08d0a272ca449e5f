"""Database schema for the spentsync SQLite store.

Contains:
- Schema DDL (SCHEMA) and version tracking (SCHEMA_VERSION)
- Collection allowlist (ALLOWED_COLLECTIONS, validate_collection_name)
- Database initialization (init_db)
"""

import logging
import sqlite3

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Logical collections; every collection shares the ``records`` table
ALLOWED_COLLECTIONS = frozenset(
    {
        "transactions",
        "categories",
        "vendorRules",
        "recurringExceptions",
        "settings",
    }
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Keys are scope-qualified: "<scope>::<logical key>"
CREATE TABLE IF NOT EXISTS records (
    collection TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (collection, key)
);
"""


def validate_collection_name(collection: str) -> str:
    """Validate a collection name against the allowlist.

    Raises:
        ValueError: If the collection is unknown
    """
    if collection not in ALLOWED_COLLECTIONS:
        raise ValueError(f"Invalid collection name: {collection}")
    return collection


def init_db(conn: sqlite3.Connection) -> None:
    """Create tables and record the schema version."""
    conn.executescript(SCHEMA)
    row = conn.execute("SELECT MAX(version) AS version FROM schema_version").fetchone()
    current = row["version"] if row and row["version"] is not None else 0
    if current < SCHEMA_VERSION:
        logger.info(f"Initializing store schema v{SCHEMA_VERSION} (was v{current})")
        conn.execute("INSERT OR REPLACE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
