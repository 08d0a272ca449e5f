"""Remote store access via Supabase (PostgREST).

The orchestrator talks to the remote through the small ``RemoteStore``
protocol, so tests and alternative backends can stand in for Supabase.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from supabase import Client, ClientOptions, create_client

from spentsync.config import SyncConfig
from spentsync.constants import SYSTEM_CATEGORIES
from spentsync.errors import RemoteUnavailableError
from spentsync.types import now_ms

from .mappers import category_to_row

logger = logging.getLogger(__name__)

# =============================================================================
# Table Names
# =============================================================================

EXPENSES_TABLE = "expenses"
CATEGORIES_TABLE = "categories"
VENDOR_RULES_TABLE = "vendor_rules"
RECURRING_EXCEPTIONS_TABLE = "recurring_exceptions"

PAGE_SIZE = 1000

# Unique key per table, used as the tie-breaker after updated_at when paging
TABLE_KEYS = {
    EXPENSES_TABLE: ("id",),
    CATEGORIES_TABLE: ("id",),
    VENDOR_RULES_TABLE: ("id",),
    RECURRING_EXCEPTIONS_TABLE: ("rule_id", "date"),
}


def _quote(value: Any) -> str:
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _after_filter(row: Dict[str, Any], key_columns: Sequence[str]) -> str:
    """PostgREST filter for rows sorting after ``row`` on (updated_at, *keys).

    For columns ``(a, b)`` this is ``or(a.gt.A,and(a.eq.A,b.gt.B))``.
    """
    columns = ("updated_at",) + tuple(key_columns)
    clauses = []
    for i, column in enumerate(columns):
        terms = [f"{prior}.eq.{_quote(row[prior])}" for prior in columns[:i]]
        terms.append(f"{column}.gt.{_quote(row[column])}")
        clauses.append(terms[0] if len(terms) == 1 else f"and({','.join(terms)})")
    return f"or({','.join(clauses)})"


@runtime_checkable
class RemoteStore(Protocol):
    """What the sync orchestrator needs from a remote store."""

    def current_user_id(self) -> Optional[str]:
        """Id of the signed-in user, or None when signed out."""
        ...

    def query_changed_since(self, table: str, since_iso: str) -> List[Dict[str, Any]]:
        """Rows whose ``updated_at`` or ``deleted_at`` is after ``since_iso``."""
        ...

    def upsert(self, table: str, rows: Sequence[Dict[str, Any]]) -> None:
        """Insert or update rows keyed by primary key."""
        ...

    def ensure_system_categories(self, user_id: str) -> None: ...


class SupabaseRemote:
    """RemoteStore backed by a Supabase client.

    Args:
        client: A configured Supabase client.
        access_token: Session access token of the signed-in user.
        refresh_token: Session refresh token of the signed-in user.
        page_size: Rows fetched per request when pulling.
    """

    def __init__(
        self,
        client: Client,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        page_size: int = PAGE_SIZE,
    ):
        self.client = client
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._session_applied = False
        self.page_size = page_size

    def current_user_id(self) -> Optional[str]:
        """Resolve the signed-in user from the session.

        Raises whatever the auth client raises for an invalid session; that is
        a failure to resolve the scope, not a signed-out state.
        """
        if not self._session_applied and self._access_token and self._refresh_token:
            self.client.auth.set_session(self._access_token, self._refresh_token)
            self._session_applied = True

        session = self.client.auth.get_session()
        if not session or not session.user:
            return None
        return session.user.id

    def query_changed_since(self, table: str, since_iso: str) -> List[Dict[str, Any]]:
        """Rows changed after ``since_iso``, paged by keyset.

        Pages are ordered on ``updated_at`` plus the table key, and each
        request resumes after the last row of the previous page. A row
        edited on another device mid-pull comes back at its new position
        and replaces its earlier copy.
        """
        key_columns = TABLE_KEYS.get(table, ("id",))
        changed = f"updated_at.gt.{since_iso},deleted_at.gt.{since_iso}"
        rows: Dict[tuple, Dict[str, Any]] = {}
        cursor: Optional[Dict[str, Any]] = None
        while True:
            query = self.client.table(table).select("*")
            if cursor is None:
                query = query.or_(changed)
            else:
                query = query.or_(f"and(or({changed}),{_after_filter(cursor, key_columns)})")
            for column in ("updated_at",) + key_columns:
                query = query.order(column)
            page = query.limit(self.page_size).execute().data or []

            for row in page:
                key = tuple(row.get(column) for column in key_columns)
                rows.pop(key, None)
                rows[key] = row
            if len(page) < self.page_size:
                break
            cursor = page[-1]
            if cursor.get("updated_at") is None:
                logger.warning(f"Row without updated_at in {table}; stopping pull after {len(rows)} rows")
                break
        logger.debug(f"Pulled {len(rows)} rows from {table} since {since_iso}")
        return list(rows.values())

    def upsert(self, table: str, rows: Sequence[Dict[str, Any]]) -> None:
        if not rows:
            return
        self.client.table(table).upsert(list(rows)).execute()
        logger.debug(f"Upserted {len(rows)} rows into {table}")

    def ensure_system_categories(self, user_id: str) -> None:
        """Upsert the reserved ``cat-*`` categories for ``user_id``."""
        ts = now_ms()
        rows = [
            category_to_row(replace(category, updated_at=ts, deleted_at=None), user_id)
            for category in SYSTEM_CATEGORIES
        ]
        self.upsert(CATEGORIES_TABLE, rows)
        logger.info(f"Ensured {len(rows)} system categories for {user_id}")


def supabase_remote_from_config(config: SyncConfig) -> Optional[SupabaseRemote]:
    """Build a SupabaseRemote, or return None when the remote is unconfigured."""
    if not config.is_remote_configured:
        logger.debug("Remote store not configured")
        return None
    try:
        client = create_client(
            config.supabase_url,
            config.supabase_key,
            options=ClientOptions(postgrest_client_timeout=config.postgrest_client_timeout),
        )
    except Exception as e:
        raise RemoteUnavailableError(f"Cannot create Supabase client: {e}") from e
    return SupabaseRemote(
        client,
        access_token=config.access_token,
        refresh_token=config.refresh_token,
    )
