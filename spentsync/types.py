"""
Shared entity types for spentsync.

All synchronized records live here. These are the shared vocabulary between
the local store, the identifier normalizer, the merger and the sync
orchestrator. Every entity carries an ``id``, an optional ``updated_at``
and an optional ``deleted_at`` tombstone, both as epoch milliseconds.

Records are stored locally as camelCase JSON documents (``to_dict`` /
``from_dict``), the same shape the client application keeps in memory.
"""

import re
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# === Shared Utility Functions ===


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return (datetime.now(timezone.utc) - _EPOCH) // timedelta(milliseconds=1)


def utc_now() -> str:
    """Get current timestamp as ISO string in UTC."""
    return datetime.now(timezone.utc).isoformat()


def ms_to_iso(ms: Optional[int]) -> Optional[str]:
    """Convert epoch milliseconds to an ISO-8601 UTC string (``...T12:00:00.000Z``)."""
    if ms is None:
        return None
    dt = _EPOCH + timedelta(milliseconds=ms)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def iso_to_ms(s: Optional[str]) -> Optional[int]:
    """Parse an ISO-8601 timestamp into epoch milliseconds.

    Naive timestamps are treated as UTC. Returns None for empty input.
    """
    if not s:
        return None
    parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (parsed - _EPOCH) // timedelta(milliseconds=1)


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


E = TypeVar("E")


def record_to_dict(record: Any) -> Dict[str, Any]:
    """Serialize a dataclass record to a camelCase dict, dropping None values."""
    data = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if value is not None:
            data[to_camel(f.name)] = value
    return data


def record_from_dict(cls: Type[E], data: Dict[str, Any]) -> E:
    """Build a dataclass record from a camelCase (or snake_case) dict.

    Keys that do not correspond to a field are ignored.
    """
    names = {f.name for f in fields(cls)}
    kwargs = {}
    for key, value in data.items():
        name = key if key in names else to_snake(key)
        if name in names:
            kwargs[name] = value
    return cls(**kwargs)


# === Entities ===


@dataclass
class Transaction:
    """An expense, or a recurring rule when ``is_recurring`` is set."""

    id: str
    vendor: str
    amount: float
    category: str  # Category.id
    date: str  # ISO date (YYYY-MM-DD)
    note: Optional[str] = None
    photo_url: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurrence_type: Optional[str] = None  # 'weekly' | 'monthly'
    end_date: Optional[str] = None
    is_active: Optional[bool] = None
    ended_at: Optional[str] = None  # Cutoff date when a rule was ended
    updated_at: Optional[int] = None
    deleted_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return record_to_dict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return record_from_dict(cls, data)


@dataclass
class Category:
    """A spending category."""

    id: str
    name: str
    icon: str = "Box"
    color: str = "#cccccc"
    group: str = "Other"
    updated_at: Optional[int] = None
    deleted_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return record_to_dict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return record_from_dict(cls, data)


@dataclass
class VendorRule:
    """Maps a vendor substring to a category."""

    id: str
    vendor_contains: str
    category_id: str  # Category.id
    source: str = "user"  # 'default' | 'user'
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    deleted_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return record_to_dict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VendorRule":
        if "vendorContains" not in data and "vendor" in data:
            data = {**data, "vendorContains": data["vendor"]}
        return record_from_dict(cls, data)


@dataclass
class RecurringException:
    """A skipped or annotated occurrence of a recurring rule.

    The id is derived from ``rule_id`` and ``date``; it is never persisted
    remotely.
    """

    rule_id: str  # Transaction.id of the recurring rule
    date: str
    skipped: bool = False
    note: Optional[str] = None
    updated_at: Optional[int] = None
    deleted_at: Optional[int] = None

    @property
    def id(self) -> str:
        return f"{self.rule_id}-{self.date}"

    def to_dict(self) -> Dict[str, Any]:
        data = record_to_dict(self)
        data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecurringException":
        return record_from_dict(cls, data)


@dataclass
class Settings:
    """Singleton application settings, including the sync watermarks."""

    notifications: bool = True
    google_calendar_sync: bool = False
    default_category_filter: Optional[List[str]] = None
    last_pull_at: Optional[int] = None
    last_push_at: Optional[int] = None
    last_sync_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return record_to_dict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        return record_from_dict(cls, data)

    def apply_patch(self, patch: Dict[str, Any]) -> "Settings":
        """Return a copy with the snake_case ``patch`` keys applied."""
        return replace(self, **patch)


def touch(entity: E, now: Optional[int] = None) -> E:
    """Return a copy of ``entity`` with a fresh ``updated_at``."""
    return replace(entity, updated_at=now if now is not None else now_ms())


def tombstone(entity: E, now: Optional[int] = None) -> E:
    """Return a tombstoned copy of ``entity``.

    The record is kept so the deletion can propagate on the next sync.
    """
    ts = now if now is not None else now_ms()
    return replace(entity, deleted_at=ts, updated_at=ts)


@dataclass
class SyncCollections:
    """The four synchronized collections of one scope."""

    transactions: List[Transaction] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    vendor_rules: List[VendorRule] = field(default_factory=list)
    exceptions: List[RecurringException] = field(default_factory=list)

    def get(self, name: str) -> List[Any]:
        return getattr(self, name)

    def total(self) -> int:
        return (
            len(self.transactions)
            + len(self.categories)
            + len(self.vendor_rules)
            + len(self.exceptions)
        )


# === Sync Types ===


class SyncStatus(str, Enum):
    """Terminal status of one sync cycle."""

    OK = "ok"  # All collections pulled and pushed
    PARTIAL = "partial"  # Completed with per-collection errors
    FATAL = "fatal"  # Aborted; nothing persisted
    DISABLED = "disabled"  # Remote unconfigured or signed out
    BUSY = "busy"  # Another cycle is running for the scope
    CANCELLED = "cancelled"  # Caller cancelled before completion


@dataclass
class SyncOutcome:
    """Result of one sync cycle.

    ``collections`` is the authoritative post-cycle snapshot for the caller;
    on the fatal path it is the original, unmodified local input.
    """

    status: SyncStatus
    scope: Optional[str] = None
    collections: Optional[SyncCollections] = None
    settings_patch: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    pulled: Dict[str, int] = field(default_factory=dict)
    pushed: Dict[str, int] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == SyncStatus.OK
