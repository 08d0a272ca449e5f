"""Conversion between local records and remote (PostgREST) rows.

Remote rows use snake_case columns and ISO-8601 timestamps, and carry the
owning ``user_id``. Local records use epoch-millisecond timestamps.
"""

from typing import Any, Dict, Optional

from spentsync.constants import is_system_category_id
from spentsync.types import (
    Category,
    RecurringException,
    Transaction,
    VendorRule,
    iso_to_ms,
    ms_to_iso,
    utc_now,
)


def _updated_at_iso(ms: Optional[int]) -> str:
    return ms_to_iso(ms) if ms else utc_now()


def _date_only(value: Optional[str]) -> Optional[str]:
    """``2024-03-01T00:00:00+00:00`` -> ``2024-03-01``."""
    if not value:
        return None
    return value.split("T", 1)[0]


def _date_to_timestamp(value: Optional[str]) -> Optional[str]:
    """Widen a local ISO date to a UTC midnight timestamp for timestamptz columns."""
    if not value:
        return None
    if "T" in value:
        return value
    return f"{value}T00:00:00+00:00"


# === Transactions (remote table: expenses) ===


def row_to_transaction(row: Dict[str, Any]) -> Transaction:
    return Transaction(
        id=row["id"],
        vendor=row.get("vendor"),
        amount=row.get("amount"),
        category=row.get("category_id"),
        date=row.get("date"),
        note=row.get("note") or None,
        photo_url=row.get("photo_url") or None,
        is_recurring=row.get("is_recurring"),
        recurrence_type=row.get("recurrence_type") or None,
        end_date=row.get("end_date") or None,
        is_active=row.get("is_active"),
        ended_at=_date_only(row.get("ended_at")),
        updated_at=iso_to_ms(row.get("updated_at")),
        deleted_at=iso_to_ms(row.get("deleted_at")),
    )


def transaction_to_row(local: Transaction, user_id: str) -> Dict[str, Any]:
    return {
        "id": local.id,
        "user_id": user_id,
        "vendor": local.vendor,
        "category_id": local.category,
        "amount": local.amount,
        "date": local.date,
        "note": local.note,
        "photo_url": local.photo_url,
        "is_recurring": bool(local.is_recurring),
        "recurrence_type": local.recurrence_type,
        "end_date": local.end_date,
        "is_active": True if local.is_active is None else local.is_active,
        "ended_at": _date_to_timestamp(local.ended_at),
        "updated_at": _updated_at_iso(local.updated_at),
        "deleted_at": ms_to_iso(local.deleted_at),
    }


# === Categories ===


def row_to_category(row: Dict[str, Any]) -> Category:
    return Category(
        id=row["id"],
        name=row.get("name"),
        icon=row.get("icon") or "Box",
        color=row.get("color") or "#cccccc",
        group=row.get("group") or "Other",
        updated_at=iso_to_ms(row.get("updated_at")),
        deleted_at=iso_to_ms(row.get("deleted_at")),
    )


def category_to_row(local: Category, user_id: str) -> Dict[str, Any]:
    return {
        "id": local.id,
        "user_id": user_id,
        "name": local.name,
        "icon": local.icon,
        "color": local.color,
        "group": local.group,
        "is_system": is_system_category_id(local.id),
        "updated_at": _updated_at_iso(local.updated_at),
        "deleted_at": ms_to_iso(local.deleted_at),
    }


# === Vendor rules ===


def row_to_vendor_rule(row: Dict[str, Any]) -> VendorRule:
    return VendorRule(
        id=row["id"],
        vendor_contains=row.get("vendor_contains"),
        category_id=row.get("category_id"),
        source="default" if row.get("source") == "system" else "user",
        created_at=iso_to_ms(row.get("created_at")),
        updated_at=iso_to_ms(row.get("updated_at")),
        deleted_at=iso_to_ms(row.get("deleted_at")),
    )


def vendor_rule_to_row(local: VendorRule, user_id: str) -> Dict[str, Any]:
    return {
        "id": local.id,
        "user_id": user_id,
        "vendor_contains": local.vendor_contains,
        "category_id": local.category_id,
        "source": "system" if local.source == "default" else "user",
        "created_at": ms_to_iso(local.created_at or local.updated_at) or utc_now(),
        "updated_at": _updated_at_iso(local.updated_at),
        "deleted_at": ms_to_iso(local.deleted_at),
    }


# === Recurring exceptions (primary key: rule_id + date, no id column) ===


def row_to_exception(row: Dict[str, Any]) -> RecurringException:
    return RecurringException(
        rule_id=row["rule_id"],
        date=row["date"],
        skipped=bool(row.get("skipped")),
        note=row.get("note") or None,
        updated_at=iso_to_ms(row.get("updated_at")),
        deleted_at=iso_to_ms(row.get("deleted_at")),
    )


def exception_to_row(local: RecurringException, user_id: str) -> Dict[str, Any]:
    return {
        "rule_id": local.rule_id,
        "date": local.date,
        "user_id": user_id,
        "skipped": local.skipped,
        "note": local.note,
        "updated_at": _updated_at_iso(local.updated_at),
        "deleted_at": ms_to_iso(local.deleted_at),
    }
