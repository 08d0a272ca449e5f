"""Declarative description of the four synchronized collections.

Each collection shares one pull/merge/push code path in the orchestrator;
only the table, the row mappers and the push eligibility rule differ.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

from spentsync.types import Category, RecurringException, Transaction, VendorRule

from . import mappers
from .identifiers import is_canonical_category_ref, is_uuid
from .remote import (
    CATEGORIES_TABLE,
    EXPENSES_TABLE,
    RECURRING_EXCEPTIONS_TABLE,
    VENDOR_RULES_TABLE,
)


@dataclass(frozen=True)
class CollectionSpec:
    """How one collection is pulled, merged and pushed.

    Attributes:
        name: Attribute name on SyncCollections.
        label: Human-readable tag used in ``last_sync_error`` messages.
        table: Remote table name.
        row_to_local: Maps a remote row to a local record.
        local_to_row: Maps a local record (plus owning user id) to a remote row.
        is_pushable: False for records whose identifiers are not canonical yet.
        optional: The remote table may not be deployed; "schema cache"
            errors are logged but not recorded.
    """

    name: str
    label: str
    table: str
    row_to_local: Callable[[Dict[str, Any]], Any]
    local_to_row: Callable[[Any, str], Dict[str, Any]]
    is_pushable: Callable[[Any], bool]
    optional: bool = False


def _transaction_pushable(txn: Transaction) -> bool:
    return is_uuid(txn.id)


def _category_pushable(cat: Category) -> bool:
    return is_canonical_category_ref(cat.id)


def _vendor_rule_pushable(rule: VendorRule) -> bool:
    return is_uuid(rule.id)


def _exception_pushable(exc: RecurringException) -> bool:
    # Exception ids are derived; the persisted identifier is the rule id
    return is_uuid(exc.rule_id)


SYNC_COLLECTIONS: Tuple[CollectionSpec, ...] = (
    CollectionSpec(
        name="transactions",
        label="Expenses",
        table=EXPENSES_TABLE,
        row_to_local=mappers.row_to_transaction,
        local_to_row=mappers.transaction_to_row,
        is_pushable=_transaction_pushable,
    ),
    CollectionSpec(
        name="categories",
        label="Categories",
        table=CATEGORIES_TABLE,
        row_to_local=mappers.row_to_category,
        local_to_row=mappers.category_to_row,
        is_pushable=_category_pushable,
    ),
    CollectionSpec(
        name="vendor_rules",
        label="Vendor Rules",
        table=VENDOR_RULES_TABLE,
        row_to_local=mappers.row_to_vendor_rule,
        local_to_row=mappers.vendor_rule_to_row,
        is_pushable=_vendor_rule_pushable,
    ),
    CollectionSpec(
        name="exceptions",
        label="Recurring Exceptions",
        table=RECURRING_EXCEPTIONS_TABLE,
        row_to_local=mappers.row_to_exception,
        local_to_row=mappers.exception_to_row,
        is_pushable=_exception_pushable,
        optional=True,
    ),
)
