"""Identifier normalization: migrate legacy ids to canonical UUIDs.

Older clients minted ids from timestamps (``"1712345678901"``) or other
ad-hoc strings. The remote store only accepts canonical UUIDs (plus the
reserved ``cat-*`` system category ids), so legacy ids must be rewritten
before they can sync.

Renames are a graph problem: a category id is referenced by transactions and
vendor rules, and a recurring rule's id is referenced by its exceptions. One
rename map is built in a single pass and applied to every referencing field
in that same pass, so two records that pointed at the same legacy id point at
the same new id afterwards.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional

from spentsync.constants import is_system_category_id
from spentsync.storage.repository import ENTITY_COLLECTIONS, LocalRepository
from spentsync.storage.scoped import ScopedStore
from spentsync.types import (
    Category,
    RecurringException,
    SyncCollections,
    Transaction,
    VendorRule,
    now_ms,
)

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)


def is_uuid(value: Optional[str]) -> bool:
    """True if ``value`` is a canonical 8-4-4-4-12 hex UUID."""
    return bool(value) and _UUID_RE.fullmatch(value) is not None


def is_canonical_category_ref(value: Optional[str]) -> bool:
    return is_system_category_id(value) or is_uuid(value)


def new_uuid() -> str:
    return str(uuid.uuid4())


@dataclass
class NormalizationResult:
    """Output of one normalization pass."""

    collections: SyncCollections
    changed: bool = False
    rename_map: Dict[str, str] = field(default_factory=dict)


class _RenameMap:
    """old id -> new id, generating each new id once."""

    def __init__(self, id_factory: Callable[[], str]):
        self._id_factory = id_factory
        self.mapping: Dict[str, str] = {}

    def rename(self, old_id: str) -> str:
        if old_id not in self.mapping:
            self.mapping[old_id] = self._id_factory()
        return self.mapping[old_id]

    def lookup(self, old_id: str) -> Optional[str]:
        return self.mapping.get(old_id)


def normalize_identifiers(
    collections: SyncCollections,
    now: Optional[int] = None,
    id_factory: Callable[[], str] = new_uuid,
) -> NormalizationResult:
    """Rewrite legacy identifiers across the four collections of one scope.

    Inputs are never mutated; rewritten records are copies. Records that
    need no rewrite are returned as-is, so a second pass over the output
    reports ``changed=False`` and returns equal content.

    Args:
        collections: Current collections for a single scope.
        now: Timestamp used to bump ``updated_at`` on rewritten records.
        id_factory: Produces new canonical ids.
    """
    ts = now if now is not None else now_ms()
    renames = _RenameMap(id_factory)
    changed = False

    categories: List[Category] = []
    for cat in collections.categories:
        if not is_system_category_id(cat.id) and not is_uuid(cat.id):
            cat = replace(cat, id=renames.rename(cat.id), updated_at=ts)
            changed = True
        categories.append(cat)

    transactions: List[Transaction] = []
    for txn in collections.transactions:
        updates = {}
        if not is_uuid(txn.id):
            updates["id"] = renames.rename(txn.id)
        if not is_canonical_category_ref(txn.category):
            mapped = renames.lookup(txn.category)
            if mapped:
                updates["category"] = mapped
        if updates:
            txn = replace(txn, updated_at=ts, **updates)
            changed = True
        transactions.append(txn)

    vendor_rules: List[VendorRule] = []
    for rule in collections.vendor_rules:
        updates = {}
        if not is_uuid(rule.id):
            updates["id"] = renames.rename(rule.id)
        if not is_canonical_category_ref(rule.category_id):
            mapped = renames.lookup(rule.category_id)
            if mapped:
                updates["category_id"] = mapped
        if updates:
            rule = replace(rule, updated_at=ts, **updates)
            changed = True
        vendor_rules.append(rule)

    exceptions: List[RecurringException] = []
    for exc in collections.exceptions:
        mapped = renames.lookup(exc.rule_id)
        if mapped:
            # rule_id only; updated_at is left unchanged
            exc = replace(exc, rule_id=mapped)
            changed = True
        exceptions.append(exc)

    if changed:
        logger.info(f"Normalized {len(renames.mapping)} legacy identifiers")

    return NormalizationResult(
        collections=SyncCollections(
            transactions=transactions,
            categories=categories,
            vendor_rules=vendor_rules,
            exceptions=exceptions,
        ),
        changed=changed,
        rename_map=dict(renames.mapping),
    )


class IdentifierNormalizer:
    """Run identifier normalization against the local store.

    Args:
        store: The shared ScopedStore instance.
        clock: Returns the current time in epoch milliseconds.
        id_factory: Produces new canonical ids.
    """

    def __init__(
        self,
        store: ScopedStore,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = new_uuid,
    ):
        self.store = store
        self.clock = clock
        self.id_factory = id_factory

    def normalize(self, collections: SyncCollections) -> NormalizationResult:
        return normalize_identifiers(collections, now=self.clock(), id_factory=self.id_factory)

    def normalize_scope(self, scope: str) -> NormalizationResult:
        """Normalize everything stored under ``scope`` and write it back.

        Rewritten records are stored under their new keys first; entries left
        under retired legacy keys are removed afterwards.
        """
        repo = LocalRepository(self.store, scope)
        before = repo.load_collections()
        result = self.normalize(before)
        if not result.changed:
            logger.debug(f"Scope {scope!r}: identifiers already canonical")
            return result

        for name, (collection, _) in ENTITY_COLLECTIONS.items():
            repo.save(name, result.collections.get(name))
            kept = {entity.id for entity in result.collections.get(name)}
            for entity in before.get(name):
                if entity.id not in kept:
                    self.store.remove(collection, entity.id, scope)

        logger.info(f"Scope {scope!r}: rewrote {len(result.rename_map)} identifiers")
        return result
