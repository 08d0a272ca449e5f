"""Typed access to one scope's entity collections in the ScopedStore."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

from spentsync.types import (
    Category,
    RecurringException,
    Settings,
    SyncCollections,
    Transaction,
    VendorRule,
    now_ms,
    tombstone,
)

from .scoped import ScopedStore, validate_scope

logger = logging.getLogger(__name__)

SETTINGS_COLLECTION = "settings"
SETTINGS_KEY = "app_settings"

# SyncCollections attribute -> (store collection, entity class)
ENTITY_COLLECTIONS: Dict[str, Tuple[str, Type[Any]]] = {
    "transactions": ("transactions", Transaction),
    "categories": ("categories", Category),
    "vendor_rules": ("vendorRules", VendorRule),
    "exceptions": ("recurringExceptions", RecurringException),
}


def store_collection_for(entity: Any) -> str:
    for collection, cls in ENTITY_COLLECTIONS.values():
        if isinstance(entity, cls):
            return collection
    raise ValueError(f"Not a synchronized entity: {type(entity).__name__}")


class LocalRepository:
    """Load and persist entities for a single scope.

    Args:
        store: The shared ScopedStore instance.
        scope: Tenant namespace (user id, or the guest scope).
    """

    def __init__(self, store: ScopedStore, scope: str):
        self.store = store
        self.scope = validate_scope(scope)

    def load(self, name: str) -> List[Any]:
        collection, cls = ENTITY_COLLECTIONS[name]
        return [cls.from_dict(doc) for doc in self.store.get_all(collection, self.scope)]

    def load_collections(self) -> SyncCollections:
        return SyncCollections(**{name: self.load(name) for name in ENTITY_COLLECTIONS})

    def save(self, name: str, entities: Iterable[Any]) -> int:
        """Write entities one record at a time; returns the number written."""
        collection, _ = ENTITY_COLLECTIONS[name]
        written = 0
        for entity in entities:
            self.store.set(collection, entity.id, entity.to_dict(), self.scope)
            written += 1
        return written

    def save_collections(self, collections: SyncCollections) -> int:
        return sum(self.save(name, collections.get(name)) for name in ENTITY_COLLECTIONS)

    def put(self, entity: Any) -> None:
        self.store.set(store_collection_for(entity), entity.id, entity.to_dict(), self.scope)

    def get(self, name: str, entity_id: str) -> Optional[Any]:
        collection, cls = ENTITY_COLLECTIONS[name]
        doc = self.store.get(collection, entity_id, self.scope)
        return cls.from_dict(doc) if doc is not None else None

    def tombstone(self, name: str, entity_id: str, now: Optional[int] = None) -> Optional[Any]:
        """Mark a record deleted. The record stays so the delete can sync."""
        entity = self.get(name, entity_id)
        if entity is None:
            return None
        deleted = tombstone(entity, now if now is not None else now_ms())
        self.put(deleted)
        return deleted

    def load_settings(self) -> Settings:
        doc = self.store.get(SETTINGS_COLLECTION, SETTINGS_KEY, self.scope)
        return Settings.from_dict(doc) if doc else Settings()

    def save_settings(self, settings: Settings) -> None:
        self.store.set(SETTINGS_COLLECTION, SETTINGS_KEY, settings.to_dict(), self.scope)
