"""spentsync local storage.

Local-first storage using SQLite, partitioned by scope.
"""

from .repository import ENTITY_COLLECTIONS, LocalRepository, store_collection_for
from .schema import ALLOWED_COLLECTIONS, validate_collection_name
from .scoped import GUEST_SCOPE, SCOPE_SEPARATOR, ScopedStore, scoped_key, validate_scope

__all__ = [
    "ALLOWED_COLLECTIONS",
    "ENTITY_COLLECTIONS",
    "GUEST_SCOPE",
    "LocalRepository",
    "SCOPE_SEPARATOR",
    "ScopedStore",
    "scoped_key",
    "store_collection_for",
    "validate_collection_name",
    "validate_scope",
]
