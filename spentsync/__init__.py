"""
spentsync - offline-first sync core for a personal finance tracker.

Local data is the source of truth; cycles reconcile it with a Supabase
remote under last-writer-wins.
"""

from .storage import GUEST_SCOPE, LocalRepository, ScopedStore
from .sync import IdentifierNormalizer, SyncOrchestrator, merge_collections, normalize_identifiers
from .types import SyncCollections, SyncOutcome, SyncStatus

try:
    from importlib.metadata import version

    __version__ = version("spentsync")
except Exception:
    __version__ = "0.0.0"

__all__ = [
    "GUEST_SCOPE",
    "IdentifierNormalizer",
    "LocalRepository",
    "ScopedStore",
    "SyncCollections",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncStatus",
    "merge_collections",
    "normalize_identifiers",
]
