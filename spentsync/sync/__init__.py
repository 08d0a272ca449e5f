"""spentsync sync core.

- identifiers: legacy id -> UUID normalization
- merge: last-writer-wins collection merge
- remote: RemoteStore protocol and the Supabase implementation
- orchestrator: one full pull/merge/push/persist cycle
"""

from .collections import SYNC_COLLECTIONS, CollectionSpec
from .identifiers import (
    IdentifierNormalizer,
    NormalizationResult,
    is_canonical_category_ref,
    is_uuid,
    normalize_identifiers,
)
from .merge import merge_collections
from .orchestrator import SyncOrchestrator, SyncPhase
from .remote import RemoteStore, SupabaseRemote, supabase_remote_from_config

__all__ = [
    "CollectionSpec",
    "IdentifierNormalizer",
    "NormalizationResult",
    "RemoteStore",
    "SYNC_COLLECTIONS",
    "SupabaseRemote",
    "SyncOrchestrator",
    "SyncPhase",
    "is_canonical_category_ref",
    "is_uuid",
    "merge_collections",
    "normalize_identifiers",
    "supabase_remote_from_config",
]
