"""Sync orchestrator: one full local/remote reconciliation cycle.

A cycle moves through ``IDLE -> PULLING -> MERGING -> PUSHING -> PERSISTING
-> IDLE`` and is always triggered by the caller; nothing here schedules
itself.

Failure isolation:
- Each collection's pull (and merge) and each collection's push is its own
  failure domain. A failure is recorded as a collection-tagged message and
  the remaining collections carry on; a collection whose pull failed keeps
  its pre-cycle local copy.
- Anything failing outside those boundaries (resolving the scope, loading
  from or persisting to the local store) is fatal: the cycle aborts, the
  caller gets back its original collections, and ``last_sync_error`` records
  a ``Fatal:`` message.

Watermarks: one ``sync_timestamp`` is captured before the first remote call
and becomes both ``last_pull_at`` and ``last_push_at`` at the end, so a slow
cycle cannot skip changes written while it was running.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from spentsync.errors import (
    FatalSyncError,
    PerCollectionSyncError,
    StorageUnavailableError,
    error_message,
)
from spentsync.storage.repository import LocalRepository
from spentsync.storage.scoped import ScopedStore, validate_scope
from spentsync.types import (
    Settings,
    SyncCollections,
    SyncOutcome,
    SyncStatus,
    ms_to_iso,
    now_ms,
)

from .collections import SYNC_COLLECTIONS, CollectionSpec
from .merge import merge_collections
from .remote import RemoteStore

logger = logging.getLogger(__name__)

# PostgREST reports a table missing from its schema cache this way
SCHEMA_CACHE_MARKER = "schema cache"

SyncCallback = Callable[[SyncCollections, Dict[str, Any]], None]


class SyncPhase(str, Enum):
    IDLE = "idle"
    PULLING = "pulling"
    MERGING = "merging"
    PUSHING = "pushing"
    PERSISTING = "persisting"


class _Cancelled(Exception):
    pass


class SyncOrchestrator:
    """Coordinates sync cycles for the four entity collections.

    At most one cycle runs per scope; a second call for a scope that is
    already syncing returns immediately with ``SyncStatus.BUSY``.

    Args:
        store: The shared ScopedStore instance.
        remote_factory: Returns the remote store, or None if unconfigured.
        clock: Returns the current time in epoch milliseconds.
        collections: Collection declarations; defaults to all four.
    """

    def __init__(
        self,
        store: ScopedStore,
        remote_factory: Callable[[], Optional[RemoteStore]],
        clock: Callable[[], int] = now_ms,
        collections: Sequence[CollectionSpec] = SYNC_COLLECTIONS,
    ):
        self.store = store
        self.remote_factory = remote_factory
        self.clock = clock
        self.collections = tuple(collections)
        self._guard = threading.Lock()
        # Scopes with a cycle in flight; an entry lives only as long as its cycle
        self._phases: Dict[str, SyncPhase] = {}

    # === In-flight guard ===

    def _begin(self, scope: str) -> bool:
        """Claim ``scope`` for a new cycle; False if one is already running."""
        with self._guard:
            if scope in self._phases:
                return False
            self._phases[scope] = SyncPhase.IDLE
            return True

    def _finish(self, scope: str):
        with self._guard:
            self._phases.pop(scope, None)

    def phase(self, scope: str) -> SyncPhase:
        """Current phase of the cycle running for ``scope``."""
        return self._phases.get(scope, SyncPhase.IDLE)

    def is_syncing(self, scope: str) -> bool:
        return scope in self._phases

    def _enter(self, scope: str, phase: SyncPhase):
        logger.debug(f"Sync {scope}: {self.phase(scope).value} -> {phase.value}")
        self._phases[scope] = phase

    # === Cycle ===

    def run_cycle(
        self,
        local: Optional[SyncCollections] = None,
        settings: Optional[Settings] = None,
        on_complete: Optional[SyncCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncOutcome:
        """Run one sync cycle.

        Args:
            local: Current in-memory collections. Loaded from the store for the
                resolved scope when omitted.
            settings: Current settings (watermarks). Loaded when omitted.
            on_complete: Receives the resulting collections and the settings
                patch, to update live application state.
            cancel_event: When set, no further remote calls are made, nothing
                is persisted and watermarks stay put.

        Returns:
            SyncOutcome. This method does not raise for sync failures; they
            are reported through the outcome and ``last_sync_error``.
        """
        try:
            remote = self.remote_factory()
            if remote is None:
                logger.debug("Sync disabled: remote store not configured")
                return SyncOutcome(status=SyncStatus.DISABLED)

            user_id = remote.current_user_id()
            if not user_id:
                logger.debug("Sync disabled: user not signed in")
                return SyncOutcome(status=SyncStatus.DISABLED)
            scope = validate_scope(user_id)
        except Exception as e:
            return self._fatal(e, None, local, settings, on_complete)

        if not self._begin(scope):
            logger.info(f"Sync already in progress for {scope}, dropping request")
            return SyncOutcome(status=SyncStatus.BUSY, scope=scope)

        try:
            return self._run_locked(
                remote, user_id, scope, local, settings, on_complete, cancel_event
            )
        finally:
            self._finish(scope)

    def _run_locked(
        self,
        remote: RemoteStore,
        user_id: str,
        scope: str,
        local: Optional[SyncCollections],
        settings: Optional[Settings],
        on_complete: Optional[SyncCallback],
        cancel_event: Optional[threading.Event],
    ) -> SyncOutcome:
        repo = LocalRepository(self.store, scope)

        def check_cancelled():
            if cancel_event is not None and cancel_event.is_set():
                raise _Cancelled()

        try:
            if local is None:
                local = repo.load_collections()
            if settings is None:
                settings = repo.load_settings()

            pull_watermark = settings.last_pull_at or 0
            push_watermark = settings.last_push_at or 0
            sync_timestamp = self.clock()
            since_iso = ms_to_iso(pull_watermark)

            errors: List[str] = []
            pulled: Dict[str, int] = {}
            pushed: Dict[str, int] = {}
            working = SyncCollections(
                **{spec.name: list(local.get(spec.name)) for spec in self.collections}
            )

            # Phase 1: pull, per collection
            self._enter(scope, SyncPhase.PULLING)
            remote_rows: Dict[str, List[Dict[str, Any]]] = {}
            for spec in self.collections:
                check_cancelled()
                try:
                    remote_rows[spec.name] = remote.query_changed_since(spec.table, since_iso)
                except Exception as e:
                    self._record(errors, spec, "Pull", e)

            # Phase 2: merge whatever was pulled
            self._enter(scope, SyncPhase.MERGING)
            for spec in self.collections:
                if spec.name not in remote_rows:
                    continue
                try:
                    merged = merge_collections(
                        local.get(spec.name), remote_rows[spec.name], spec.row_to_local
                    )
                except Exception as e:
                    self._record(errors, spec, "Pull", e)
                    continue
                setattr(working, spec.name, merged)
                pulled[spec.name] = len(remote_rows[spec.name])

            # Phase 3: push records changed since the last push
            self._enter(scope, SyncPhase.PUSHING)
            for spec in self.collections:
                check_cancelled()
                try:
                    pushed[spec.name] = self._push(remote, spec, working, push_watermark, user_id)
                except Exception as e:
                    self._record(errors, spec, "Push", e)

            check_cancelled()

            # Phase 4: persist, one record at a time
            self._enter(scope, SyncPhase.PERSISTING)
            repo.save_collections(working)
            patch = {
                "last_pull_at": sync_timestamp,
                "last_push_at": sync_timestamp,
                "last_sync_error": " | ".join(errors) if errors else None,
            }
            repo.save_settings(settings.apply_patch(patch))

        except _Cancelled:
            logger.info(f"Sync cancelled for {scope}; nothing persisted")
            return SyncOutcome(status=SyncStatus.CANCELLED, scope=scope)
        except Exception as e:
            return self._fatal(e, scope, local, settings, on_complete, repo)

        logger.info(
            f"Sync complete for {scope}: pulled={sum(pulled.values())}, "
            f"pushed={sum(pushed.values())}, errors={len(errors)}"
        )
        if on_complete is not None:
            on_complete(working, patch)

        return SyncOutcome(
            status=SyncStatus.PARTIAL if errors else SyncStatus.OK,
            scope=scope,
            collections=working,
            settings_patch=patch,
            errors=errors,
            pulled=pulled,
            pushed=pushed,
        )

    def _push(
        self,
        remote: RemoteStore,
        spec: CollectionSpec,
        working: SyncCollections,
        push_watermark: int,
        user_id: str,
    ) -> int:
        dirty = [e for e in working.get(spec.name) if e.updated_at and e.updated_at > push_watermark]
        valid = [e for e in dirty if spec.is_pushable(e)]
        if len(valid) < len(dirty):
            logger.debug(
                f"Skipping {len(dirty) - len(valid)} {spec.table} records with non-canonical ids"
            )
        if valid:
            remote.upsert(spec.table, [spec.local_to_row(e, user_id) for e in valid])
        return len(valid)

    def _record(self, errors: List[str], spec: CollectionSpec, phase: str, error: Exception):
        """Record a per-collection failure and carry on."""
        failure = PerCollectionSyncError(spec.label, phase, error_message(error))
        logger.warning(f"Sync {phase} ({spec.table}) failed: {failure.message}")
        if spec.optional and SCHEMA_CACHE_MARKER in failure.message:
            logger.info(f"Remote table {spec.table} not deployed; not recording error")
            return
        errors.append(str(failure))

    def _fatal(
        self,
        error: Exception,
        scope: Optional[str],
        local: Optional[SyncCollections],
        settings: Optional[Settings],
        on_complete: Optional[SyncCallback],
        repo: Optional[LocalRepository] = None,
    ) -> SyncOutcome:
        """Abort the cycle: keep local state, record a fatal error."""
        fatal = FatalSyncError(error)
        logger.error(f"Core sync failure: {error}", exc_info=True)
        patch = {"last_sync_error": str(fatal)}

        if repo is not None:
            try:
                base = settings if settings is not None else repo.load_settings()
                repo.save_settings(base.apply_patch(patch))
            except StorageUnavailableError as e:
                logger.warning(f"Could not record fatal sync error: {e}")

        if on_complete is not None and local is not None:
            on_complete(local, patch)

        return SyncOutcome(
            status=SyncStatus.FATAL,
            scope=scope,
            collections=local,
            settings_patch=patch,
            errors=[str(fatal)],
        )
