"""
spentsync CLI - trigger sync cycles and inspect the local store.

Usage:
    spentsync sync [--json]
    spentsync normalize [--json]
    spentsync status [--json]
    spentsync seed-categories
    spentsync clear-scope SCOPE
"""

import argparse
import logging
import sys
from typing import Optional

from spentsync.config import SyncConfig, get_config
from spentsync.storage import GUEST_SCOPE, LocalRepository, ScopedStore, validate_scope
from spentsync.sync import IdentifierNormalizer, SyncOrchestrator, supabase_remote_from_config
from spentsync.types import SyncStatus, ms_to_iso

from .reports import NormalizeReport, StatusReport, SyncReport

logger = logging.getLogger(__name__)


def _resolve_scope(args, config: SyncConfig) -> str:
    """Explicit --scope, else the signed-in user, else the guest scope."""
    if args.scope:
        return validate_scope(args.scope)
    remote = supabase_remote_from_config(config)
    if remote is not None:
        user_id = remote.current_user_id()
        if user_id:
            return user_id
    return GUEST_SCOPE


def cmd_sync(args, store: ScopedStore, config: SyncConfig) -> int:
    """Run one sync cycle for the signed-in user."""
    orchestrator = SyncOrchestrator(store, lambda: supabase_remote_from_config(config))
    outcome = orchestrator.run_cycle()

    if args.json:
        print(SyncReport.from_outcome(outcome).model_dump_json(indent=2))
    elif outcome.status == SyncStatus.DISABLED:
        print("Sync disabled: remote not configured or not signed in")
    elif outcome.status in (SyncStatus.OK, SyncStatus.PARTIAL):
        pulled = sum(outcome.pulled.values())
        pushed = sum(outcome.pushed.values())
        print(f"✓ Synced {outcome.scope}: {pulled} pulled, {pushed} pushed")
        for error in outcome.errors:
            print(f"  ⚠ {error}")
    else:
        print(f"✗ Sync {outcome.status.value}")
        for error in outcome.errors:
            print(f"  {error}")

    return 0 if outcome.status in (SyncStatus.OK, SyncStatus.DISABLED) else 1


def cmd_normalize(args, store: ScopedStore, config: SyncConfig) -> int:
    """Rewrite legacy identifiers in one scope."""
    scope = _resolve_scope(args, config)
    result = IdentifierNormalizer(store).normalize_scope(scope)

    if args.json:
        report = NormalizeReport(scope=scope, changed=result.changed, renamed=result.rename_map)
        print(report.model_dump_json(indent=2))
    elif result.changed:
        print(f"✓ Normalized {len(result.rename_map)} identifiers in {scope}")
        for old_id, new_id in sorted(result.rename_map.items()):
            print(f"  {old_id} → {new_id}")
    else:
        print(f"Identifiers in {scope} already canonical")
    return 0


def cmd_status(args, store: ScopedStore, config: SyncConfig) -> int:
    """Show watermarks, the last sync error and record counts."""
    scope = _resolve_scope(args, config)
    settings = LocalRepository(store, scope).load_settings()
    counts = store.stats(scope)

    if args.json:
        report = StatusReport(
            scope=scope,
            remote_configured=config.is_remote_configured,
            last_pull_at=ms_to_iso(settings.last_pull_at),
            last_push_at=ms_to_iso(settings.last_push_at),
            last_sync_error=settings.last_sync_error,
            counts=counts,
        )
        print(report.model_dump_json(indent=2))
        return 0

    print(f"Scope: {scope}")
    print(f"Remote: {'configured' if config.is_remote_configured else 'not configured'}")
    print(f"Last pull: {ms_to_iso(settings.last_pull_at) or 'never'}")
    print(f"Last push: {ms_to_iso(settings.last_push_at) or 'never'}")
    if settings.last_sync_error:
        print(f"Last error: {settings.last_sync_error}")
    for collection, count in counts.items():
        print(f"  {collection}: {count}")
    return 0


def cmd_seed_categories(args, store: ScopedStore, config: SyncConfig) -> int:
    """Upsert the reserved system categories for the signed-in user."""
    remote = supabase_remote_from_config(config)
    user_id = remote.current_user_id() if remote is not None else None
    if not user_id:
        print("✗ Not signed in: set SPENTSYNC_SUPABASE_URL, a key and session tokens")
        return 1
    remote.ensure_system_categories(user_id)
    print(f"✓ System categories ensured for {user_id}")
    return 0


def cmd_clear_scope(args, store: ScopedStore, config: SyncConfig) -> int:
    """Delete every local record of one scope."""
    removed = store.clear_scope(args.target)
    print(f"✓ Removed {removed} records from {args.target}")
    return 0


COMMANDS = {
    "sync": cmd_sync,
    "normalize": cmd_normalize,
    "status": cmd_status,
    "seed-categories": cmd_seed_categories,
    "clear-scope": cmd_clear_scope,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spentsync",
        description="Offline-first sync for a personal finance tracker",
    )
    parser.add_argument("--db", help="Path to the local SQLite store", default=None)
    parser.add_argument("--scope", "-s", help="Scope (user id or 'guest')", default=None)

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_sync = subparsers.add_parser("sync", help="Run one sync cycle")
    p_sync.add_argument("--json", "-j", action="store_true")

    p_normalize = subparsers.add_parser("normalize", help="Migrate legacy ids to UUIDs")
    p_normalize.add_argument("--json", "-j", action="store_true")

    p_status = subparsers.add_parser("status", help="Show sync status")
    p_status.add_argument("--json", "-j", action="store_true")

    subparsers.add_parser("seed-categories", help="Upsert system categories remotely")

    p_clear = subparsers.add_parser("clear-scope", help="Delete one scope's local data")
    p_clear.add_argument("target", metavar="SCOPE", help="Scope to clear")

    return parser


def main(argv: Optional[list] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_config()
    logging.basicConfig(level=config.log_level)

    try:
        store = ScopedStore(args.db or config.resolve_db_path())
        code = COMMANDS[args.command](args, store, config)
    except (ValueError, TypeError) as e:
        logger.error(f"Input validation error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
