"""Last-writer-wins merge of a local collection with remote rows.

The merge is generic over any record with an ``id`` and an optional
``updated_at``; each collection supplies its own row-to-local mapper.

Known limitation: arbitration uses wall-clock ``updated_at`` values written
by each device. Two concurrent offline edits to the same record from devices
with skewed clocks, or with identical timestamps, cannot be resolved beyond
"greater timestamp wins, remote wins ties"; the losing edit is dropped.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Protocol, TypeVar

logger = logging.getLogger(__name__)


class Syncable(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def updated_at(self) -> "int | None": ...


T = TypeVar("T", bound=Syncable)


def merge_collections(
    local: Iterable[T],
    remote_rows: Iterable[Dict[str, Any]],
    map_to_local: Callable[[Dict[str, Any]], T],
) -> List[T]:
    """Merge ``remote_rows`` into ``local``.

    Args:
        local: Current local records.
        remote_rows: Raw rows returned by the remote store.
        map_to_local: Converts one raw row into a local record.

    Returns:
        Records whose ids are the union of both sides. For an id on both
        sides the record with the greater ``updated_at`` wins (missing counts
        as 0) and remote wins exact ties. Local-only records are returned as
        the same objects, unmodified.
    """
    merged: Dict[str, T] = {item.id: item for item in local}
    accepted = 0

    for row in remote_rows:
        remote_item = map_to_local(row)
        local_item = merged.get(remote_item.id)

        if local_item is None:
            merged[remote_item.id] = remote_item
            accepted += 1
            continue

        remote_time = remote_item.updated_at or 0
        local_time = local_item.updated_at or 0
        if remote_time >= local_time:
            merged[remote_item.id] = remote_item
            accepted += 1
        else:
            logger.debug(
                f"Keeping local {remote_item.id}: local updated_at {local_time} "
                f"> remote {remote_time}"
            )

    logger.debug(f"Merged {accepted} remote records into {len(merged)} total")
    return list(merged.values())
