"""Tests for last-writer-wins collection merging."""

from spentsync.sync.mappers import row_to_category, row_to_transaction
from spentsync.sync.merge import merge_collections
from spentsync.types import Category, Transaction, ms_to_iso


def _txn(id, updated_at=None, vendor="Shop"):
    return Transaction(
        id=id, vendor=vendor, amount=10.0, category="cat-food", date="2024-01-01", updated_at=updated_at
    )


def _row(id, updated_at_ms, vendor="Remote"):
    return {
        "id": id,
        "vendor": vendor,
        "amount": 20.0,
        "category_id": "cat-food",
        "date": "2024-01-02",
        "updated_at": ms_to_iso(updated_at_ms),
        "deleted_at": None,
    }


def _by_id(items):
    return {item.id: item for item in items}


class TestDisjoint:
    """No overlapping ids: result is the plain union."""

    def test_union_without_mutation(self):
        local = [_txn("a", 100), _txn("b", 200)]
        rows = [_row("c", 300), _row("d", 400)]
        snapshot = [dict(r) for r in rows]

        merged = _by_id(merge_collections(local, rows, row_to_transaction))

        assert set(merged) == {"a", "b", "c", "d"}
        assert merged["a"] is local[0]
        assert merged["b"] is local[1]
        assert merged["c"] == row_to_transaction(snapshot[0])
        assert rows == snapshot
        assert local[0] == _txn("a", 100)

    def test_empty_sides(self):
        assert merge_collections([], [], row_to_transaction) == []
        local = [_txn("a", 1)]
        assert merge_collections(local, [], row_to_transaction) == local


class TestOverlap:
    """Same id on both sides: greater updated_at wins, remote wins ties."""

    def test_remote_newer_wins(self):
        merged = merge_collections([_txn("a", 100)], [_row("a", 200)], row_to_transaction)
        assert merged == [row_to_transaction(_row("a", 200))]

    def test_local_newer_wins(self):
        local = _txn("a", 300)
        merged = merge_collections([local], [_row("a", 200)], row_to_transaction)
        assert merged == [local]
        assert merged[0] is local

    def test_equal_timestamps_remote_wins(self):
        merged = merge_collections([_txn("a", 200, vendor="Local")], [_row("a", 200)], row_to_transaction)
        assert merged[0].vendor == "Remote"

    def test_missing_local_timestamp_counts_as_zero(self):
        merged = merge_collections([_txn("a", None)], [_row("a", 1)], row_to_transaction)
        assert merged[0].vendor == "Remote"

    def test_remote_tombstone_replaces_local(self):
        row = _row("a", 500)
        row["deleted_at"] = ms_to_iso(500)

        merged = merge_collections([_txn("a", 100)], [row], row_to_transaction)

        assert merged[0].deleted_at == 500

    def test_works_for_any_mapper(self):
        local = [Category(id="cat-food", name="Food", updated_at=5)]
        rows = [{"id": "cat-food", "name": "Food & Dining", "updated_at": ms_to_iso(9)}]

        merged = merge_collections(local, rows, row_to_category)

        assert merged[0].name == "Food & Dining"
        assert merged[0].icon == "Box"
