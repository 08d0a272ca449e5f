"""Tests for legacy identifier normalization.

Tests:
- UUID / canonical reference predicates
- Category rename propagates to transactions and vendor rules
- Transaction rename propagates to recurring exceptions
- Idempotence and input immutability
- normalize_scope writes back and retires legacy keys
"""

import itertools

import pytest

from spentsync.storage import LocalRepository
from spentsync.sync.identifiers import (
    IdentifierNormalizer,
    is_canonical_category_ref,
    is_uuid,
    normalize_identifiers,
)
from spentsync.types import (
    Category,
    RecurringException,
    SyncCollections,
    Transaction,
    VendorRule,
)

from conftest import FIXED_NOW, new_id

U1 = "00000000-0000-4000-8000-000000000001"


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"00000000-0000-4000-8000-{next(counter):012d}"


def _txn(id, category, updated_at=None):
    return Transaction(
        id=id, vendor="Shop", amount=1.0, category=category, date="2024-01-01", updated_at=updated_at
    )


class TestPredicates:
    def test_is_uuid(self):
        assert is_uuid(new_id())
        assert is_uuid(new_id().upper())
        assert not is_uuid("1712345678901")
        assert not is_uuid(None)
        assert not is_uuid("")
        assert not is_uuid(new_id() + "x")

    def test_canonical_category_ref(self):
        assert is_canonical_category_ref("cat-food")
        assert is_canonical_category_ref(new_id())
        assert not is_canonical_category_ref("cat-legacy")
        assert not is_canonical_category_ref("1712345678901")


class TestRenamePropagation:
    def test_legacy_category_rename_reaches_transactions(self, id_factory):
        collections = SyncCollections(
            categories=[Category(id="cat-legacy", name="Legacy")],
            transactions=[_txn(new_id(), "cat-legacy")],
        )

        result = normalize_identifiers(collections, now=FIXED_NOW, id_factory=id_factory)

        assert result.changed is True
        (category,) = result.collections.categories
        (txn,) = result.collections.transactions
        assert category.id == U1
        assert txn.category == U1
        assert result.rename_map == {"cat-legacy": U1}
        assert category.updated_at == FIXED_NOW
        assert txn.updated_at == FIXED_NOW

    def test_shared_legacy_reference_maps_to_one_id(self, id_factory):
        collections = SyncCollections(
            categories=[Category(id="1700000000001", name="Pets")],
            transactions=[_txn(new_id(), "1700000000001"), _txn(new_id(), "1700000000001")],
            vendor_rules=[VendorRule(id=new_id(), vendor_contains="petco", category_id="1700000000001")],
        )

        result = normalize_identifiers(collections, now=FIXED_NOW, id_factory=id_factory)

        new_category_id = result.collections.categories[0].id
        assert {t.category for t in result.collections.transactions} == {new_category_id}
        assert result.collections.vendor_rules[0].category_id == new_category_id

    def test_transaction_rename_reaches_exceptions(self, id_factory):
        collections = SyncCollections(
            transactions=[_txn("1690000000000", "cat-subs")],
            exceptions=[
                RecurringException(rule_id="1690000000000", date="2024-02-01", skipped=True, updated_at=5)
            ],
        )

        result = normalize_identifiers(collections, now=FIXED_NOW, id_factory=id_factory)

        rule = result.collections.transactions[0]
        (exc,) = result.collections.exceptions
        assert is_uuid(rule.id)
        assert exc.rule_id == rule.id
        assert exc.id == f"{rule.id}-2024-02-01"
        assert rule.updated_at == FIXED_NOW
        assert exc.updated_at == 5

    def test_vendor_rule_legacy_id_rewritten(self, id_factory):
        collections = SyncCollections(
            vendor_rules=[VendorRule(id="rule-1", vendor_contains="uber", category_id="cat-travel")]
        )

        result = normalize_identifiers(collections, now=FIXED_NOW, id_factory=id_factory)

        rule = result.collections.vendor_rules[0]
        assert rule.id == U1
        assert rule.category_id == "cat-travel"
        assert rule.updated_at == FIXED_NOW

    def test_dangling_legacy_reference_left_alone(self, id_factory):
        txn = _txn(new_id(), "1600000000000", updated_at=5)

        result = normalize_identifiers(SyncCollections(transactions=[txn]), id_factory=id_factory)

        assert result.changed is False
        assert result.collections.transactions[0] is txn


class TestIdempotence:
    def test_second_pass_reports_no_change(self, id_factory):
        collections = SyncCollections(
            categories=[Category(id="cat-legacy", name="Legacy"), Category(id="cat-food", name="Food")],
            transactions=[_txn("123", "cat-legacy")],
            vendor_rules=[VendorRule(id="r", vendor_contains="x", category_id="cat-legacy")],
            exceptions=[RecurringException(rule_id="123", date="2024-01-01")],
        )

        first = normalize_identifiers(collections, now=FIXED_NOW, id_factory=id_factory)
        second = normalize_identifiers(first.collections, now=FIXED_NOW + 1, id_factory=id_factory)

        assert first.changed is True
        assert second.changed is False
        assert second.rename_map == {}
        assert second.collections == first.collections

    def test_canonical_input_untouched(self):
        cat = Category(id="cat-food", name="Food", updated_at=1)
        txn = _txn(new_id(), "cat-food", updated_at=2)

        result = normalize_identifiers(SyncCollections(categories=[cat], transactions=[txn]))

        assert result.changed is False
        assert result.collections.categories[0] is cat
        assert result.collections.transactions[0] is txn

    def test_inputs_not_mutated(self, id_factory):
        cat = Category(id="legacy", name="Legacy")
        txn = _txn("legacy-txn", "legacy")

        normalize_identifiers(SyncCollections(categories=[cat], transactions=[txn]), id_factory=id_factory)

        assert cat.id == "legacy"
        assert txn.id == "legacy-txn"
        assert txn.category == "legacy"


class TestNormalizeScope:
    def test_rewrites_store_and_removes_legacy_keys(self, store, id_factory):
        repo = LocalRepository(store, "guest")
        repo.save_collections(
            SyncCollections(
                categories=[Category(id="legacy-cat", name="Pets")],
                transactions=[_txn("1700000000000", "legacy-cat")],
                exceptions=[RecurringException(rule_id="1700000000000", date="2024-01-01")],
            )
        )

        normalizer = IdentifierNormalizer(store, clock=lambda: FIXED_NOW, id_factory=id_factory)
        result = normalizer.normalize_scope("guest")

        assert result.changed is True
        assert store.get("categories", "legacy-cat", "guest") is None
        assert store.get("transactions", "1700000000000", "guest") is None
        assert store.get("recurringExceptions", "1700000000000-2024-01-01", "guest") is None

        loaded = repo.load_collections()
        assert loaded.total() == 3
        assert loaded.transactions[0].category == loaded.categories[0].id
        assert loaded.exceptions[0].rule_id == loaded.transactions[0].id

    def test_noop_when_canonical(self, store):
        repo = LocalRepository(store, "guest")
        repo.save_collections(SyncCollections(categories=[Category(id="cat-food", name="Food")]))

        result = IdentifierNormalizer(store).normalize_scope("guest")

        assert result.changed is False
        assert store.count("categories", "guest") == 1
