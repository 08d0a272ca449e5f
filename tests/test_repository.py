"""Tests for typed entity access through LocalRepository."""

from spentsync.storage import LocalRepository
from spentsync.types import (
    Category,
    RecurringException,
    Settings,
    SyncCollections,
    Transaction,
    VendorRule,
    touch,
)

from conftest import USER_ID


def _collections():
    return SyncCollections(
        transactions=[
            Transaction(
                id="t1",
                vendor="Blue Bottle",
                amount=4.5,
                category="cat-coffee",
                date="2024-03-01",
                updated_at=100,
            )
        ],
        categories=[Category(id="c1", name="Pets", updated_at=50)],
        vendor_rules=[VendorRule(id="r1", vendor_contains="bottle", category_id="cat-coffee")],
        exceptions=[RecurringException(rule_id="t9", date="2024-03-05", skipped=True)],
    )


class TestCollections:
    def test_save_and_load_round_trip(self, repo):
        written = repo.save_collections(_collections())

        assert written == 4
        assert repo.load_collections() == _collections()

    def test_documents_are_camel_case(self, repo, store):
        repo.save_collections(_collections())

        doc = store.get("transactions", "t1", USER_ID)
        assert doc["updatedAt"] == 100
        assert "photoUrl" not in doc  # None values dropped
        rule = store.get("vendorRules", "r1", USER_ID)
        assert rule["vendorContains"] == "bottle"
        assert rule["categoryId"] == "cat-coffee"

    def test_exception_stored_under_derived_id(self, repo, store):
        repo.save_collections(_collections())

        doc = store.get("recurringExceptions", "t9-2024-03-05", USER_ID)
        assert doc["ruleId"] == "t9"
        assert doc["id"] == "t9-2024-03-05"

    def test_load_accepts_legacy_vendor_key(self, repo, store):
        store.set("vendorRules", "r1", {"id": "r1", "vendor": "uber", "categoryId": "cat-travel"}, USER_ID)

        (rule,) = repo.load("vendor_rules")
        assert rule.vendor_contains == "uber"

    def test_scopes_do_not_share_collections(self, store, repo):
        repo.save_collections(_collections())
        assert LocalRepository(store, "guest").load_collections().total() == 0


class TestTombstone:
    def test_tombstone_keeps_record(self, repo):
        repo.save_collections(_collections())

        deleted = repo.tombstone("categories", "c1", now=500)

        assert deleted.deleted_at == 500
        assert deleted.updated_at == 500
        assert repo.get("categories", "c1").deleted_at == 500
        assert len(repo.load("categories")) == 1

    def test_tombstone_missing_returns_none(self, repo):
        assert repo.tombstone("categories", "missing") is None


class TestSettings:
    def test_defaults_when_unset(self, repo):
        settings = repo.load_settings()
        assert settings == Settings()
        assert settings.last_pull_at is None

    def test_save_preserves_preferences(self, repo):
        repo.save_settings(Settings(notifications=False, default_category_filter=["cat-food"]))

        patched = repo.load_settings().apply_patch({"last_pull_at": 10, "last_sync_error": "x"})
        repo.save_settings(patched)

        loaded = repo.load_settings()
        assert loaded.notifications is False
        assert loaded.default_category_filter == ["cat-food"]
        assert loaded.last_pull_at == 10
        assert loaded.last_sync_error == "x"


class TestEntityHelpers:
    def test_touch_bumps_updated_at_on_a_copy(self):
        category = Category(id="c1", name="Pets", updated_at=1)

        touched = touch(category, now=99)

        assert touched.updated_at == 99
        assert category.updated_at == 1

    def test_put_then_get(self, repo):
        txn = touch(Transaction(id="t2", vendor="Lyft", amount=8.0, category="cat-travel", date="2024-01-02"))

        repo.put(txn)

        assert repo.get("transactions", "t2") == txn
        assert txn.updated_at is not None
