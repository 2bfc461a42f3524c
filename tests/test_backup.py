import pytest

from localpos.errors import DuplicateKeyError, InvalidBackupFormatError
from localpos.schema import SETTINGS_KEY
from localpos.services.backup import (
    backup_filename,
    dumps_snapshot,
    export_snapshot,
    loads_snapshot,
    restore_snapshot,
    validate_snapshot,
)
from localpos.services.debts import record_payment
from localpos.services.sales import CartLine, commit_sale

SNAPSHOT_KEYS = {"products", "customers", "sales", "saleItems", "debts", "debtPayments", "users", "settings"}


@pytest.fixture
def busy_store(store, cashier_id, pack_product, plain_product, customer):
    commit_sale(
        store, [CartLine("prod-noodle", "pack", 1)], payment_type="cash", cashier_user_id=cashier_id, tendered=10000
    )
    commit_sale(
        store, [CartLine("prod-soap", "pcs", 1)], payment_type="debt", cashier_user_id=cashier_id,
        customer_id=customer.id,
    )
    record_payment(store, customer.id, 2000)
    return store


def test_export_contains_every_collection(busy_store):
    snap = export_snapshot(busy_store, now="2025-03-01T10:00:00.000+00:00")
    assert SNAPSHOT_KEYS <= set(snap)
    assert snap["timestamp"] == "2025-03-01T10:00:00.000+00:00"
    assert len(snap["sales"]) == 2
    assert len(snap["saleItems"]) == 2
    assert len(snap["debts"]) == 1
    assert len(snap["debtPayments"]) == 1
    assert snap["settings"]["store_name"]


def test_round_trip_through_fresh_store(busy_store, tmp_path):
    from localpos.db import open_store

    snap = loads_snapshot(dumps_snapshot(export_snapshot(busy_store, now="2025-03-01T10:00:00.000+00:00")))

    other = open_store(tmp_path / "other.db")
    try:
        counts = restore_snapshot(other, snap)
        assert counts["sales"] == 2
        assert export_snapshot(other, now=snap["timestamp"]) == snap
    finally:
        other.close()


def test_restore_replaces_existing_data(busy_store, store):
    snap = export_snapshot(store)
    store.put("customers", {"id": "late", "name": "Added after backup"})
    store.put("settings", {"store_name": "Renamed"}, SETTINGS_KEY)

    restore_snapshot(store, snap)
    assert store.get("customers", "late") is None
    assert store.get("settings", SETTINGS_KEY) == snap["settings"]


def test_restore_missing_optional_collections(store, pack_product):
    restore_snapshot(store, {"timestamp": "2025-01-01T00:00:00Z", "products": [pack_product.to_record()]})
    assert store.count("products") == 1
    assert store.count("users") == 0


def test_duplicate_record_leaves_store_unchanged(busy_store, store):
    before = export_snapshot(store, now="t")
    snap = export_snapshot(store)
    snap["customers"] = [{"id": "dup", "name": "A"}, {"id": "dup", "name": "B"}]

    with pytest.raises(DuplicateKeyError):
        restore_snapshot(store, snap)
    assert export_snapshot(store, now="t") == before


@pytest.mark.parametrize(
    "snap",
    [
        [],
        "backup",
        {"products": []},
        {"timestamp": "2025-01-01", "products": {"a": 1}},
        {"timestamp": "2025-01-01", "products": [], "sales": "nope"},
        {"timestamp": "2025-01-01", "products": [1, 2]},
        {"timestamp": "2025-01-01", "products": [], "settings": ["x"]},
    ],
)
def test_invalid_snapshots_rejected(store, snap):
    with pytest.raises(InvalidBackupFormatError):
        validate_snapshot(snap)
    with pytest.raises(InvalidBackupFormatError):
        restore_snapshot(store, snap)
    assert store.count("users") == 1


def test_record_without_id_rejected(busy_store, store):
    snap = export_snapshot(store)
    snap["products"].append({"name": "No id"})
    with pytest.raises(InvalidBackupFormatError):
        restore_snapshot(store, snap)
    assert store.count("sales") == 2


def test_loads_snapshot_rejects_bad_json():
    with pytest.raises(InvalidBackupFormatError):
        loads_snapshot("{not json")
    with pytest.raises(InvalidBackupFormatError):
        loads_snapshot(b'{"products": []}')


def test_backup_filename():
    assert backup_filename("2025-03-01T10:00:00.000+00:00") == "localpos-backup-2025-03-01.json"
