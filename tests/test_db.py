import pytest

from localpos.db import SEED_ADMIN_USERNAME, _connect, ensure_schema, open_store
from localpos.errors import CollectionScopeError, DuplicateKeyError, UnknownCollectionError
from localpos.schema import COLLECTIONS, SETTINGS_KEY


def test_fresh_store_is_seeded_with_admin_and_settings(store):
    users = store.get_all("users")
    assert [u["username"] for u in users] == [SEED_ADMIN_USERNAME]
    assert users[0]["role"] == "admin"
    assert users[0]["password_hash"] != "admin123"
    assert store.get("settings", SETTINGS_KEY)["store_name"]


def test_seeding_does_not_run_again_on_existing_database(tmp_path):
    path = tmp_path / "pos.db"
    first = open_store(path)
    first.delete("users", first.get_all("users")[0]["id"])
    first.close()

    again = open_store(path)
    assert again.count("users") == 0
    again.close()


def test_ensure_schema_is_idempotent(tmp_path):
    conn = _connect(tmp_path / "pos.db")
    ensure_schema(conn)
    ensure_schema(conn)
    assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 1
    conn.close()


def test_put_inserts_then_replaces(store):
    store.put("customers", {"id": "c1", "name": "Budi"})
    store.put("customers", {"id": "c1", "name": "Pak Budi"})
    assert store.get("customers", "c1") == {"id": "c1", "name": "Pak Budi"}
    assert store.count("customers") == 1


def test_add_rejects_duplicate_key(store):
    store.add("debt_payments", {"id": "p1", "customer_id": "c1", "amount": 10})
    with pytest.raises(DuplicateKeyError) as exc:
        store.add("debt_payments", {"id": "p1", "customer_id": "c1", "amount": 20})
    assert exc.value.collection == "debt_payments"
    assert store.get("debt_payments", "p1")["amount"] == 10


def test_unique_username_enforced_on_put(store):
    with pytest.raises(DuplicateKeyError):
        store.put("users", {"id": "other", "username": SEED_ADMIN_USERNAME, "password_hash": "x", "role": "cashier"})
    assert store.count("users") == 1


def test_get_missing_returns_none(store):
    assert store.get("products", "nope") is None


def test_get_all_by_index(store):
    store.put("sale_items", {"id": "i1", "sale_id": "s1", "product_id": "p1"})
    store.put("sale_items", {"id": "i2", "sale_id": "s2", "product_id": "p1"})
    store.put("sale_items", {"id": "i3", "sale_id": "s1", "product_id": "p2"})

    assert [r["id"] for r in store.get_all_by_index("sale_items", "sale_id", "s1")] == ["i1", "i3"]
    assert [r["id"] for r in store.get_all_by_index("sale_items", "product_id", "p1")] == ["i1", "i2"]
    assert store.get_all_by_index("sale_items", "sale_id", "s9") == []


def test_index_lookup_on_missing_value(store):
    store.put("sales", {"id": "s1", "date_time": "2025-01-01T10:00:00", "customer_id": None})
    store.put("sales", {"id": "s2", "date_time": "2025-01-01T11:00:00", "customer_id": "c1"})
    assert [r["id"] for r in store.get_all_by_index("sales", "customer_id", None)] == ["s1"]


def test_unknown_collection_and_index(store):
    with pytest.raises(UnknownCollectionError):
        store.get_all("invoices")
    with pytest.raises(UnknownCollectionError):
        store.get_all_by_index("products", "name", "x")


def test_delete_is_hard_and_does_not_cascade(store):
    store.put("customers", {"id": "c1", "name": "Budi"})
    store.put("debts", {"id": "d1", "customer_id": "c1", "sale_id": "s1", "amount": 5, "created_at": "t"})
    assert store.delete("customers", "c1") is True
    assert store.delete("customers", "c1") is False
    assert store.get("debts", "d1") is not None


def test_transaction_commits_all_writes(store):
    with store.transaction("customers", "debts") as tx:
        tx.put("customers", {"id": "c1", "name": "Budi"})
        tx.add("debts", {"id": "d1", "customer_id": "c1", "sale_id": "s1", "amount": 5, "created_at": "t"})
    assert store.get("customers", "c1") is not None
    assert store.get("debts", "d1") is not None


def test_transaction_rolls_back_on_error(store):
    store.put("customers", {"id": "c0", "name": "Existing"})
    with pytest.raises(RuntimeError):
        with store.transaction("customers") as tx:
            tx.put("customers", {"id": "c1", "name": "Budi"})
            tx.delete("customers", "c0")
            raise RuntimeError("boom")
    assert store.get("customers", "c1") is None
    assert store.get("customers", "c0") is not None


def test_transaction_rolls_back_on_duplicate(store):
    store.add("sales", {"id": "s1", "date_time": "t"})
    with pytest.raises(DuplicateKeyError):
        with store.transaction("sales", "products") as tx:
            tx.put("products", {"id": "p1", "name": "x"})
            tx.add("sales", {"id": "s1", "date_time": "t2"})
    assert store.get("products", "p1") is None


def test_transaction_scope_is_enforced(store):
    with pytest.raises(CollectionScopeError):
        with store.transaction("sales") as tx:
            tx.get("products", "p1")


def test_transaction_handle_unusable_after_exit(store):
    with store.transaction("customers") as tx:
        pass
    with pytest.raises(CollectionScopeError):
        tx.get("customers", "c1")


def test_run_transaction_returns_work_result(store):
    result = store.run_transaction(["customers"], lambda tx: tx.put("customers", {"id": "c1", "name": "Budi"}))
    assert result == "c1"


def test_settings_use_out_of_line_key(store):
    store.put("settings", {"store_name": "Other"}, SETTINGS_KEY)
    assert store.get("settings", SETTINGS_KEY) == {"store_name": "Other"}


def test_data_survives_reopen(tmp_path):
    path = tmp_path / "pos.db"
    s = open_store(path)
    s.put("customers", {"id": "c1", "name": "Budi"})
    s.close()

    s2 = open_store(path)
    assert s2.get("customers", "c1") == {"id": "c1", "name": "Budi"}
    s2.close()


def test_every_collection_has_a_table(store):
    names = {r[0] for r in store.conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert set(COLLECTIONS) <= names

