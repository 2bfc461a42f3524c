from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Any, Callable, ContextManager, Iterable, Iterator, Optional, TypeVar

import streamlit as st

from localpos.errors import CollectionScopeError, DuplicateKeyError, UnknownCollectionError, ValidationError
from localpos.models import ROLE_ADMIN, StoreSettings, User
from localpos.schema import COLLECTIONS, SCHEMA_SQL, SETTINGS_KEY, Collection
from localpos.security import hash_password
from localpos.utils import iso_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEED_ADMIN_ID = "user-admin-seed"
SEED_ADMIN_USERNAME = "admin"
SEED_ADMIN_PASSWORD = "admin123"


def _connect(db_path: Path | str) -> sqlite3.Connection:
    # isolation_level=None: single statements autocommit, transactions are explicit.
    conn = sqlite3.connect(str(db_path), check_same_thread=False, isolation_level=None)
    conn.row_factory = sqlite3.Row
    return conn


def q(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
    cur = conn.execute(sql, tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows


def x(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> int:
    cur = conn.execute(sql, tuple(params))
    n = cur.rowcount
    cur.close()
    return int(n)


def _collection(name: str) -> Collection:
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise UnknownCollectionError(f"Unknown collection '{name}'.") from None


def _table_names(conn: sqlite3.Connection) -> set[str]:
    rows = q(conn, "SELECT name FROM sqlite_master WHERE type='table'")
    return {r["name"] for r in rows}


def _dumps(record: dict[str, Any]) -> str:
    return json.dumps(record, sort_keys=True, ensure_ascii=False)


def _write(conn: sqlite3.Connection, coll: Collection, record: dict[str, Any], key: Optional[str], *, replace: bool) -> str:
    if coll.key_field is not None:
        key = record.get(coll.key_field)
    if key is None or str(key) == "":
        raise ValidationError(f"A key is required to write to '{coll.name}'.")
    key = str(key)

    cols = ["id", *coll.indexes.keys(), "doc"]
    values = [key, *(record.get(f) for f in coll.indexes.values()), _dumps(record)]
    placeholders = ", ".join("?" for _ in cols)
    sql = f"INSERT INTO {coll.name} ({', '.join(cols)}) VALUES ({placeholders})"
    if replace:
        # Not INSERT OR REPLACE: that would silently drop rows colliding on a unique index.
        updates = ", ".join(f"{c}=excluded.{c}" for c in cols[1:])
        sql += f" ON CONFLICT(id) DO UPDATE SET {updates}"

    try:
        x(conn, sql, values)
    except sqlite3.IntegrityError as e:
        raise DuplicateKeyError(coll.name, key) from e
    return key


class _Collections:
    """Record-level operations over the collection tables of one connection."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _resolve(self, collection: str) -> Collection:
        return _collection(collection)

    def _guard(self) -> ContextManager[Any]:
        return nullcontext()

    def put(self, collection: str, record: dict[str, Any], key: Optional[str] = None) -> str:
        """Insert or replace by primary key."""
        with self._guard():
            return _write(self.conn, self._resolve(collection), record, key, replace=True)

    def add(self, collection: str, record: dict[str, Any], key: Optional[str] = None) -> str:
        """Insert only. Raises DuplicateKeyError when the key already exists."""
        with self._guard():
            return _write(self.conn, self._resolve(collection), record, key, replace=False)

    def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        coll = self._resolve(collection)
        with self._guard():
            rows = q(self.conn, f"SELECT doc FROM {coll.name} WHERE id=?", (str(key),))
        return json.loads(rows[0]["doc"]) if rows else None

    def get_all(self, collection: str) -> list[dict[str, Any]]:
        coll = self._resolve(collection)
        with self._guard():
            rows = q(self.conn, f"SELECT doc FROM {coll.name} ORDER BY id")
        return [json.loads(r["doc"]) for r in rows]

    def get_all_by_index(self, collection: str, index_name: str, value: Any) -> list[dict[str, Any]]:
        coll = self._resolve(collection)
        if index_name not in coll.indexes:
            raise UnknownCollectionError(f"Collection '{coll.name}' has no index '{index_name}'.")
        op = "IS" if value is None else "="
        with self._guard():
            rows = q(
                self.conn,
                f"SELECT doc FROM {coll.name} WHERE {index_name} {op} ? ORDER BY id",
                (value,),
            )
        return [json.loads(r["doc"]) for r in rows]

    def get_by_index(self, collection: str, index_name: str, value: Any) -> Optional[dict[str, Any]]:
        found = self.get_all_by_index(collection, index_name, value)
        return found[0] if found else None

    def delete(self, collection: str, key: str) -> bool:
        """Hard delete. Records referencing this one are left untouched."""
        coll = self._resolve(collection)
        with self._guard():
            return x(self.conn, f"DELETE FROM {coll.name} WHERE id=?", (str(key),)) > 0

    def clear(self, collection: str) -> None:
        coll = self._resolve(collection)
        with self._guard():
            x(self.conn, f"DELETE FROM {coll.name}")

    def count(self, collection: str) -> int:
        coll = self._resolve(collection)
        with self._guard():
            rows = q(self.conn, f"SELECT COUNT(*) AS n FROM {coll.name}")
        return int(rows[0]["n"])


class Transaction(_Collections):
    """Read/write access to a fixed set of collections inside one SQLite transaction."""

    def __init__(self, conn: sqlite3.Connection, scope: frozenset[str]):
        super().__init__(conn)
        self.scope = scope
        self.closed = False

    def _resolve(self, collection: str) -> Collection:
        if self.closed:
            raise CollectionScopeError("Transaction is already finished.")
        if collection not in self.scope:
            raise CollectionScopeError(
                f"Collection '{collection}' is not part of this transaction ({', '.join(sorted(self.scope))})."
            )
        return super()._resolve(collection)


class Store(_Collections):
    def __init__(self, conn: sqlite3.Connection):
        super().__init__(conn)
        # Streamlit runs scripts on worker threads; one connection, one writer at a time.
        self._lock = threading.RLock()

    def _guard(self) -> ContextManager[Any]:
        return self._lock

    @contextmanager
    def transaction(self, *collections: str) -> Iterator[Transaction]:
        """
        Exclusive read/write access to `collections`.

        Every write made through the yielded Transaction commits together when the
        block exits normally and is rolled back if it raises.
        """
        for name in collections:
            _collection(name)

        with self._lock:
            self.conn.execute("BEGIN IMMEDIATE")
            tx = Transaction(self.conn, frozenset(collections))
            try:
                yield tx
            except BaseException:
                self.conn.execute("ROLLBACK")
                raise
            else:
                try:
                    self.conn.execute("COMMIT")
                except sqlite3.Error:
                    if self.conn.in_transaction:
                        self.conn.execute("ROLLBACK")
                    raise
            finally:
                tx.closed = True

    def run_transaction(self, collections: Iterable[str], work: Callable[[Transaction], T]) -> T:
        with self.transaction(*collections) as tx:
            return work(tx)

    def close(self) -> None:
        self.conn.close()


def _seed_admin(conn: sqlite3.Connection) -> None:
    admin = User(
        id=SEED_ADMIN_ID,
        username=SEED_ADMIN_USERNAME,
        password_hash=hash_password(SEED_ADMIN_PASSWORD),
        role=ROLE_ADMIN,
        created_at=iso_now(),
    )
    _write(conn, COLLECTIONS["users"], admin.to_record(), None, replace=False)
    logger.info("Seeded default admin user '%s'", SEED_ADMIN_USERNAME)


def _seed_settings(conn: sqlite3.Connection) -> None:
    _write(conn, COLLECTIONS["settings"], StoreSettings().to_record(), SETTINGS_KEY, replace=False)
    logger.info("Seeded default store settings")


def ensure_schema(conn: sqlite3.Connection) -> None:
    """
    Create missing tables and indexes, seeding the admin user and store settings.

    Seeding only happens for tables this call creates, so running it against an
    existing database never re-seeds (even if the admin was since deleted).
    """
    existing = _table_names(conn)

    # Tables and seed rows are created in one transaction.
    try:
        conn.executescript("BEGIN IMMEDIATE;\n" + SCHEMA_SQL)
        if "users" not in existing:
            _seed_admin(conn)
        if "settings" not in existing:
            _seed_settings(conn)
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def open_store(db_path: Path | str) -> Store:
    conn = _connect(db_path)
    ensure_schema(conn)
    return Store(conn)


@st.cache_resource
def get_store(db_path: Path) -> Store:
    return open_store(db_path)
