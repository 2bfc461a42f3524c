from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Mapping
from typing import Any, Optional

from localpos.db import Store
from localpos.errors import CommitFailedError, InvalidBackupFormatError, ValidationError
from localpos.schema import COLLECTIONS, SETTINGS_KEY
from localpos.utils import day_of, iso_now

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1

# snapshot key -> collection
SNAPSHOT_COLLECTIONS = {
    "products": "products",
    "customers": "customers",
    "sales": "sales",
    "saleItems": "sale_items",
    "debts": "debts",
    "debtPayments": "debt_payments",
    "users": "users",
}


def export_snapshot(store: Store, *, now: Optional[str] = None) -> dict[str, Any]:
    snapshot: dict[str, Any] = {key: store.get_all(coll) for key, coll in SNAPSHOT_COLLECTIONS.items()}
    snapshot["settings"] = store.get("settings", SETTINGS_KEY)
    snapshot["version"] = BACKUP_VERSION
    snapshot["timestamp"] = now or iso_now()
    return snapshot


def validate_snapshot(snapshot: Any) -> None:
    if not isinstance(snapshot, Mapping):
        raise InvalidBackupFormatError("Backup must be a JSON object.")
    if not snapshot.get("timestamp"):
        raise InvalidBackupFormatError("Backup has no timestamp.")
    if not isinstance(snapshot.get("products"), list):
        raise InvalidBackupFormatError("Backup has no product list.")

    for key in SNAPSHOT_COLLECTIONS:
        value = snapshot.get(key)
        if value is None:
            continue
        if not isinstance(value, list) or not all(isinstance(r, Mapping) for r in value):
            raise InvalidBackupFormatError(f"Backup field '{key}' must be a list of records.")

    settings = snapshot.get("settings")
    if settings is not None and not isinstance(settings, Mapping):
        raise InvalidBackupFormatError("Backup field 'settings' must be an object.")


def restore_snapshot(store: Store, snapshot: Mapping[str, Any]) -> dict[str, int]:
    """
    Replace the whole database with `snapshot`.

    Every collection is cleared and refilled inside one transaction; if any
    record fails to insert (e.g. a duplicate key) nothing changes.
    Returns the number of records restored per collection.
    """
    validate_snapshot(snapshot)

    def _work(tx) -> dict[str, int]:
        counts: dict[str, int] = {}
        for name in COLLECTIONS:
            tx.clear(name)
        for key, coll in SNAPSHOT_COLLECTIONS.items():
            rows = snapshot.get(key) or []
            for rec in rows:
                try:
                    tx.add(coll, dict(rec))
                except ValidationError as e:
                    raise InvalidBackupFormatError(f"Backup field '{key}' has a record without an id.") from e
            counts[coll] = len(rows)
        settings = snapshot.get("settings")
        if settings is not None:
            tx.put("settings", dict(settings), SETTINGS_KEY)
        return counts

    try:
        counts = store.run_transaction(list(COLLECTIONS), _work)
    except sqlite3.Error as e:
        logger.exception("Restore failed")
        raise CommitFailedError("Backup could not be restored. The database was not changed.") from e

    logger.info("Restored backup from %s: %s", snapshot.get("timestamp"), counts)
    return counts


def dumps_snapshot(snapshot: Mapping[str, Any]) -> str:
    return json.dumps(snapshot, indent=2, ensure_ascii=False)


def loads_snapshot(text: str | bytes) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except ValueError as e:
        raise InvalidBackupFormatError(f"Backup is not valid JSON: {e}") from e
    validate_snapshot(data)
    return data


def backup_filename(now: Optional[str] = None) -> str:
    return f"localpos-backup-{day_of(now or iso_now())}.json"
