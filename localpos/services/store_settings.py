from __future__ import annotations

from localpos.db import Store
from localpos.errors import ValidationError
from localpos.models import StoreSettings
from localpos.schema import SETTINGS_KEY


def get_store_settings(store: Store) -> StoreSettings:
    rec = store.get("settings", SETTINGS_KEY)
    return StoreSettings.from_record(rec) if rec else StoreSettings()


def save_store_settings(store: Store, settings: StoreSettings) -> StoreSettings:
    if not str(settings.store_name or "").strip():
        raise ValidationError("Store name is required.")
    store.put("settings", settings.to_record(), SETTINGS_KEY)
    return settings
