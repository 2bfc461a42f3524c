import pytest

from localpos.errors import ValidationError
from localpos.models import StoreSettings
from localpos.schema import SETTINGS_KEY
from localpos.services.store_settings import get_store_settings, save_store_settings


def test_defaults_seeded(store):
    assert get_store_settings(store) == StoreSettings()


def test_missing_settings_fall_back_to_defaults(store):
    store.delete("settings", SETTINGS_KEY)
    assert get_store_settings(store) == StoreSettings()


def test_save_and_read(store):
    save_store_settings(store, StoreSettings(store_name="Toko Maju", store_address="Jl. Merdeka 1", store_phone="021"))
    s = get_store_settings(store)
    assert (s.store_name, s.store_address, s.store_phone) == ("Toko Maju", "Jl. Merdeka 1", "021")


def test_store_name_required(store):
    with pytest.raises(ValidationError):
        save_store_settings(store, StoreSettings(store_name=" "))
