"""
Shared fixtures: a fresh on-disk store per test and a few catalog records.
"""
import pytest

from localpos.db import SEED_ADMIN_ID, open_store
from localpos.models import Customer, Product, UnitConversion
from localpos.services.catalog import save_product
from localpos.services.customers import save_customer


@pytest.fixture
def store(tmp_path):
    s = open_store(tmp_path / "pos.db")
    yield s
    s.close()


@pytest.fixture
def cashier_id():
    return SEED_ADMIN_ID


@pytest.fixture
def pack_product(store):
    """20 pcs in stock, sold loose at 1000 or by the pack of 10 at 9000."""
    return save_product(
        store,
        Product(
            id="prod-noodle",
            name="Instant Noodles",
            category="Food",
            barcode="8990001",
            cost_price=600,
            sell_price=1000,
            stock=20,
            unit="pcs",
            conversions=[UnitConversion(id="conv-pack", unit_name="pack", conversion_factor=10, sell_price=9000)],
        ),
    )


@pytest.fixture
def plain_product(store):
    return save_product(
        store,
        Product(
            id="prod-soap",
            name="Laundry Soap",
            category="Household",
            barcode="8990002",
            cost_price=4000,
            sell_price=5000,
            stock=2,
            unit="pcs",
        ),
    )


@pytest.fixture
def customer(store):
    return save_customer(store, Customer(id="cust-siti", name="Warung Bu Siti", phone="0812000111"))
