from __future__ import annotations

import random

from localpos.db import SEED_ADMIN_ID, Store
from localpos.models import PAYMENT_CASH, PAYMENT_DEBT, Customer, Product
from localpos.services.catalog import find_by_barcode, new_conversion, save_product
from localpos.services.customers import save_customer
from localpos.services.sales import CartLine, commit_sale

# barcode, name, category, unit, stock, cost, sell, [(tier, factor, price)]
DEMO_PRODUCTS = [
    ("8991001", "Rice 5kg", "Staples", "sack", 40, 62000, 68000, []),
    ("8991002", "Cooking Oil 1L", "Staples", "bottle", 120, 14500, 16000, [("Carton", 12, 186000)]),
    ("8991003", "Instant Noodles", "Food", "pcs", 400, 2600, 3000, [("Pack", 5, 14500), ("Case", 40, 112000)]),
    ("8991004", "Sugar 1kg", "Staples", "pack", 80, 13000, 14500, [("Bale", 20, 285000)]),
    ("8991005", "Kretek Cigarettes", "Tobacco", "pack", 200, 26000, 28000, [("Slop", 10, 275000)]),
    ("8991006", "Bottled Water 600ml", "Drinks", "bottle", 240, 2500, 3500, [("Case", 24, 72000)]),
    ("8991007", "Laundry Soap", "Household", "pcs", 60, 4000, 5000, []),
]

DEMO_CUSTOMERS = [
    ("Warung Bu Siti", "Siti", "0812000111", "Jl. Melati 3"),
    ("Pak Budi", None, "0812000222", "Jl. Mawar 10"),
    ("Toko Sinar Jaya", "Andi", "0812000333", None),
]

WIPE_ORDER = ["debt_payments", "debts", "sale_items", "sales", "customers", "products"]


def upsert_demo_catalog(store: Store) -> list[Product]:
    out = []
    for barcode, name, category, unit, stock, cost, sell, tiers in DEMO_PRODUCTS:
        existing = find_by_barcode(store, barcode)
        product = Product(
            id=existing.id if existing else "",
            name=name,
            category=category,
            barcode=barcode,
            cost_price=float(cost),
            sell_price=float(sell),
            stock=float(stock),
            unit=unit,
            conversions=[new_conversion(t, f, p) for t, f, p in tiers],
            created_at=existing.created_at if existing else "",
        )
        out.append(save_product(store, product))
    return out


def wipe_all(store: Store) -> None:
    # Keep users and settings, delete catalog and ledger data in one go.
    with store.transaction(*WIPE_ORDER) as tx:
        for name in WIPE_ORDER:
            tx.clear(name)


def load_demo_data(store: Store, *, seed: int = 7) -> None:
    rng = random.Random(seed)
    products = upsert_demo_catalog(store)
    customers = []
    for name, contact, phone, address in DEMO_CUSTOMERS:
        existing = store.get_by_index("customers", "name", name)
        customers.append(
            save_customer(
                store,
                Customer(
                    id=existing["id"] if existing else "",
                    name=name,
                    contact_name=contact,
                    phone=phone,
                    address=address,
                    created_at=existing["created_at"] if existing else "",
                ),
            )
        )

    # A handful of cash sales and one debt sale per customer
    for _ in range(6):
        picks = rng.sample(products, k=2)
        lines = [CartLine(product_id=p.id, unit_name=p.unit, quantity=rng.randint(1, 3)) for p in picks]
        subtotal = sum(p.sell_price * ln.quantity for p, ln in zip(picks, lines))
        commit_sale(
            store,
            lines,
            payment_type=PAYMENT_CASH,
            cashier_user_id=SEED_ADMIN_ID,
            tendered=subtotal + rng.choice([0, 500, 1000, 5000]),
        )

    for cust in customers:
        p = rng.choice([p for p in products if p.conversions] or products)
        unit = p.conversions[0].unit_name if p.conversions else p.unit
        commit_sale(
            store,
            [CartLine(product_id=p.id, unit_name=unit, quantity=1)],
            payment_type=PAYMENT_DEBT,
            cashier_user_id=SEED_ADMIN_ID,
            customer_id=cust.id,
            note="Demo debt sale",
        )
