from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Collection:
    name: str
    # Record field holding the primary key. None means the caller supplies the key.
    key_field: Optional[str] = "id"
    # index name -> record field; every index is also a column on the table
    indexes: dict[str, str] = field(default_factory=dict)


COLLECTIONS: dict[str, Collection] = {
    c.name: c
    for c in [
        Collection("users", indexes={"username": "username"}),
        Collection("products", indexes={"barcode": "barcode", "category": "category"}),
        Collection("customers", indexes={"name": "name"}),
        Collection("sales", indexes={"date_time": "date_time", "customer_id": "customer_id"}),
        Collection("sale_items", indexes={"sale_id": "sale_id", "product_id": "product_id"}),
        Collection("debts", indexes={"customer_id": "customer_id", "sale_id": "sale_id"}),
        Collection("debt_payments", indexes={"customer_id": "customer_id"}),
        Collection("settings", key_field=None),
    ]
}

SETTINGS_KEY = "config"

# Every table stores the full record as JSON in `doc`; the other columns
# are copies of the indexed fields so lookups can use SQLite indexes.
SCHEMA_SQL = r"""
-- Users (username is unique)
CREATE TABLE IF NOT EXISTS users (
  id TEXT PRIMARY KEY,
  username TEXT NOT NULL,
  doc TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ix_users_username ON users(username);

-- Products (stock is always in base units)
CREATE TABLE IF NOT EXISTS products (
  id TEXT PRIMARY KEY,
  barcode TEXT,
  category TEXT,
  doc TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS ix_products_barcode ON products(barcode);
CREATE INDEX IF NOT EXISTS ix_products_category ON products(category);

-- Customers
CREATE TABLE IF NOT EXISTS customers (
  id TEXT PRIMARY KEY,
  name TEXT,
  doc TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS ix_customers_name ON customers(name);

-- Sales (append-only)
CREATE TABLE IF NOT EXISTS sales (
  id TEXT PRIMARY KEY,
  date_time TEXT,
  customer_id TEXT,
  doc TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS ix_sales_date_time ON sales(date_time);
CREATE INDEX IF NOT EXISTS ix_sales_customer_id ON sales(customer_id);

-- Sale line items (append-only)
CREATE TABLE IF NOT EXISTS sale_items (
  id TEXT PRIMARY KEY,
  sale_id TEXT,
  product_id TEXT,
  doc TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS ix_sale_items_sale_id ON sale_items(sale_id);
CREATE INDEX IF NOT EXISTS ix_sale_items_product_id ON sale_items(product_id);

-- Debts (one per debt-type sale, append-only)
CREATE TABLE IF NOT EXISTS debts (
  id TEXT PRIMARY KEY,
  customer_id TEXT,
  sale_id TEXT,
  doc TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS ix_debts_customer_id ON debts(customer_id);
CREATE INDEX IF NOT EXISTS ix_debts_sale_id ON debts(sale_id);

-- Debt payments (append-only)
CREATE TABLE IF NOT EXISTS debt_payments (
  id TEXT PRIMARY KEY,
  customer_id TEXT,
  doc TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS ix_debt_payments_customer_id ON debt_payments(customer_id);

-- Store settings (singleton under key 'config')
CREATE TABLE IF NOT EXISTS settings (
  id TEXT PRIMARY KEY,
  doc TEXT NOT NULL
);
"""
