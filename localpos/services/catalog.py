from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

from localpos.db import Store
from localpos.errors import CommitFailedError, RecordNotFoundError, ValidationError
from localpos.models import Product, UnitConversion
from localpos.units import format_conversions, parse_conversions
from localpos.utils import clean_str, iso_now, new_id, to_float

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "General"
DEFAULT_UNIT = "pcs"

COL_BARCODE = "Barcode"
COL_NAME = "Product Name"
COL_CATEGORY = "Category"
COL_UNIT = "Unit"
COL_STOCK = "Stock"
COL_COST = "Cost"
COL_SELL = "Sell"
COL_CONVERSIONS = "Conversions"
CATALOG_COLUMNS = [COL_BARCODE, COL_NAME, COL_CATEGORY, COL_UNIT, COL_STOCK, COL_COST, COL_SELL, COL_CONVERSIONS]


@dataclass
class ImportResult:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0


def _validate_product(product: Product) -> None:
    if not str(product.name or "").strip():
        raise ValidationError("Product name is required.")
    if not str(product.unit or "").strip():
        raise ValidationError("Base unit is required.")
    for c in product.conversions:
        if not str(c.unit_name or "").strip():
            raise ValidationError(f"{product.name}: every unit level needs a name.")
        if float(c.conversion_factor) <= 0:
            raise ValidationError(f"{product.name}: conversion factor for '{c.unit_name}' must be > 0.")


def save_product(store: Store, product: Product) -> Product:
    """Insert or update; a product without an id gets a new one."""
    if not product.id:
        product.id = new_id()
    if not product.created_at:
        product.created_at = iso_now()
    for c in product.conversions:
        if not c.id:
            c.id = new_id()
    _validate_product(product)
    store.put("products", product.to_record())
    return product


def get_product(store: Store, product_id: str) -> Product:
    rec = store.get("products", product_id)
    if rec is None:
        raise RecordNotFoundError("products", product_id)
    return Product.from_record(rec)


def find_by_barcode(store: Store, barcode: str) -> Optional[Product]:
    rec = store.get_by_index("products", "barcode", str(barcode))
    return Product.from_record(rec) if rec else None


def list_products(store: Store) -> list[Product]:
    products = [Product.from_record(r) for r in store.get_all("products")]
    products.sort(key=lambda p: p.name.lower())
    return products


def search_products(store: Store, query: str) -> list[Product]:
    needle = str(query or "").strip()
    if not needle:
        return list_products(store)
    lowered = needle.lower()
    return [p for p in list_products(store) if lowered in p.name.lower() or needle in str(p.barcode)]


def delete_product(store: Store, product_id: str) -> bool:
    # Sale items keep their product_name snapshot; no cascade.
    return store.delete("products", product_id)


def low_stock(store: Store, threshold: float = 10) -> list[Product]:
    return sorted((p for p in list_products(store) if float(p.stock) < threshold), key=lambda p: p.stock)


def _row_to_product(row: dict, existing: Optional[Product]) -> Product:
    return Product(
        id=existing.id if existing else new_id(),
        name=clean_str(row.get(COL_NAME)) or "",
        category=clean_str(row.get(COL_CATEGORY)) or DEFAULT_CATEGORY,
        barcode=clean_str(row.get(COL_BARCODE)) or "",
        cost_price=to_float(row.get(COL_COST)),
        sell_price=to_float(row.get(COL_SELL)),
        stock=to_float(row.get(COL_STOCK)),
        unit=clean_str(row.get(COL_UNIT)) or DEFAULT_UNIT,
        conversions=parse_conversions(row.get(COL_CONVERSIONS)),
        created_at=existing.created_at if existing else iso_now(),
        image_url=existing.image_url if existing else None,
    )


def _barcode_str(v) -> Optional[str]:
    # Spreadsheets hand numeric barcodes back as floats ("8991234.0").
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    return clean_str(v)


def import_catalog(store: Store, frame: pd.DataFrame) -> ImportResult:
    """
    Upsert products from a catalog sheet, matching existing products by barcode.

    Rows without a barcode or name are skipped. All rows are written in one transaction.
    """
    missing = [c for c in (COL_BARCODE, COL_NAME) if c not in frame.columns]
    if missing:
        raise ValidationError(f"Catalog is missing column(s): {', '.join(missing)}")

    rows = frame.to_dict(orient="records")
    result = ImportResult()

    def _work(tx) -> None:
        for row in rows:
            barcode = _barcode_str(row.get(COL_BARCODE))
            name = clean_str(row.get(COL_NAME))
            if not barcode or not name:
                result.skipped += 1
                continue
            row[COL_BARCODE] = barcode

            rec = tx.get_by_index("products", "barcode", barcode)
            existing = Product.from_record(rec) if rec else None
            tx.put("products", _row_to_product(row, existing).to_record())
            if existing:
                result.updated += 1
            else:
                result.inserted += 1

    try:
        store.run_transaction(["products"], _work)
    except sqlite3.Error as e:
        logger.exception("Catalog import failed")
        raise CommitFailedError("Catalog import failed. No products were changed.") from e

    logger.info("Catalog import: %s inserted, %s updated, %s skipped", result.inserted, result.updated, result.skipped)
    return result


def export_catalog(store: Store) -> pd.DataFrame:
    data = [
        {
            COL_BARCODE: p.barcode,
            COL_NAME: p.name,
            COL_CATEGORY: p.category,
            COL_UNIT: p.unit,
            COL_STOCK: p.stock,
            COL_COST: p.cost_price,
            COL_SELL: p.sell_price,
            COL_CONVERSIONS: format_conversions(p.conversions),
        }
        for p in list_products(store)
    ]
    return pd.DataFrame(data, columns=CATALOG_COLUMNS)


def read_catalog_file(source, name: Optional[str] = None) -> pd.DataFrame:
    """Read a catalog from a path or file-like object; `name` gives the extension for uploads."""
    suffix = Path(name or str(source)).suffix.lower()
    if suffix in {".xlsx", ".xls"}:
        return pd.read_excel(source, dtype={COL_BARCODE: str})
    return pd.read_csv(source, dtype={COL_BARCODE: str})


def write_catalog_file(frame: pd.DataFrame, path: Path | str) -> Path:
    path = Path(path)
    if path.suffix.lower() == ".xlsx":
        frame.to_excel(path, index=False, sheet_name="Products")
    else:
        frame.to_csv(path, index=False)
    return path


def new_conversion(unit_name: str, factor: float, price: float) -> UnitConversion:
    return UnitConversion(id=new_id(), unit_name=unit_name, conversion_factor=float(factor), sell_price=float(price))
