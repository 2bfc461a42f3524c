from __future__ import annotations

import logging
import math
import sqlite3
from dataclasses import dataclass
from typing import Optional

from localpos.db import Store, Transaction
from localpos.errors import (
    CommitFailedError,
    EmptyCartError,
    InsufficientStockError,
    InvalidAmountError,
    InvalidPaymentError,
    RecordNotFoundError,
)
from localpos.models import PAYMENT_CASH, PAYMENT_DEBT, PAYMENT_TYPES, Debt, Product, Sale, SaleItem, StoreSettings
from localpos.units import Tier, base_quantity, resolve_tier
from localpos.utils import iso_now, new_id

logger = logging.getLogger(__name__)

# customers is only read, to check the debtor exists
COMMIT_COLLECTIONS = ("sales", "sale_items", "products", "debts", "customers")


@dataclass(frozen=True)
class CartLine:
    product_id: str
    unit_name: str
    quantity: float


@dataclass
class SaleReceipt:
    sale: Sale
    items: list[SaleItem]
    debt: Optional[Debt] = None
    customer_name: Optional[str] = None


def _normalize_note(note: Optional[str]) -> Optional[str]:
    if note is None:
        return None
    s = str(note).strip()
    return s if s else None


def _normalize_payment_type(payment_type: str) -> str:
    pt = str(payment_type or "").strip().lower()
    if pt not in PAYMENT_TYPES:
        raise InvalidPaymentError(f"Invalid payment type '{payment_type}'. Use 'cash' or 'debt'.")
    return pt


def _load_product(tx: Transaction, product_id: str) -> Product:
    rec = tx.get("products", product_id)
    if rec is None:
        raise RecordNotFoundError("products", product_id)
    return Product.from_record(rec)


def _check_payment(payment_type: str, subtotal: float, tendered: Optional[float], customer_id: Optional[str]) -> None:
    if payment_type == PAYMENT_CASH:
        if tendered is None or not math.isfinite(float(tendered)):
            raise InvalidPaymentError("Enter the cash amount received.", {"tendered": tendered})
        if float(tendered) < subtotal:
            raise InvalidPaymentError(
                f"Cash tendered ({float(tendered):g}) is less than the total ({subtotal:g}).",
                {"tendered": tendered, "subtotal": subtotal},
            )
    elif not customer_id:
        raise InvalidPaymentError("A customer is required for a debt sale.")


def _price_lines(tx: Transaction, lines: list[CartLine]) -> list[tuple[Product, Tier, float]]:
    """
    Resolve every line against current stock, applying earlier lines first.

    Two lines for the same product (e.g. loose pieces and a case) are checked
    in order, each against what the previous lines left.
    """
    products: dict[str, Product] = {}
    priced: list[tuple[Product, Tier, float]] = []

    for line in lines:
        qty = float(line.quantity)
        if not math.isfinite(qty) or qty <= 0:
            raise InvalidAmountError(f"Quantity must be a number > 0 (got {line.quantity}).")

        product = products.get(line.product_id)
        if product is None:
            product = _load_product(tx, line.product_id)
            products[product.id] = product

        tier = resolve_tier(product, line.unit_name)
        needed = base_quantity(tier, qty)
        if needed > float(product.stock):
            raise InsufficientStockError(product.id, product.name, needed, float(product.stock))

        product.stock = float(product.stock) - needed
        priced.append((product, tier, qty))

    return priced


def _write_sale(
    tx: Transaction,
    lines: list[CartLine],
    *,
    payment_type: str,
    cashier_user_id: str,
    tendered: Optional[float],
    customer_id: Optional[str],
    note: Optional[str],
    now: str,
) -> SaleReceipt:
    priced = _price_lines(tx, lines)

    sale_id = new_id()
    items = [
        SaleItem(
            id=new_id(),
            sale_id=sale_id,
            product_id=product.id,
            product_name=product.name,
            quantity=qty,
            unit_name=tier.unit_name,
            conversion_factor=tier.factor,
            unit_price=tier.price,
            total_price=tier.price * qty,
            cost_price=float(product.cost_price) * tier.factor,
        )
        for product, tier, qty in priced
    ]
    total = sum(i.total_price for i in items)

    # Validated before the first write.
    _check_payment(payment_type, total, tendered, customer_id)
    customer = tx.get("customers", customer_id) if customer_id else None
    if payment_type == PAYMENT_DEBT and customer is None:
        raise InvalidPaymentError(f"Customer {customer_id} does not exist.", {"customer_id": customer_id})

    is_cash = payment_type == PAYMENT_CASH
    sale = Sale(
        id=sale_id,
        date_time=now,
        customer_id=customer_id or None,
        cashier_user_id=cashier_user_id,
        total_amount=total,
        payment_type=payment_type,
        paid_amount=float(tendered) if is_cash else 0.0,
        change_amount=float(tendered) - total if is_cash else 0.0,
        note=note,
    )
    tx.add("sales", sale.to_record())

    for item in items:
        tx.add("sale_items", item.to_record())

    # Products were decremented in memory while pricing; persist each once.
    seen: set[str] = set()
    for product, _, _ in priced:
        if product.id not in seen:
            tx.put("products", product.to_record())
            seen.add(product.id)

    debt = None
    if payment_type == PAYMENT_DEBT:
        debt = Debt(id=new_id(), customer_id=str(customer_id), sale_id=sale_id, amount=total, created_at=now)
        tx.add("debts", debt.to_record())

    return SaleReceipt(sale=sale, items=items, debt=debt, customer_name=customer["name"] if customer else None)


def commit_sale(
    store: Store,
    lines: list[CartLine],
    *,
    payment_type: str,
    cashier_user_id: str,
    tendered: Optional[float] = None,
    customer_id: Optional[str] = None,
    note: Optional[str] = None,
    now: Optional[str] = None,
) -> SaleReceipt:
    """
    Record a sale: the sale row, its items, the stock decrements and (for debt
    sales) the debt row are written in one transaction, or nothing is.

    Validation errors propagate as-is. Storage failures surface as CommitFailedError.
    """
    if not lines:
        raise EmptyCartError("Cart is empty.")

    payment_type = _normalize_payment_type(payment_type)
    if payment_type == PAYMENT_DEBT and not customer_id:
        raise InvalidPaymentError("A customer is required for a debt sale.")

    try:
        receipt = store.run_transaction(
            COMMIT_COLLECTIONS,
            lambda tx: _write_sale(
                tx,
                list(lines),
                payment_type=payment_type,
                cashier_user_id=str(cashier_user_id),
                tendered=tendered,
                customer_id=customer_id,
                note=_normalize_note(note),
                now=now or iso_now(),
            ),
        )
    except sqlite3.Error as e:
        logger.exception("Sale commit failed")
        raise CommitFailedError("The sale could not be saved. Nothing was recorded.") from e

    logger.info(
        "Committed sale %s: %d item(s), total %s, %s",
        receipt.sale.id,
        len(receipt.items),
        receipt.sale.total_amount,
        payment_type,
    )
    return receipt


def list_sales(store: Store, limit: Optional[int] = None) -> list[Sale]:
    """Newest first."""
    sales = [Sale.from_record(r) for r in store.get_all("sales")]
    sales.sort(key=lambda s: s.date_time, reverse=True)
    return sales[:limit] if limit is not None else sales


def get_sale_items(store: Store, sale_id: str) -> list[SaleItem]:
    return [SaleItem.from_record(r) for r in store.get_all_by_index("sale_items", "sale_id", sale_id)]


def format_receipt(receipt: SaleReceipt, settings: StoreSettings) -> str:
    sale = receipt.sale
    lines = [
        settings.store_name,
        settings.store_address,
    ]
    if settings.store_phone:
        lines.append(settings.store_phone)
    lines += [
        "-" * 32,
        f"Date: {sale.date_time}",
        f"Customer: {receipt.customer_name or 'Walk-in'}",
        "-" * 32,
    ]
    for item in receipt.items:
        lines.append(item.product_name)
        lines.append(f"  {item.quantity:g} {item.unit_name} x {item.unit_price:,.0f} = {item.total_price:,.0f}")
    lines += ["-" * 32, f"TOTAL: {sale.total_amount:,.0f}"]
    if sale.payment_type == PAYMENT_CASH:
        lines += [f"Cash: {sale.paid_amount:,.0f}", f"Change: {sale.change_amount:,.0f}"]
    else:
        lines.append("Payment: DEBT")
    if sale.note:
        lines.append(f"Note: {sale.note}")
    if settings.receipt_footer_note:
        lines += ["", settings.receipt_footer_note]
    return "\n".join(lines)
