from __future__ import annotations

import math
from dataclasses import dataclass, field

from localpos.errors import InsufficientStockError, InvalidAmountError
from localpos.models import Product
from localpos.services.sales import CartLine
from localpos.units import Tier, base_quantity, base_tier, max_purchasable, resolve_tier


@dataclass
class CartEntry:
    product: Product
    tier: Tier
    qty: float = 1

    @property
    def line_total(self) -> float:
        return self.tier.price * self.qty


@dataclass
class Cart:
    """
    Checkout cart kept in the UI session.

    Its stock checks use the product snapshot it was given and only serve to give
    the cashier early feedback; commit_sale checks again against current stock.
    """

    entries: list[CartEntry] = field(default_factory=list)

    def _ensure(self, product: Product, tier: Tier, qty: float) -> None:
        if not max_purchasable(product, tier, qty):
            raise InsufficientStockError(product.id, product.name, base_quantity(tier, qty), float(product.stock))

    def add_product(self, product: Product) -> CartEntry:
        """Add one base unit of `product`, or bump its existing base-unit entry."""
        if float(product.stock) <= 0:
            raise InsufficientStockError(product.id, product.name, 1, float(product.stock))

        for entry in self.entries:
            if entry.product.id == product.id and entry.tier.factor == 1 and entry.tier.unit_name == product.unit:
                self._ensure(entry.product, entry.tier, entry.qty + 1)
                entry.qty += 1
                return entry

        entry = CartEntry(product=product, tier=base_tier(product), qty=1)
        self._ensure(product, entry.tier, 1)
        self.entries.append(entry)
        return entry

    def add_line(self, product: Product, unit_name: str, qty: float) -> CartEntry:
        """Add a separate line at a given tier; lines for the same product are never merged."""
        if not math.isfinite(float(qty)) or float(qty) <= 0:
            raise InvalidAmountError("Quantity must be a number > 0.")
        tier = resolve_tier(product, unit_name)
        self._ensure(product, tier, qty)
        entry = CartEntry(product=product, tier=tier, qty=float(qty))
        self.entries.append(entry)
        return entry

    def update_qty(self, index: int, delta: float) -> CartEntry:
        entry = self.entries[index]
        new_qty = max(1, entry.qty + delta)
        self._ensure(entry.product, entry.tier, new_qty)
        entry.qty = new_qty
        return entry

    def change_unit(self, index: int, unit_name: str) -> CartEntry:
        entry = self.entries[index]
        tier = resolve_tier(entry.product, unit_name)
        self._ensure(entry.product, tier, entry.qty)
        entry.tier = tier
        return entry

    def remove(self, index: int) -> None:
        del self.entries[index]

    def clear(self) -> None:
        self.entries.clear()

    def is_empty(self) -> bool:
        return not self.entries

    @property
    def subtotal(self) -> float:
        return sum(e.line_total for e in self.entries)

    def change_for(self, tendered: float) -> float:
        return float(tendered) - self.subtotal

    def to_lines(self) -> list[CartLine]:
        return [CartLine(product_id=e.product.id, unit_name=e.tier.unit_name, quantity=e.qty) for e in self.entries]
