"""
Packaging tiers for a product.

Stock is always held in the product's base unit. A tier is either that base
unit (factor 1, product sell price) or one of the product's declared
conversions, e.g. "Case" = 10 base units sold at its own price.
"""
from __future__ import annotations

from dataclasses import dataclass

from localpos.errors import UnknownUnitError
from localpos.models import Product, UnitConversion
from localpos.utils import new_id, to_float

CONVERSION_SEP = ";"
CONVERSION_FIELD_SEP = ":"


@dataclass(frozen=True)
class Tier:
    unit_name: str
    factor: float
    price: float


def base_tier(product: Product) -> Tier:
    return Tier(unit_name=product.unit, factor=1, price=float(product.sell_price))


def tiers(product: Product) -> list[Tier]:
    out = [base_tier(product)]
    for c in product.conversions:
        out.append(Tier(unit_name=c.unit_name, factor=float(c.conversion_factor), price=float(c.sell_price)))
    return out


def resolve_tier(product: Product, unit_name: str) -> Tier:
    # Base unit first, then conversions in declared order; first match wins.
    for t in tiers(product):
        if t.unit_name == unit_name:
            return t
    raise UnknownUnitError(product.id, unit_name)


def base_quantity(tier: Tier, qty: float) -> float:
    return float(qty) * float(tier.factor)


def max_purchasable(product: Product, tier: Tier, requested_qty: float) -> bool:
    return base_quantity(tier, requested_qty) <= float(product.stock)


def _fmt_number(v: float) -> str:
    f = float(v)
    return str(int(f)) if f.is_integer() else f"{f:g}"


def parse_conversions(text) -> list[UnitConversion]:
    """
    Parse the packed spreadsheet column, e.g. "Case:10:28000;Carton:40:105000".

    Segments without a name, or with a factor <= 0, are skipped.
    """
    if text is None:
        return []
    s = str(text).strip()
    if not s or s.lower() == "nan":
        return []

    out: list[UnitConversion] = []
    for seg in s.split(CONVERSION_SEP):
        parts = [p.strip() for p in seg.split(CONVERSION_FIELD_SEP)]
        if len(parts) != 3 or not parts[0]:
            continue
        factor = to_float(parts[1])
        if factor <= 0:
            continue
        out.append(
            UnitConversion(
                id=new_id(),
                unit_name=parts[0],
                conversion_factor=factor,
                sell_price=to_float(parts[2]),
            )
        )
    return out


def format_conversions(conversions: list[UnitConversion]) -> str:
    return CONVERSION_SEP.join(
        CONVERSION_FIELD_SEP.join([c.unit_name, _fmt_number(c.conversion_factor), _fmt_number(c.sell_price)])
        for c in conversions
    )
