from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Optional

PAYMENT_CASH = "cash"
PAYMENT_DEBT = "debt"
PAYMENT_TYPES = {PAYMENT_CASH, PAYMENT_DEBT}

ROLE_ADMIN = "admin"
ROLE_CASHIER = "cashier"
ROLES = {ROLE_ADMIN, ROLE_CASHIER}


class _Record:
    """Dict conversion shared by every stored record."""

    def to_record(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, data: dict[str, Any]):
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass
class UnitConversion(_Record):
    id: str
    unit_name: str
    conversion_factor: float
    sell_price: float


@dataclass
class Product(_Record):
    id: str
    name: str
    category: str
    barcode: str
    cost_price: float
    sell_price: float
    stock: float
    unit: str
    conversions: list[UnitConversion] = field(default_factory=list)
    created_at: str = ""
    image_url: Optional[str] = None

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Product":
        data = dict(data)
        data["conversions"] = [
            c if isinstance(c, UnitConversion) else UnitConversion.from_record(c)
            for c in data.get("conversions") or []
        ]
        return super().from_record(data)


@dataclass
class Customer(_Record):
    id: str
    name: str
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: str = ""


@dataclass
class Sale(_Record):
    id: str
    date_time: str
    cashier_user_id: str
    total_amount: float
    payment_type: str
    paid_amount: float = 0.0
    change_amount: float = 0.0
    customer_id: Optional[str] = None
    note: Optional[str] = None


@dataclass
class SaleItem(_Record):
    id: str
    sale_id: str
    product_id: str
    product_name: str
    quantity: float
    unit_name: str
    conversion_factor: float
    unit_price: float
    total_price: float
    # cost per sold tier unit (base cost x conversion_factor)
    cost_price: float


@dataclass
class Debt(_Record):
    id: str
    customer_id: str
    sale_id: str
    amount: float
    created_at: str


@dataclass
class DebtPayment(_Record):
    id: str
    customer_id: str
    amount: float
    date_time: str
    note: Optional[str] = None


@dataclass
class User(_Record):
    id: str
    username: str
    password_hash: str
    role: str
    created_at: str = ""


@dataclass
class StoreSettings(_Record):
    store_name: str = "LocalPOS Store"
    store_address: str = ""
    store_phone: Optional[str] = None
    receipt_footer_note: Optional[str] = "Thank you, come again!"
