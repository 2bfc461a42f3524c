from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

from localpos.db import Store
from localpos.errors import InvalidAmountError
from localpos.models import Debt, DebtPayment
from localpos.utils import day_of, iso_now, new_id, to_float

logger = logging.getLogger(__name__)

KIND_DEBT = "debt"
KIND_PAYMENT = "payment"


@dataclass
class DebtorBalance:
    customer_id: str
    # None when the customer record has been deleted
    customer_name: Optional[str]
    balance: float


@dataclass
class LedgerEntry:
    date_time: str
    kind: str
    # debts positive, payments negative
    amount: float
    sale_id: Optional[str] = None
    note: Optional[str] = None


def _balances(store: Store) -> dict[str, float]:
    """Derived balance per customer id that has any debt or payment row."""
    totals: dict[str, float] = defaultdict(float)
    for d in store.get_all("debts"):
        totals[d["customer_id"]] += float(d["amount"])
    for p in store.get_all("debt_payments"):
        totals[p["customer_id"]] -= float(p["amount"])
    return dict(totals)


def outstanding_balances(store: Store) -> list[DebtorBalance]:
    """
    Customers who owe money, largest balance first.

    Balances are never stored: each call sums debts minus payments. Customers
    whose payments cover (or exceed) their debts are left out.
    """
    names = {c["id"]: c.get("name") for c in store.get_all("customers")}
    out = [
        DebtorBalance(customer_id=cid, customer_name=names.get(cid), balance=bal)
        for cid, bal in _balances(store).items()
        if bal > 0
    ]
    out.sort(key=lambda d: (-d.balance, d.customer_name or ""))
    return out


def customer_balance(store: Store, customer_id: str) -> float:
    """Raw derived balance; negative after an overpayment."""
    debts = store.get_all_by_index("debts", "customer_id", customer_id)
    payments = store.get_all_by_index("debt_payments", "customer_id", customer_id)
    return sum(float(d["amount"]) for d in debts) - sum(float(p["amount"]) for p in payments)


def history(store: Store, customer_id: str) -> list[LedgerEntry]:
    debts = [Debt.from_record(r) for r in store.get_all_by_index("debts", "customer_id", customer_id)]
    payments = [DebtPayment.from_record(r) for r in store.get_all_by_index("debt_payments", "customer_id", customer_id)]

    merged = [
        LedgerEntry(date_time=d.created_at, kind=KIND_DEBT, amount=float(d.amount), sale_id=d.sale_id)
        for d in debts
    ] + [
        LedgerEntry(date_time=p.date_time, kind=KIND_PAYMENT, amount=-float(p.amount), note=p.note)
        for p in payments
    ]
    merged.sort(key=lambda e: e.date_time, reverse=True)
    return merged


def record_payment(
    store: Store,
    customer_id: str,
    amount: float,
    note: Optional[str] = None,
    *,
    now: Optional[str] = None,
) -> DebtPayment:
    """
    Append a payment against a customer's debt.

    The amount is not capped at the current balance: an overpayment leaves a
    negative balance, which outstanding_balances() simply does not list.
    """
    amt = to_float(amount, default=0.0)
    if not math.isfinite(amt) or amt <= 0:
        raise InvalidAmountError(f"Payment amount must be > 0 (got {amount}).")

    payment = DebtPayment(
        id=new_id(),
        customer_id=str(customer_id),
        amount=amt,
        date_time=now or iso_now(),
        note=(str(note).strip() or None) if note is not None else None,
    )
    store.add("debt_payments", payment.to_record())
    logger.info("Recorded debt payment %s for customer %s", amt, customer_id)
    return payment


def debt_created_on(store: Store, day: str) -> float:
    return sum(float(d["amount"]) for d in store.get_all("debts") if day_of(d["created_at"]) == day)
