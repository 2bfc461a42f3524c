from __future__ import annotations

from dataclasses import dataclass

from localpos.db import Store
from localpos.errors import RecordNotFoundError, ValidationError
from localpos.models import Customer
from localpos.utils import clean_str, iso_now, new_id


@dataclass
class CustomerReferences:
    sales: int
    debts: int

    @property
    def any(self) -> bool:
        return bool(self.sales or self.debts)


def save_customer(store: Store, customer: Customer) -> Customer:
    name = clean_str(customer.name)
    if not name:
        raise ValidationError("Customer name is required.")
    customer.name = name
    customer.contact_name = clean_str(customer.contact_name)
    customer.phone = clean_str(customer.phone)
    customer.address = clean_str(customer.address)
    if not customer.id:
        customer.id = new_id()
    if not customer.created_at:
        customer.created_at = iso_now()
    store.put("customers", customer.to_record())
    return customer


def get_customer(store: Store, customer_id: str) -> Customer:
    rec = store.get("customers", customer_id)
    if rec is None:
        raise RecordNotFoundError("customers", customer_id)
    return Customer.from_record(rec)


def list_customers(store: Store) -> list[Customer]:
    customers = [Customer.from_record(r) for r in store.get_all("customers")]
    customers.sort(key=lambda c: c.name.lower())
    return customers


def search_customers(store: Store, query: str) -> list[Customer]:
    needle = str(query or "").strip().lower()
    if not needle:
        return list_customers(store)
    return [
        c
        for c in list_customers(store)
        if needle in c.name.lower() or needle in (c.phone or "") or needle in (c.contact_name or "").lower()
    ]


def customer_references(store: Store, customer_id: str) -> CustomerReferences:
    """How many sales and debts still point at this customer (shown before deleting)."""
    return CustomerReferences(
        sales=len(store.get_all_by_index("sales", "customer_id", customer_id)),
        debts=len(store.get_all_by_index("debts", "customer_id", customer_id)),
    )


def delete_customer(store: Store, customer_id: str) -> bool:
    # Sales, debts and payments keep the customer_id and become orphaned.
    return store.delete("customers", customer_id)
