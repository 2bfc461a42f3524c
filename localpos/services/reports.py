from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

import pandas as pd

from localpos.db import Store
from localpos.models import Sale
from localpos.services.debts import debt_created_on
from localpos.services.sales import list_sales
from localpos.utils import iso_today

SALE_COLUMNS = ["id", "date_time", "total_amount", "payment_type", "customer_id"]
ITEM_COLUMNS = ["sale_id", "product_id", "product_name", "quantity", "unit_price", "total_price", "cost_price"]


@dataclass
class DailySummary:
    day: str
    transactions: int
    revenue: float
    profit: float
    debt: float


def _sales_frame(store: Store) -> pd.DataFrame:
    df = pd.DataFrame(store.get_all("sales"), columns=SALE_COLUMNS)
    df["total_amount"] = pd.to_numeric(df["total_amount"], errors="coerce").fillna(0.0)
    df["day"] = df["date_time"].astype(str).str.split("T").str[0]
    return df


def _items_frame(store: Store) -> pd.DataFrame:
    df = pd.DataFrame(store.get_all("sale_items"), columns=ITEM_COLUMNS)
    for col in ["quantity", "unit_price", "total_price", "cost_price"]:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)
    # cost_price is per sold tier unit, so this is tier price minus tier cost
    df["profit"] = (df["unit_price"] - df["cost_price"]) * df["quantity"]
    df["cost"] = df["cost_price"] * df["quantity"]
    return df


def daily_summary(store: Store, day: str | None = None) -> DailySummary:
    day = day or iso_today()
    sales = _sales_frame(store)
    todays = sales[sales["day"] == day]

    items = _items_frame(store)
    todays_items = items[items["sale_id"].isin(todays["id"])]

    return DailySummary(
        day=day,
        transactions=int(len(todays)),
        revenue=float(todays["total_amount"].sum()),
        profit=float(todays_items["profit"].sum()),
        debt=float(debt_created_on(store, day)),
    )


def sales_by_day(store: Store, days: int = 14) -> pd.DataFrame:
    """Revenue and profit per day for the last `days` days that have sales."""
    sales = _sales_frame(store)
    if sales.empty:
        return pd.DataFrame(columns=["day", "revenue", "profit"])

    cost = _items_frame(store).groupby("sale_id")["cost"].sum()
    sales["cost"] = sales["id"].map(cost).fillna(0.0)
    sales["profit"] = sales["total_amount"] - sales["cost"]

    grouped = (
        sales.groupby("day")
        .agg(revenue=("total_amount", "sum"), profit=("profit", "sum"))
        .sort_index()
        .tail(int(days))
        .reset_index()
    )
    return grouped


def last_n_days_revenue(store: Store, today: str | None = None, n: int = 7) -> pd.DataFrame:
    """Revenue for each of the last `n` days ending at `today`, zero when there were no sales."""
    end = date.fromisoformat(today or iso_today())
    days = [(end - timedelta(days=i)).isoformat() for i in range(n - 1, -1, -1)]

    sales = _sales_frame(store)
    totals = sales.groupby("day")["total_amount"].sum()
    return pd.DataFrame({"day": days, "amount": [float(totals.get(d, 0.0)) for d in days]})


def top_products(store: Store, limit: int = 10) -> pd.DataFrame:
    """Best sellers by quantity sold (in the sold tier's units)."""
    items = _items_frame(store)
    if items.empty:
        return pd.DataFrame(columns=["product_id", "name", "qty", "revenue", "profit"])

    grouped = items.groupby("product_id").agg(
        name=("product_name", "first"),
        qty=("quantity", "sum"),
        revenue=("total_price", "sum"),
        profit=("profit", "sum"),
    )
    return grouped.sort_values("qty", ascending=False, kind="stable").head(int(limit)).reset_index()


def recent_sales(store: Store, limit: int = 15) -> list[Sale]:
    return list_sales(store, limit=limit)
