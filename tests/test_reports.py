import time

import pytest

from localpos.services.reports import daily_summary, last_n_days_revenue, recent_sales, sales_by_day, top_products
from localpos.services.sales import CartLine, commit_sale
from localpos.utils import iso_today


@pytest.fixture
def sold(store, cashier_id, pack_product, plain_product, customer):
    def sell(lines, ts, **kw):
        kw.setdefault("payment_type", "cash")
        if kw["payment_type"] == "cash":
            kw.setdefault("tendered", 1e6)
        commit_sale(store, lines, cashier_user_id=cashier_id, now=ts, **kw)

    # day 1: 1 pack noodles (9000, cost 6000)
    sell([CartLine("prod-noodle", "pack", 1)], "2025-03-01T08:00:00.000+00:00")
    # day 2: 3 pcs noodles (3000, cost 1800) + debt 1 soap (5000, cost 4000)
    sell([CartLine("prod-noodle", "pcs", 3)], "2025-03-02T08:00:00.000+00:00")
    sell(
        [CartLine("prod-soap", "pcs", 1)],
        "2025-03-02T09:00:00.000+00:00",
        payment_type="debt",
        customer_id=customer.id,
    )
    return store


def test_daily_summary(sold):
    s = daily_summary(sold, "2025-03-02")
    assert s.transactions == 2
    assert s.revenue == 8000
    assert s.profit == 1200 + 1000
    assert s.debt == 5000


def test_daily_summary_empty_day(sold):
    s = daily_summary(sold, "2025-02-01")
    assert (s.transactions, s.revenue, s.profit, s.debt) == (0, 0, 0, 0)


def test_sales_by_day(sold):
    df = sales_by_day(sold)
    assert df["day"].tolist() == ["2025-03-01", "2025-03-02"]
    assert df["revenue"].tolist() == [9000, 8000]
    assert df["profit"].tolist() == [3000, 2200]
    assert sales_by_day(sold, days=1)["day"].tolist() == ["2025-03-02"]


def test_last_n_days_revenue_fills_gaps(sold):
    df = last_n_days_revenue(sold, today="2025-03-03", n=4)
    assert df["day"].tolist() == ["2025-02-28", "2025-03-01", "2025-03-02", "2025-03-03"]
    assert df["amount"].tolist() == [0, 9000, 8000, 0]


def test_top_products(sold):
    df = top_products(sold)
    assert df["product_id"].tolist() == ["prod-noodle", "prod-soap"]
    noodle = df.iloc[0]
    assert noodle["name"] == "Instant Noodles"
    assert noodle["qty"] == 4
    assert noodle["revenue"] == 12000
    assert noodle["profit"] == 4200


def test_reports_on_empty_store(store):
    assert sales_by_day(store).empty
    assert top_products(store).empty
    assert last_n_days_revenue(store, today="2025-03-03")["amount"].sum() == 0
    assert recent_sales(store) == []


def test_recent_sales(sold):
    assert [s.date_time[:13] for s in recent_sales(sold, limit=2)] == ["2025-03-02T09", "2025-03-02T08"]


@pytest.fixture(params=["Etc/GMT-14", "Etc/GMT+12"])
def far_timezone(request, monkeypatch):
    """Run with the local clock a full half-day away from UTC."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", request.param)
    time.tzset()
    yield request.param
    monkeypatch.undo()
    time.tzset()


def test_today_matches_sale_timestamps_in_any_timezone(store, cashier_id, pack_product, far_timezone):
    commit_sale(
        store, [CartLine("prod-noodle", "pcs", 2)], payment_type="cash", cashier_user_id=cashier_id, tendered=2000
    )

    summary = daily_summary(store)
    assert summary.day == iso_today()
    assert (summary.transactions, summary.revenue) == (1, 2000)

    week = last_n_days_revenue(store)
    assert week["day"].iloc[-1] == iso_today()
    assert week["amount"].iloc[-1] == 2000
