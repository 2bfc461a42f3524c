from __future__ import annotations

import streamlit as st
import pandas as pd

from localpos.config import format_money
from localpos.errors import AuthenticationError
from localpos.services.reports import daily_summary, last_n_days_revenue
from localpos.services.catalog import low_stock
from localpos.services.store_settings import get_store_settings
from localpos.services.users import authenticate
from localpos.session import current_store, current_user, login, logout

config, store = current_store()
store_settings = get_store_settings(store)

st.title(f"🛒 {store_settings.store_name}")
st.caption("Point of sale with multi-level units, customer debts and local backups.")

user = current_user(store)

if user is None:
    with st.form("login"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        if st.form_submit_button("Log in", type="primary"):
            try:
                login(authenticate(store, username, password))
                st.rerun()
            except AuthenticationError as e:
                st.error(str(e))
    st.stop()

with st.sidebar:
    st.write(f"Logged in as **{user.username}** ({user.role})")
    if st.button("Log out"):
        logout()
        st.rerun()
    st.subheader("Environment")
    st.write(f"**Data directory:** `{config.data_dir}`")
    st.write(f"**Database:** `{config.db_path.name}`")

summary = daily_summary(store)

c1, c2, c3, c4 = st.columns(4)
c1.metric("Sales today", format_money(summary.revenue, config.currency))
c2.metric("Estimated profit", format_money(summary.profit, config.currency))
c3.metric("Transactions", f"{summary.transactions}")
c4.metric("New debt today", format_money(summary.debt, config.currency))

st.subheader("Last 7 days")
st.bar_chart(last_n_days_revenue(store).set_index("day"))

st.subheader(f"Low stock (< {config.low_stock_threshold})")
low = low_stock(store, config.low_stock_threshold)[:5]
if low:
    st.dataframe(
        pd.DataFrame([{"product": p.name, "stock": p.stock, "unit": p.unit} for p in low]),
        use_container_width=True,
        hide_index=True,
    )
else:
    st.caption("All products are above the threshold.")
