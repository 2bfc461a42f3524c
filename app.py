from __future__ import annotations

import streamlit as st

from localpos.config import configure_logging

configure_logging()

st.set_page_config(page_title="LocalPOS", page_icon="🛒", layout="wide")

pages = [
    st.Page("home.py", title="Home", icon="🏠"),
    st.Page("pages/1_🛒_POS.py", title="Cashier", icon="🛒"),
    st.Page("pages/2_📦_Products.py", title="Products", icon="📦"),
    st.Page("pages/3_👥_Customers.py", title="Customers", icon="👥"),
    st.Page("pages/4_💳_Debts.py", title="Debts", icon="💳"),
    st.Page("pages/5_📊_Reports.py", title="Reports", icon="📊"),
    st.Page("pages/6_🧪_Data_Management.py", title="Data Management", icon="🧪"),
]

st.navigation(pages).run()
