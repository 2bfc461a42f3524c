from __future__ import annotations

from typing import Optional

import streamlit as st

from localpos.config import AppConfig, get_config
from localpos.db import Store, get_store
from localpos.models import ROLE_ADMIN, User
from localpos.services.cart import Cart
from localpos.services.users import get_user

SESSION_USER = "user"
SESSION_CART = "cart"


def current_store() -> tuple[AppConfig, Store]:
    config = get_config()
    return config, get_store(config.db_path)


def current_user(store: Store) -> Optional[User]:
    user_id = st.session_state.get(SESSION_USER)
    return get_user(store, user_id) if user_id else None


def login(user: User) -> None:
    st.session_state[SESSION_USER] = user.id


def logout() -> None:
    st.session_state.pop(SESSION_USER, None)
    st.session_state.pop(SESSION_CART, None)


def require_user(store: Store, *, admin: bool = False) -> User:
    """Stop the page unless someone is logged in (and is an admin when asked)."""
    user = current_user(store)
    if user is None:
        st.info("Please log in on the Home page first.")
        st.stop()
    if admin and user.role != ROLE_ADMIN:
        st.error("This page is for admins only.")
        st.stop()
    return user


def session_cart() -> Cart:
    if SESSION_CART not in st.session_state:
        st.session_state[SESSION_CART] = Cart()
    return st.session_state[SESSION_CART]
