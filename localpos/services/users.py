from __future__ import annotations

import logging
from typing import Optional

from pwdlib.exceptions import UnknownHashError

from localpos.db import Store
from localpos.errors import AuthenticationError, DuplicateKeyError, RecordNotFoundError, ValidationError
from localpos.models import ROLES, User
from localpos.security import hash_password, verify_password
from localpos.utils import clean_str, iso_now, new_id

logger = logging.getLogger(__name__)


def _validate(username: Optional[str], role: str) -> str:
    name = clean_str(username)
    if not name:
        raise ValidationError("Username is required.")
    if role not in ROLES:
        raise ValidationError(f"Invalid role '{role}'. Use one of: {', '.join(sorted(ROLES))}.")
    return name


def create_user(store: Store, username: str, password: str, role: str) -> User:
    name = _validate(username, role)
    if not password:
        raise ValidationError("Password is required for a new user.")
    if store.get_by_index("users", "username", name):
        raise DuplicateKeyError("users", name)

    user = User(id=new_id(), username=name, password_hash=hash_password(password), role=role, created_at=iso_now())
    store.add("users", user.to_record())
    logger.info("Created %s user '%s'", role, name)
    return user


def update_user(store: Store, user_id: str, *, username: str, role: str, password: Optional[str] = None) -> User:
    """A blank password keeps the current one."""
    rec = store.get("users", user_id)
    if rec is None:
        raise RecordNotFoundError("users", user_id)
    user = User.from_record(rec)

    user.username = _validate(username, role)
    user.role = role
    if password:
        user.password_hash = hash_password(password)
    store.put("users", user.to_record())
    return user


def delete_user(store: Store, user_id: str) -> bool:
    return store.delete("users", user_id)


def list_users(store: Store) -> list[User]:
    return sorted((User.from_record(r) for r in store.get_all("users")), key=lambda u: u.username)


def get_user(store: Store, user_id: str) -> Optional[User]:
    rec = store.get("users", user_id)
    return User.from_record(rec) if rec else None


def authenticate(store: Store, username: str, password: str) -> User:
    rec = store.get_by_index("users", "username", clean_str(username))
    if rec is not None:
        user = User.from_record(rec)
        try:
            ok = verify_password(password or "", user.password_hash)
        except UnknownHashError:
            ok = False
        if ok:
            return user
    logger.warning("Failed login for '%s'", username)
    raise AuthenticationError("Invalid username or password.")
