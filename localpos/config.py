from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

import streamlit as st

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "LOCALPOS_DATA_DIR"
ENV_LOG_LEVEL = "LOCALPOS_LOG_LEVEL"
SESSION_DATA_DIR = "localpos_data_dir"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path
    db_path: Path
    currency: str = "IDR"
    low_stock_threshold: int = 10


def configure_logging() -> None:
    level = os.getenv(ENV_LOG_LEVEL, "INFO").upper()
    logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s")


def _default_data_dir() -> Path:
    return Path.home() / ".localpos"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable %s", cfg)
            return {}
    return {}


def persist_data_dir(data_dir_str: str) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    # Always written to the default folder, which is where get_config looks.
    default_dir = _default_data_dir()
    default_dir.mkdir(parents=True, exist_ok=True)
    cfg = default_dir / CONFIG_FILE_NAME
    payload = {"data_dir": str(data_dir)}
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    # Update session for immediate effect
    st.session_state[SESSION_DATA_DIR] = str(data_dir)


def resolve_data_dir(session_value: str | None = None) -> Path:
    # Priority order:
    # 1) Session state (set via Data Management page)
    # 2) Environment variable
    # 3) Persisted settings in default folder
    # 4) Default folder
    if session_value:
        return Path(session_value).expanduser().resolve()
    if os.getenv(ENV_DATA_DIR):
        return Path(os.getenv(ENV_DATA_DIR, "")).expanduser().resolve()
    default_dir = _default_data_dir()
    persisted = _load_persisted_settings(default_dir)
    return Path(persisted.get("data_dir", default_dir)).expanduser().resolve()


@st.cache_resource
def _config_for(data_dir: str) -> AppConfig:
    path = Path(data_dir)
    path.mkdir(parents=True, exist_ok=True)
    return AppConfig(data_dir=path, db_path=path / "localpos.db")


def get_config() -> AppConfig:
    data_dir = resolve_data_dir(st.session_state.get(SESSION_DATA_DIR))
    return _config_for(str(data_dir))


def format_money(amount: float, currency: str = "IDR") -> str:
    # Rupiah has no minor unit in everyday use.
    if currency == "IDR":
        return f"Rp {float(amount):,.0f}".replace(",", ".")
    return f"{currency} {float(amount):,.2f}"
