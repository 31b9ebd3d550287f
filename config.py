from __future__ import annotations

import os
from pathlib import Path

DEFAULT_DATA_DIR = Path("artifacts") / "progress"
DEFAULT_PROJECTS_PATH = Path("artifacts") / "projects.json"
PERSIST_POLICIES = ("ignore", "retry", "surface")
DEFAULT_ASSETS_DIR = Path(__file__).resolve().parent / "assets"


def get_secret(key: str, default: str = "") -> str:
    value = os.environ.get(key, "")
    if not value:
        try:
            import streamlit as st

            value = st.secrets.get(key, "")
        except Exception:
            value = ""
    return value or default


def get_int_secret(key: str, default: int) -> int:
    raw = get_secret(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_float_secret(key: str, default: float) -> float:
    raw = get_secret(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def debug_enabled() -> bool:
    return get_secret("PROGRESS_DEBUG").strip().lower() in {"1", "true", "yes", "on"}


def data_dir() -> Path:
    raw = get_secret("PROGRESS_DATA_DIR")
    return Path(raw) if raw else DEFAULT_DATA_DIR


def projects_path() -> Path:
    raw = get_secret("PROJECTS_PATH")
    return Path(raw) if raw else DEFAULT_PROJECTS_PATH


def project_api_url() -> str:
    return get_secret("PROJECT_API_URL").strip()


def project_api_token() -> str:
    return get_secret("PROJECT_API_TOKEN").strip()


def persist_error_policy() -> str:
    policy = get_secret("PERSIST_ERROR_POLICY", "ignore").strip().lower()
    return policy if policy in PERSIST_POLICIES else "ignore"


def persist_write_retries() -> int:
    return max(get_int_secret("PERSIST_WRITE_RETRIES", 3), 1)


def report_rows_per_page() -> int:
    return max(get_int_secret("REPORT_ROWS_PER_PAGE", 10), 1)


def report_company() -> str:
    return get_secret("REPORT_COMPANY", "IOCT").strip().upper()


def logo_fetch_timeout() -> float:
    return max(get_float_secret("LOGO_FETCH_TIMEOUT", 5.0), 0.1)


def report_assets_dir() -> Path:
    raw = get_secret("REPORT_ASSETS_DIR")
    return Path(raw) if raw else DEFAULT_ASSETS_DIR
