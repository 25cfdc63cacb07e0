# backend/boekkhuen/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/boekkhuen.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///boekkhuen.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Credit is advisory unless enforcement is switched on
    ENFORCE_CREDIT_LIMIT = _env_flag("ENFORCE_CREDIT_LIMIT", False)

    SALES_PAGE_SIZE = int(os.environ.get("SALES_PAGE_SIZE", "20"))
    SALES_PAGE_SIZE_MAX = 100

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
