# backend/nimble/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/nimble.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///nimble.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sales beyond available stock are rejected unless this is set,
    # in which case stock is clamped at zero.
    ALLOW_OVERSELL = _env_flag("NIMBLE_ALLOW_OVERSELL")

    # Products at or below this stock level count as "low stock" on the dashboard
    LOW_STOCK_THRESHOLD = int(os.environ.get("NIMBLE_LOW_STOCK_THRESHOLD", "5"))

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "NIMBLE_CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080",
        ).split(",")
        if origin.strip()
    ]
