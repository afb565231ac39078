# backend/app/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shoppos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shoppos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Display width of zero-padded invoice / product numbers ("0001")
    SEQUENCE_PAD_WIDTH = int(os.environ.get("SEQUENCE_PAD_WIDTH", "4"))

    # Redeem `use_points` for existing customers on a sale. Off by default:
    # the current business rule neither redeems nor accrues on repeat sales.
    LOYALTY_REDEEM_ON_SALE = _env_flag("LOYALTY_REDEEM_ON_SALE")

    # Zero-quantity products older than this are removed by the daily cleanup
    STALE_PRODUCT_RETENTION_DAYS = int(os.environ.get("STALE_PRODUCT_RETENTION_DAYS", "30"))
