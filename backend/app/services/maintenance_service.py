# Overview: Service-layer operations for maintenance; scheduled housekeeping of stale stock.

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Product
from ..time_utils import date_string, utcnow


def cleanup_stale_products(*, retention_days: int | None = None) -> int:
    """
    Delete sold-out products stocked in before the retention window.

    Only rows with quantity == 0 are touched, so an in-flight sale that
    still holds stock is never raced. Meant for one daily cron run (03:30).
    """
    if retention_days is None:
        retention_days = current_app.config.get("STALE_PRODUCT_RETENTION_DAYS", 30)
    cutoff = date_string(utcnow() - timedelta(days=retention_days))
    deleted = db.session.query(Product).filter(
        Product.quantity == 0,
        Product.date_string < cutoff,
    ).delete(synchronize_session=False)
    db.session.commit()
    current_app.logger.info("Stale product cleanup: deleted=%s cutoff=%s", deleted, cutoff)
    return deleted
