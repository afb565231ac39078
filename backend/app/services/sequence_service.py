# Overview: Service-layer operations for per-shop sequence counters.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import SequenceCounter
from ..validation import ValidationError
from .concurrency import translate_store_error

"""
Sequence Invariants (authoritative)

- One counter row per (shop_id, counter_name); value = last number issued.
- allocate() is a single atomic increment-with-upsert: the first allocation
  of a missing counter returns 1, every later one returns previous + 1.
- Numbers are monotonically increasing per (shop, counter). A committed
  allocation is never handed out twice.
- When allocate() joins a caller's transaction (commit=False) and that
  transaction rolls back, the increment rolls back with it, so no stored
  document ever carries a number another document also receives.
"""

COUNTER_INVOICE_NO = "invoice_no"
COUNTER_PRODUCT_ID = "product_id"
COUNTER_BUY_BACK_ID = "buy_back_id"


def _increment(shop_id: int, counter_name: str) -> int | None:
    stmt = (
        update(SequenceCounter)
        .where(
            SequenceCounter.shop_id == shop_id,
            SequenceCounter.counter_name == counter_name,
        )
        .values(value=SequenceCounter.value + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    return (
        db.session.query(SequenceCounter.value)
        .filter_by(shop_id=shop_id, counter_name=counter_name)
        .scalar()
    )


def _allocate_in_session(shop_id: int, counter_name: str) -> int:
    value = _increment(shop_id, counter_name)
    if value is not None:
        return value

    # First allocation for this counter: create it at 1. A concurrent caller
    # may create the row first; the savepoint keeps the outer transaction
    # alive and the increment is simply re-run.
    try:
        with db.session.begin_nested():
            db.session.add(SequenceCounter(shop_id=shop_id, counter_name=counter_name, value=1))
        return 1
    except IntegrityError:
        value = _increment(shop_id, counter_name)
        if value is None:
            raise
        return value


def allocate(shop_id: int, counter_name: str, *, commit: bool = True) -> int:
    """
    Atomically allocate the next value of a shop counter.

    commit=False joins the caller's open transaction (used by multi-step
    workflows); the caller must commit.
    """
    if not shop_id:
        raise ValidationError("shop_id is required")
    if not counter_name:
        raise ValidationError("counter_name is required")

    try:
        value = _allocate_in_session(shop_id, counter_name)
        if commit:
            db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise translate_store_error(exc) from exc
    return value


def format_sequence(value: int, width: int | None = None) -> str:
    """Zero-padded display form: 7 -> '0007'. Wider values are kept whole."""
    if width is None:
        width = current_app.config.get("SEQUENCE_PAD_WIDTH", 4)
    return str(value).zfill(width)


def allocate_display(shop_id: int, counter_name: str, *, commit: bool = True) -> str:
    """allocate() followed by format_sequence()."""
    return format_sequence(allocate(shop_id, counter_name, commit=commit))


def get_counters(shop_id: int) -> dict:
    """
    Counter document for a shop: {"shop_id": 1, "invoice_no": 12, ...}.
    Counters never allocated are absent.
    """
    rows = db.session.query(SequenceCounter).filter_by(shop_id=shop_id).all()
    doc: dict = {"shop_id": shop_id}
    for row in rows:
        doc[row.counter_name] = row.value
    return doc
