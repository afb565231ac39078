# Overview: Service-layer operations for customers and loyalty points.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer, PointConfig
from ..validation import NotFoundError, ValidationError, coerce_identifier, coerce_positive_int
from .concurrency import atomic

"""
Loyalty rules (authoritative)

- Customers are deduplicated by (shop_id, phone).
- Points earned for a transaction: floor(point_amount * total / 100), where
  total is in currency units. With totals stored in cents this is
  (point_amount * total_cents) // 10000.
- A shop without a PointConfig earns 0 points.
- user_points changes only through adjust_points (atomic increment).
"""

CUSTOMER_FIELDS = ("name", "phone", "address")


def _normalize_phone(phone) -> str:
    if phone is None:
        raise ValidationError("phone is required")
    value = str(phone).strip()
    if not value:
        raise ValidationError("phone is required")
    return value


def find_customer(shop_id: int, *, customer_id=None, phone=None) -> Customer | None:
    query = db.session.query(Customer).filter(Customer.shop_id == shop_id)
    if customer_id is not None:
        return query.filter(Customer.id == coerce_identifier(customer_id, "customer.id")).one_or_none()
    if phone is not None and str(phone).strip():
        return query.filter(Customer.phone == _normalize_phone(phone)).one_or_none()
    return None


def resolve_customer(shop_id: int, data: dict, *, create: bool = True) -> tuple[Customer | None, bool]:
    """
    Find a customer by phone within the shop, creating it with zero points
    when absent. Returns (customer, created).

    Runs inside the caller's transaction. Two concurrent first-time
    transactions for the same phone race on the unique (shop_id, phone)
    constraint; the loser re-reads the winner's row.
    """
    phone = _normalize_phone(data.get("phone"))
    existing = find_customer(shop_id, phone=phone)
    if existing is not None or not create:
        return existing, False

    fields = {k: data.get(k) for k in CUSTOMER_FIELDS if data.get(k) is not None}
    fields["phone"] = phone
    customer = Customer(shop_id=shop_id, user_points=0, **fields)
    try:
        with db.session.begin_nested():
            db.session.add(customer)
    except IntegrityError:
        existing = find_customer(shop_id, phone=phone)
        if existing is None:
            raise
        return existing, False
    return customer, True


def adjust_points(customer_id: int, delta: int) -> None:
    """Atomic user_points increment; never commits."""
    if not delta:
        return
    stmt = (
        update(Customer)
        .where(Customer.id == customer_id)
        .values(user_points=Customer.user_points + delta)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})


def current_points(customer_id: int) -> int:
    return db.session.query(Customer.user_points).filter(Customer.id == customer_id).scalar() or 0


def get_point_config(shop_id: int) -> PointConfig | None:
    return db.session.query(PointConfig).filter_by(shop_id=shop_id).one_or_none()


def compute_points(shop_id: int, total_cents: int) -> int:
    config = get_point_config(shop_id)
    if config is None or not config.point_amount or total_cents <= 0:
        return 0
    return (config.point_amount * total_cents) // 10000


def set_point_config(shop_id: int, point_amount, point_value) -> dict:
    """Create or replace the shop's loyalty ratio."""
    point_amount = coerce_positive_int(point_amount, "point_amount", allow_zero=True)
    point_value = coerce_positive_int(point_value, "point_value", allow_zero=True)

    with atomic():
        config = get_point_config(shop_id)
        if config is None:
            config = PointConfig(shop_id=shop_id)
            db.session.add(config)
        config.point_amount = point_amount
        config.point_value = point_value

    current_app.logger.info(
        "Point config set: shop=%s point_amount=%s point_value=%s", shop_id, point_amount, point_value
    )
    return config.to_dict()
