# Overview: Service-layer operations for product stock; atomic quantity deltas, stock-in and damage records.

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import Product, ProductDamage, ProductPurchase, User
from ..time_utils import date_string as today_string
from ..validation import NotFoundError, ValidationError, coerce_identifier, coerce_positive_int
from .concurrency import atomic

"""
Stock Invariants (authoritative)

- Product.quantity is the live stock count and changes ONLY through
  apply_delta(): one UPDATE ... SET quantity = quantity + :delta statement.
  Concurrent sales of the same product therefore never lose an update.
- Sign convention per event kind (stock_delta):
    SALE     -> -quantity
    RETURN   -> +quantity
    PURCHASE -> +quantity   (initial stock-in and top-ups)
    DAMAGE   -> +quantity   (historical behavior, kept as-is)
- apply_delta never commits. A multi-line order issues one delta per line
  inside the caller's transaction (see concurrency.atomic).
- Stock may go negative; overselling is recorded, not blocked.
"""

EVENT_SALE = "SALE"
EVENT_RETURN = "RETURN"
EVENT_PURCHASE = "PURCHASE"
EVENT_DAMAGE = "DAMAGE"

_SIGNS = {
    EVENT_SALE: -1,
    EVENT_RETURN: 1,
    EVENT_PURCHASE: 1,
    EVENT_DAMAGE: 1,
}


def stock_delta(event: str, quantity: int) -> int:
    """Signed quantity change for a stock event."""
    if event not in _SIGNS:
        raise ValidationError(f"Unknown stock event {event!r}")
    return _SIGNS[event] * quantity


def apply_delta(product_id, delta: int, *, shop_id: int | None = None, sold_delta: int = 0) -> None:
    """
    Atomically add `delta` to a product's quantity (and `sold_delta` to its
    sold_quantity). Raises NotFoundError if no product matches.
    """
    product_id = coerce_identifier(product_id, "product_id")
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("delta must be an integer")

    stmt = update(Product).where(Product.id == product_id)
    if shop_id is not None:
        stmt = stmt.where(Product.shop_id == shop_id)
    values = {"quantity": Product.quantity + delta}
    if sold_delta:
        values["sold_quantity"] = Product.sold_quantity + sold_delta
    stmt = stmt.values(**values).execution_options(synchronize_session=False)

    result = db.session.execute(stmt)
    if not result.rowcount:
        raise NotFoundError("Product not found", details={"product_id": product_id})


def _checked_day(value: str | None) -> str:
    if not value:
        return today_string()
    try:
        return date.fromisoformat(value).isoformat()
    except (TypeError, ValueError):
        raise ValidationError("date_string must be YYYY-MM-DD", details={"date_string": value}) from None


def current_quantity(product_id: int) -> int | None:
    return db.session.query(Product.quantity).filter(Product.id == product_id).scalar()


def _load_product(shop_id: int, product_id) -> Product:
    product = (
        db.session.query(Product)
        .filter(Product.id == coerce_identifier(product_id, "product_id"), Product.shop_id == shop_id)
        .one_or_none()
    )
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def add_purchase_in_session(
    product: Product,
    quantity: int,
    *,
    salesman: dict | None = None,
    note: str | None = None,
    date_string: str | None = None,
) -> ProductPurchase:
    """Stock-in log row plus the matching +quantity delta, inside the open transaction."""
    day = _checked_day(date_string)
    previous = current_quantity(product.id) or 0

    apply_delta(product.id, stock_delta(EVENT_PURCHASE, quantity), shop_id=product.shop_id)

    purchase = ProductPurchase(
        shop_id=product.shop_id,
        product=product.snapshot(),
        previous_quantity=previous,
        updated_quantity=quantity,
        salesman=salesman,
        note=note,
        date_string=day,
        month=int(day[5:7]),
        year=int(day[0:4]),
    )
    db.session.add(purchase)
    return purchase


def record_purchase(
    shop_id: int,
    product_id,
    quantity,
    *,
    user_id: int | None = None,
    note: str | None = None,
    date_string: str | None = None,
) -> dict:
    """Stock-in (top-up) of an existing product."""
    quantity = coerce_positive_int(quantity, "quantity")

    with atomic():
        product = _load_product(shop_id, product_id)
        salesman = None
        if user_id is not None:
            user = db.session.get(User, user_id)
            salesman = user.snapshot() if user else None
        purchase = add_purchase_in_session(
            product, quantity, salesman=salesman, note=note, date_string=date_string
        )

    current_app.logger.info(
        "Stock-in recorded: product=%s shop=%s quantity=%s", product.id, shop_id, quantity
    )
    return purchase.to_dict()


def record_damage(
    shop_id: int,
    product_id,
    quantity,
    *,
    note: str | None = None,
    date_string: str | None = None,
) -> dict:
    """
    Damage record for a product.

    The embedded product name carries its color / size suffix so damage slips
    stay readable after the variant is renamed.
    """
    quantity = coerce_positive_int(quantity, "quantity")

    with atomic():
        product = _load_product(shop_id, product_id)
        apply_delta(product.id, stock_delta(EVENT_DAMAGE, quantity), shop_id=shop_id)
        damage = ProductDamage(
            shop_id=shop_id,
            product=product.snapshot(),
            quantity=quantity,
            note=note,
            date_string=_checked_day(date_string),
        )
        db.session.add(damage)

    current_app.logger.info(
        "Damage recorded: product=%s shop=%s quantity=%s", product.id, shop_id, quantity
    )
    return damage.to_dict()
