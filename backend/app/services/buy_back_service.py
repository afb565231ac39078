# Overview: Service-layer operations for buy-backs; second-hand goods bought from customers.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import BuyBack, User
from ..time_utils import date_string
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_identifier, coerce_positive_int
from .concurrency import atomic
from .sequence_service import COUNTER_BUY_BACK_ID, allocate_display

"""
Buy-back rules

- buy_back_id comes from the shop's "buy_back_id" counter, allocated inside
  the creating transaction. A rejected buy-back consumes no number.
- sku, when given, is unique within the shop.
- sold_quantity starts at 0. Buy-backs keep their own quantity and never
  move product stock.
"""

SNAPSHOT_FIELDS = ("category", "sub_category", "brand", "unit", "colors", "sizes", "vendor")
SELLER_FIELDS = ("customer_name", "phone_no", "nric", "address", "unit_no", "post_code", "payby")
TEXT_FIELDS = ("name", "sku", "imei", "model", "description", "status", "note", "date_string") + SELLER_FIELDS
PRICE_FIELDS = ("purchase_price_cents", "sale_price_cents")
UPDATABLE_FIELDS = TEXT_FIELDS + SNAPSHOT_FIELDS + PRICE_FIELDS + ("quantity",)

SKU_CONFLICT_MESSAGE = "Code Error! Code must be unique."


def _buy_back_fields(data: dict) -> dict:
    fields = {}
    for key in TEXT_FIELDS:
        if key in data:
            fields[key] = data[key]
    for key in SNAPSHOT_FIELDS:
        if key in data:
            if data[key] is not None and not isinstance(data[key], dict):
                raise ValidationError(f"{key} must be an object")
            fields[key] = data[key]
    for key in PRICE_FIELDS:
        if data.get(key) is not None:
            fields[key] = coerce_positive_int(data[key], key, allow_zero=True)
    if "quantity" in data:
        fields["quantity"] = coerce_positive_int(data["quantity"], "quantity")
    return fields


def _check_sku(shop_id: int, sku, exclude_id: int | None = None):
    if not sku:
        return
    query = db.session.query(BuyBack.id).filter(BuyBack.shop_id == shop_id, BuyBack.sku == sku)
    if exclude_id is not None:
        query = query.filter(BuyBack.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(SKU_CONFLICT_MESSAGE, details={"sku": sku})


def record_buy_back(shop_id: int, data: dict, *, user_id: int | None = None) -> dict:
    """
    Record goods bought back from a customer.

    Returns the stored document, including its padded buy_back_id.
    """
    if not data.get("name"):
        raise ValidationError("name is required")
    fields = _buy_back_fields(data)
    fields.setdefault("quantity", 1)
    fields["date_string"] = fields.get("date_string") or date_string()

    with atomic():
        _check_sku(shop_id, fields.get("sku"))
        user = db.session.get(User, user_id) if user_id is not None else None
        buy_back = BuyBack(
            shop_id=shop_id,
            buy_back_id=allocate_display(shop_id, COUNTER_BUY_BACK_ID, commit=False),
            sold_quantity=0,
            salesman=user.snapshot() if user else None,
            **fields,
        )
        db.session.add(buy_back)

    current_app.logger.info(
        "Buy-back recorded: shop=%s buy_back_id=%s quantity=%s",
        shop_id, buy_back.buy_back_id, buy_back.quantity,
    )
    return buy_back.to_dict()


def get_buy_back(buy_back_id, shop_id: int | None = None) -> dict:
    query = db.session.query(BuyBack).filter(BuyBack.id == coerce_identifier(buy_back_id, "buy_back_id"))
    if shop_id is not None:
        query = query.filter(BuyBack.shop_id == shop_id)
    buy_back = query.one_or_none()
    if buy_back is None:
        raise NotFoundError("Buy-back not found", details={"buy_back_id": buy_back_id})
    return buy_back.to_dict()


def update_buy_back(buy_back_id, changes: dict, *, shop_id: int | None = None) -> dict:
    """Edit a buy-back. buy_back_id and sold_quantity are not editable."""
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError("Unsupported buy-back field(s)", details={"fields": sorted(unknown)})
    if "name" in changes and not changes["name"]:
        raise ValidationError("name is required")
    fields = _buy_back_fields(changes)

    with atomic():
        query = db.session.query(BuyBack).filter(BuyBack.id == coerce_identifier(buy_back_id, "buy_back_id"))
        if shop_id is not None:
            query = query.filter(BuyBack.shop_id == shop_id)
        buy_back = query.one_or_none()
        if buy_back is None:
            raise NotFoundError("Buy-back not found", details={"buy_back_id": buy_back_id})
        if "sku" in fields:
            _check_sku(buy_back.shop_id, fields["sku"], exclude_id=buy_back.id)
        for key, value in fields.items():
            setattr(buy_back, key, value)

    db.session.refresh(buy_back)
    return buy_back.to_dict()
