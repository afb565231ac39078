# Overview: Service-layer operations for the product catalog; creation, update and lookup.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product, User
from ..time_utils import date_string
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_identifier, coerce_positive_int
from .concurrency import atomic
from .sequence_service import COUNTER_PRODUCT_ID, allocate_display
from .stock_service import add_purchase_in_session

"""
Product Catalog rules

- product_id is allocated from the shop's "product_id" counter inside the
  creating transaction; a failed create never consumes a number that a
  committed product also holds.
- IMEI input may be a comma-separated list; each IMEI becomes its own
  product row (with its own product_id). Any IMEI already present in the
  shop rejects the whole request.
- Initial stock goes through the stock ledger (quantity starts at 0, then a
  +quantity purchase), so every unit on hand has a stock-in record.
- update_product never assigns quantity. A `new_quantity` top-up is recorded
  as a stock-in.
"""

SNAPSHOT_FIELDS = ("category", "sub_category", "brand", "unit", "colors", "sizes", "vendor")
SCALAR_FIELDS = ("name", "sku", "batch_number", "model", "purchase_price_cents", "sale_price_cents", "date_string")
UPDATABLE_FIELDS = SCALAR_FIELDS + SNAPSHOT_FIELDS + ("read_only",)


def _split_imeis(raw) -> list[str]:
    if raw is None:
        return []
    imeis = [value.strip() for value in str(raw).split(",")]
    imeis = [value for value in imeis if value]
    if len(set(imeis)) != len(imeis):
        raise ValidationError("IMEI list contains duplicates")
    return imeis


def _check_snapshot(field: str, value):
    if value is not None and not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object")
    return value


def _product_fields(data: dict) -> dict:
    fields = {}
    for key in SCALAR_FIELDS:
        if key in data:
            fields[key] = data[key]
    for key in SNAPSHOT_FIELDS:
        if key in data:
            fields[key] = _check_snapshot(key, data[key])
    return fields


def _salesman_snapshot(user_id: int | None) -> dict | None:
    if user_id is None:
        return None
    user = db.session.get(User, user_id)
    return user.snapshot() if user else None


def create_product(shop_id: int, data: dict, *, user_id: int | None = None) -> list[dict]:
    """
    Create one product, or one per IMEI, with its initial stock-in.

    Returns the created product documents.
    """
    if not data.get("name"):
        raise ValidationError("name is required")
    quantity = coerce_positive_int(data.get("quantity", 0), "quantity", allow_zero=True)
    imeis = _split_imeis(data.get("imei"))
    fields = _product_fields(data)
    fields.setdefault("date_string", date_string())

    created: list[Product] = []
    with atomic():
        if imeis:
            clash = (
                db.session.query(Product.imei)
                .filter(Product.shop_id == shop_id, Product.imei.in_(imeis))
                .first()
            )
            if clash is not None:
                raise ConflictError(
                    f"Product with IMEI {clash.imei} already exists.",
                    details={"imei": clash.imei},
                )

        salesman = _salesman_snapshot(user_id)
        for imei in imeis or [None]:
            product = Product(
                shop_id=shop_id,
                product_id=allocate_display(shop_id, COUNTER_PRODUCT_ID, commit=False),
                imei=imei,
                quantity=0,
                sold_quantity=0,
                **fields,
            )
            db.session.add(product)
            db.session.flush()
            if quantity:
                add_purchase_in_session(
                    product,
                    quantity,
                    salesman=salesman,
                    note=data.get("note"),
                    date_string=data.get("date_string"),
                )
            created.append(product)

    current_app.logger.info(
        "Products created: shop=%s count=%s quantity_each=%s", shop_id, len(created), quantity
    )
    return [product.to_dict() for product in created]


def get_product(product_id, shop_id: int | None = None) -> Product:
    query = db.session.query(Product).filter(Product.id == coerce_identifier(product_id, "product_id"))
    if shop_id is not None:
        query = query.filter(Product.shop_id == shop_id)
    product = query.one_or_none()
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def update_product(product_id, changes: dict, *, shop_id: int | None = None, user_id: int | None = None) -> dict:
    """
    Edit product fields.

    `quantity` is rejected: stock only moves through the ledger. Send
    `new_quantity` to record a top-up instead.
    """
    if "quantity" in changes:
        raise ValidationError("quantity cannot be set directly; use new_quantity")
    unknown = set(changes) - set(UPDATABLE_FIELDS) - {"new_quantity", "note"}
    if unknown:
        raise ValidationError("Unsupported product field(s)", details={"fields": sorted(unknown)})

    top_up = None
    if changes.get("new_quantity"):
        top_up = coerce_positive_int(changes["new_quantity"], "new_quantity")

    with atomic():
        product = get_product(product_id, shop_id)
        for key, value in _product_fields(changes).items():
            setattr(product, key, value)
        if "read_only" in changes:
            product.read_only = bool(changes["read_only"])
        db.session.flush()
        if top_up:
            add_purchase_in_session(
                product,
                top_up,
                salesman=_salesman_snapshot(user_id),
                note=changes.get("note"),
                date_string=changes.get("date_string"),
            )

    db.session.refresh(product)
    return product.to_dict()
