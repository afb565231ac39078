# Overview: Service-layer operations for sales, returns and pre-orders; stock, invoice, customer and points in one transaction.

from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Product, Transaction, TransactionLine, User
from ..models.sales import (
    SALE_TYPE_RETURN,
    SALE_TYPE_SALE,
    SALE_TYPES,
    TRANSACTION_KIND_PRE_ORDER,
    TRANSACTION_KIND_RETURN,
    TRANSACTION_KIND_SALE,
)
from ..time_utils import date_string, parse_iso_datetime, utcnow
from ..validation import (
    BusinessRuleViolation,
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_identifier,
    coerce_positive_int,
)
from .concurrency import atomic
from .customer_service import adjust_points, compute_points, find_customer, resolve_customer
from .sequence_service import COUNTER_INVOICE_NO, allocate_display
from .stock_service import EVENT_RETURN, EVENT_SALE, apply_delta, stock_delta

"""
Transaction workflow (authoritative)

Sale:
    received -> stock-adjusted -> invoice-allocated -> customer-resolved
             -> points-settled -> persisted

1. One stock delta per line item: Sale lines -sold_quantity, Return lines
   +sold_quantity.
2. invoice_no allocated from the shop's shared "invoice_no" counter.
3. Customer (by phone):
   - existing: snapshot embedded; use_points redeemed only when
     LOYALTY_REDEEM_ON_SALE is on and the balance is positive; NO accrual.
   - new: created with 0 points, then credited compute_points(total).
4. Transaction row + line snapshots written.

Return: every line restocks; no invoice allocation; customer found by id or
phone, never created; a positive balance loses compute_points(total).

Pre-order: no stock movement; invoice allocated; customer resolve-or-create;
existing customers redeem use_points (positive balance) and accrue; new
customers accrue.

Atomicity:
- Each workflow is ONE database transaction (concurrency.atomic). A failure
  at any step rolls back stock deltas, the invoice increment, customer
  creation and point changes together.
- idempotency_key (unique per shop and kind) makes a retried request return
  the first transaction instead of replaying side effects.
"""

HEADER_FIELDS = (
    "note",
    "sold_date",
    "sold_date_string",
    "customer",
    "salesman",
    "sub_total_cents",
    "discount_cents",
    "total_cents",
)

AMOUNT_FIELDS = ("sub_total_cents", "discount_cents", "total_cents")


# =============================================================================
# PAYLOAD HELPERS
# =============================================================================

def _amount(payload: dict, field: str, default: int = 0) -> int:
    value = payload.get(field)
    if value is None:
        return default
    return coerce_positive_int(value, field, allow_zero=True)


def _sold_dates(payload: dict) -> dict:
    raw = payload.get("sold_date")
    try:
        sold_date = parse_iso_datetime(raw) if isinstance(raw, str) else None
    except ValueError:
        raise ValidationError("sold_date must be an ISO-8601 datetime") from None
    sold_date = sold_date or utcnow()
    raw_day = payload.get("sold_date_string")
    if raw_day:
        try:
            day = date.fromisoformat(raw_day)
        except (TypeError, ValueError):
            raise ValidationError(
                "sold_date_string must be YYYY-MM-DD", details={"sold_date_string": raw_day}
            ) from None
    else:
        day = sold_date.date()
    return {
        "sold_date": sold_date,
        "sold_date_string": date_string(day),
        "month": day.month,
        "year": day.year,
    }


def _salesman_snapshot(user_id) -> dict | None:
    if user_id is None:
        return None
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("Salesman not found", details={"user_id": user_id})
    return user.snapshot()


def _parse_lines(payload: dict, *, force_sale_type: str | None = None, require_product: bool = True) -> list[dict]:
    items = payload.get("products")
    if not isinstance(items, list) or not items:
        raise ValidationError("products must be a non-empty list")

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"products[{index}] must be an object")
        product_id = item.get("product_id", item.get("id"))
        if product_id is None and require_product:
            raise ValidationError(f"products[{index}].product_id is required")
        sale_type = force_sale_type or item.get("sale_type") or SALE_TYPE_SALE
        if sale_type not in SALE_TYPES:
            raise ValidationError(f"products[{index}].sale_type must be one of {SALE_TYPES}")
        lines.append({
            "product_id": coerce_identifier(product_id, "product_id") if product_id is not None else None,
            "sale_type": sale_type,
            "sold_quantity": coerce_positive_int(item.get("sold_quantity"), f"products[{index}].sold_quantity"),
            "item": item,
        })
    return lines


def _build_line(shop_id: int, line: dict) -> TransactionLine:
    """Point-in-time copy of the product; prices sent with the item win over catalog prices."""
    item = line["item"]
    product = None
    if line["product_id"] is not None:
        product = (
            db.session.query(Product)
            .filter(Product.id == line["product_id"], Product.shop_id == shop_id)
            .one_or_none()
        )
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": line["product_id"]})

    name = item.get("name") or (product.display_name if product else None)
    if not name:
        raise ValidationError("Line item needs a product or a name")

    def pick(field):
        if item.get(field) is not None:
            return item[field]
        return getattr(product, field) if product is not None else None

    return TransactionLine(
        product_id=line["product_id"],
        name=name,
        sku=pick("sku"),
        imei=pick("imei"),
        category=pick("category"),
        purchase_price_cents=pick("purchase_price_cents"),
        sale_price_cents=pick("sale_price_cents"),
        sale_type=line["sale_type"],
        sold_quantity=line["sold_quantity"],
    )


def _line_total(line: TransactionLine) -> int:
    amount = (line.sale_price_cents or 0) * line.sold_quantity
    return -amount if line.sale_type == SALE_TYPE_RETURN else amount


def _totals(payload: dict, lines: list[TransactionLine], *, refund: bool = False) -> dict:
    sub_total = payload.get("sub_total_cents")
    if sub_total is None:
        if refund:
            sub_total = sum(abs(_line_total(line)) for line in lines)
        else:
            sub_total = max(sum(_line_total(line) for line in lines), 0)
    sub_total = coerce_positive_int(sub_total, "sub_total_cents", allow_zero=True)
    discount = _amount(payload, "discount_cents")
    total = _amount(payload, "total_cents", default=max(sub_total - discount, 0))
    return {"sub_total_cents": sub_total, "discount_cents": discount, "total_cents": total}


def _find_by_key(shop_id: int, kind: str, idempotency_key: str | None) -> Transaction | None:
    if not idempotency_key:
        return None
    return (
        db.session.query(Transaction)
        .filter_by(shop_id=shop_id, kind=kind, idempotency_key=idempotency_key)
        .one_or_none()
    )


def _result(transaction: Transaction, *, replayed: bool = False) -> dict:
    return {
        "invoice_no": transaction.invoice_no,
        "transaction_id": transaction.id,
        "replayed": replayed,
    }


def _run_idempotent(shop_id: int, kind: str, idempotency_key: str | None, workflow) -> dict:
    """
    Run `workflow` (which returns the persisted Transaction) in one database
    transaction, or return the transaction already stored under the key.
    """
    existing = _find_by_key(shop_id, kind, idempotency_key)
    if existing is not None:
        current_app.logger.info(
            "Idempotent replay: shop=%s kind=%s key=%s transaction=%s",
            shop_id, kind, idempotency_key, existing.id,
        )
        return _result(existing, replayed=True)

    try:
        with atomic():
            transaction = workflow()
    except ConflictError:
        # A concurrent request with the same key committed first
        existing = _find_by_key(shop_id, kind, idempotency_key)
        if existing is None:
            raise
        return _result(existing, replayed=True)

    return _result(transaction)


def _persist(shop_id: int, kind: str, payload: dict, lines: list[TransactionLine], **header) -> Transaction:
    transaction = Transaction(
        shop_id=shop_id,
        kind=kind,
        note=payload.get("note"),
        use_points=_amount(payload, "use_points"),
        **_sold_dates(payload),
        **_totals(payload, lines, refund=kind == TRANSACTION_KIND_RETURN),
        **header,
    )
    transaction.lines = lines
    db.session.add(transaction)
    db.session.flush()
    return transaction


def _apply_line_stock(shop_id: int, lines: list[TransactionLine]) -> None:
    for line in lines:
        event = EVENT_RETURN if line.sale_type == SALE_TYPE_RETURN else EVENT_SALE
        delta = stock_delta(event, line.sold_quantity)
        # sold_quantity moves opposite to stock
        apply_delta(line.product_id, delta, shop_id=shop_id, sold_delta=-delta)


def _customer_data(payload: dict) -> dict | None:
    customer = payload.get("customer")
    if customer is None:
        return None
    if not isinstance(customer, dict):
        raise ValidationError("customer must be an object")
    return customer


# =============================================================================
# WORKFLOWS
# =============================================================================

def record_sale(shop_id: int, payload: dict, *, salesman_id=None, idempotency_key: str | None = None) -> dict:
    """
    Record a sale (lines may mix Sale and Return items).

    Returns {"invoice_no", "transaction_id", "replayed"}.
    """
    parsed = _parse_lines(payload)
    customer_data = _customer_data(payload)
    redeem_enabled = current_app.config.get("LOYALTY_REDEEM_ON_SALE", False)

    def workflow() -> Transaction:
        lines = [_build_line(shop_id, line) for line in parsed]
        _apply_line_stock(shop_id, lines)

        invoice_no = allocate_display(shop_id, COUNTER_INVOICE_NO, commit=False)

        customer_snapshot = None
        if customer_data and customer_data.get("phone"):
            customer, created = resolve_customer(shop_id, customer_data)
            customer_snapshot = customer.snapshot()
            totals = _totals(payload, lines)
            if created:
                adjust_points(customer.id, compute_points(shop_id, totals["total_cents"]))
            elif redeem_enabled:
                use_points = _amount(payload, "use_points")
                if use_points and customer.user_points > 0:
                    if use_points > customer.user_points:
                        raise BusinessRuleViolation(
                            "Not enough points",
                            details={"use_points": use_points, "user_points": customer.user_points},
                        )
                    adjust_points(customer.id, -use_points)

        transaction = _persist(
            shop_id,
            TRANSACTION_KIND_SALE,
            payload,
            lines,
            invoice_no=invoice_no,
            customer=customer_snapshot,
            salesman=_salesman_snapshot(salesman_id),
            idempotency_key=idempotency_key,
        )
        current_app.logger.info(
            "Sale recorded: shop=%s invoice_no=%s lines=%s customer=%s",
            shop_id, invoice_no, len(lines), (customer_snapshot or {}).get("id"),
        )
        return transaction

    return _run_idempotent(shop_id, TRANSACTION_KIND_SALE, idempotency_key, workflow)


def record_return(shop_id: int, payload: dict, *, salesman_id=None, idempotency_key: str | None = None) -> dict:
    """
    Record a stand-alone return: every line restocks. invoice_no, when sent,
    references the original sale; no new number is allocated.
    """
    parsed = _parse_lines(payload, force_sale_type=SALE_TYPE_RETURN)
    customer_data = _customer_data(payload)

    def workflow() -> Transaction:
        lines = [_build_line(shop_id, line) for line in parsed]
        _apply_line_stock(shop_id, lines)

        customer_snapshot = None
        if customer_data:
            customer = find_customer(
                shop_id,
                customer_id=customer_data.get("id"),
                phone=customer_data.get("phone"),
            )
            if customer is not None:
                customer_snapshot = customer.snapshot()
                if customer.user_points > 0:
                    totals = _totals(payload, lines, refund=True)
                    adjust_points(customer.id, -compute_points(shop_id, totals["total_cents"]))

        transaction = _persist(
            shop_id,
            TRANSACTION_KIND_RETURN,
            payload,
            lines,
            invoice_no=payload.get("invoice_no"),
            customer=customer_snapshot,
            salesman=_salesman_snapshot(salesman_id),
            idempotency_key=idempotency_key,
        )
        current_app.logger.info(
            "Return recorded: shop=%s transaction=%s lines=%s", shop_id, transaction.id, len(lines)
        )
        return transaction

    return _run_idempotent(shop_id, TRANSACTION_KIND_RETURN, idempotency_key, workflow)


def record_pre_order(shop_id: int, payload: dict, *, salesman_id=None, idempotency_key: str | None = None) -> dict:
    """Record a pre-order: invoice and loyalty settle now, stock moves at fulfilment."""
    parsed = _parse_lines(payload, require_product=False)
    customer_data = _customer_data(payload)

    def workflow() -> Transaction:
        lines = [_build_line(shop_id, line) for line in parsed]
        invoice_no = allocate_display(shop_id, COUNTER_INVOICE_NO, commit=False)

        customer_snapshot = None
        if customer_data and customer_data.get("phone"):
            customer, created = resolve_customer(shop_id, customer_data)
            customer_snapshot = customer.snapshot()
            totals = _totals(payload, lines)
            use_points = _amount(payload, "use_points")
            if not created and use_points and customer.user_points > 0:
                adjust_points(customer.id, -use_points)
            adjust_points(customer.id, compute_points(shop_id, totals["total_cents"]))

        transaction = _persist(
            shop_id,
            TRANSACTION_KIND_PRE_ORDER,
            payload,
            lines,
            invoice_no=invoice_no,
            customer=customer_snapshot,
            salesman=_salesman_snapshot(salesman_id),
            idempotency_key=idempotency_key,
        )
        current_app.logger.info("Pre-order recorded: shop=%s invoice_no=%s", shop_id, invoice_no)
        return transaction

    return _run_idempotent(shop_id, TRANSACTION_KIND_PRE_ORDER, idempotency_key, workflow)


# =============================================================================
# READ & CORRECTION
# =============================================================================

def _load(transaction_id, shop_id: int | None) -> Transaction:
    query = db.session.query(Transaction).filter(
        Transaction.id == coerce_identifier(transaction_id, "transaction_id")
    )
    if shop_id is not None:
        query = query.filter(Transaction.shop_id == shop_id)
    transaction = query.one_or_none()
    if transaction is None:
        raise NotFoundError("Transaction not found", details={"transaction_id": transaction_id})
    return transaction


def get_transaction(transaction_id, shop_id: int | None = None) -> dict:
    return _load(transaction_id, shop_id).to_dict()


def update_transaction(transaction_id, changes: dict, *, shop_id: int | None = None) -> dict:
    """
    Administrative correction of header fields.

    Stock and points are NOT replayed; line items are not editable.
    """
    if "products" in changes or "lines" in changes:
        raise ValidationError("Line items cannot be edited")
    unknown = set(changes) - set(HEADER_FIELDS)
    if unknown:
        raise ValidationError("Unsupported transaction field(s)", details={"fields": sorted(unknown)})

    with atomic():
        transaction = _load(transaction_id, shop_id)
        for field in AMOUNT_FIELDS:
            if field in changes:
                setattr(transaction, field, _amount(changes, field))
        for field in ("customer", "salesman"):
            if field in changes:
                if changes[field] is not None and not isinstance(changes[field], dict):
                    raise ValidationError(f"{field} must be an object")
                setattr(transaction, field, changes[field])
        if "note" in changes:
            transaction.note = changes["note"]
        if "sold_date" in changes or "sold_date_string" in changes:
            merged = {"sold_date": changes.get("sold_date")}
            if merged["sold_date"] is None and transaction.sold_date is not None:
                merged["sold_date"] = transaction.sold_date.isoformat()
            if "sold_date_string" in changes:
                merged["sold_date_string"] = changes["sold_date_string"]
            elif "sold_date" not in changes:
                merged["sold_date_string"] = transaction.sold_date_string
            for key, value in _sold_dates(merged).items():
                setattr(transaction, key, value)

    current_app.logger.info("Transaction corrected: id=%s fields=%s", transaction.id, sorted(changes))
    return transaction.to_dict()
