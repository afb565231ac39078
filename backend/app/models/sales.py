from __future__ import annotations

from ..extensions import db
from .base import DocumentMixin


TRANSACTION_KIND_SALE = "SALE"
TRANSACTION_KIND_RETURN = "RETURN"
TRANSACTION_KIND_PRE_ORDER = "PRE_ORDER"
TRANSACTION_KINDS = (TRANSACTION_KIND_SALE, TRANSACTION_KIND_RETURN, TRANSACTION_KIND_PRE_ORDER)

SALE_TYPE_SALE = "Sale"
SALE_TYPE_RETURN = "Return"
SALE_TYPES = (SALE_TYPE_SALE, SALE_TYPE_RETURN)


class Transaction(DocumentMixin, db.Model):
    """
    Invoice-numbered sale, return or pre-order.

    SNAPSHOTS: customer and salesman are embedded copies taken when the
    transaction was recorded; line items copy the product's name, prices and
    IMEI. Later edits to Product/Customer never rewrite history.

    IMMUTABILITY: created once per customer interaction. Administrative
    correction (transaction_service.update_transaction) may edit header fields
    but never replays stock or loyalty side effects.

    IDEMPOTENCY: idempotency_key is unique per (shop, kind); a retried request
    carrying the same key returns the first transaction.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "kind", "idempotency_key", name="uq_transactions_shop_kind_key"),
        db.Index("ix_transactions_shop_kind", "shop_id", "kind"),
        db.Index("ix_transactions_shop_invoice", "shop_id", "invoice_no"),
        {"sqlite_autoincrement": True},
    )
    __children__ = {"products": "lines"}

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    kind = db.Column(db.String(16), nullable=False)

    # Display form of the shop's invoice_no counter ("0042"); a return may
    # carry the invoice of the sale it reverses.
    invoice_no = db.Column(db.String(32), nullable=True)

    customer = db.Column(db.JSON(none_as_null=True), nullable=True)
    salesman = db.Column(db.JSON(none_as_null=True), nullable=True)

    sub_total_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    use_points = db.Column(db.Integer, nullable=False, default=0)

    sold_date = db.Column(db.DateTime(timezone=True), nullable=True)
    sold_date_string = db.Column(db.String(10), nullable=True, index=True)
    month = db.Column(db.Integer, nullable=True)
    year = db.Column(db.Integer, nullable=True)

    note = db.Column(db.String(255), nullable=True)
    idempotency_key = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("transactions", lazy=True))
    lines = db.relationship(
        "TransactionLine",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionLine.id",
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} kind={self.kind} invoice_no={self.invoice_no!r} shop_id={self.shop_id}>"


class TransactionLine(DocumentMixin, db.Model):
    """Point-in-time copy of a product inside a transaction."""
    __tablename__ = "transaction_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)

    # Plain reference: the product may later be deleted or archived
    product_id = db.Column(db.Integer, nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    imei = db.Column(db.String(64), nullable=True)
    category = db.Column(db.JSON(none_as_null=True), nullable=True)

    purchase_price_cents = db.Column(db.Integer, nullable=True)
    sale_price_cents = db.Column(db.Integer, nullable=True)

    sale_type = db.Column(db.String(16), nullable=False, default=SALE_TYPE_SALE)
    sold_quantity = db.Column(db.Integer, nullable=False)

    transaction = db.relationship("Transaction", back_populates="lines")
