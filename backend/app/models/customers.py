from __future__ import annotations

from ..extensions import db
from .base import DocumentMixin


class Customer(DocumentMixin, db.Model):
    """
    Shop customer with a loyalty balance.

    MULTI-TENANT: phone is the natural dedup key and is unique per shop.
    Transactions look customers up by phone and create them when absent.

    POINTS: user_points changes only through customer_service.adjust_points
    (atomic increment), never by assignment.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "phone", name="uq_customers_shop_phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=False)
    address = db.Column(db.String(255), nullable=True)

    user_points = db.Column(db.Integer, nullable=False, default=0)

    read_only = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("customers", lazy=True))

    def __repr__(self) -> str:
        return f"<Customer id={self.id} phone={self.phone!r} shop_id={self.shop_id}>"

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "user_points": self.user_points,
        }


class PointConfig(DocumentMixin, db.Model):
    """
    Per-shop loyalty ratio.

    point_amount is the percentage of a transaction total credited as points:
    points = floor(point_amount * total / 100). point_value is what one point
    is worth, in cents, when redeemed.
    """
    __tablename__ = "point_configs"
    __table_args__ = (
        db.UniqueConstraint("shop_id", name="uq_point_configs_shop"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    point_amount = db.Column(db.Integer, nullable=False, default=0)
    point_value = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
