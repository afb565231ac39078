from __future__ import annotations

from ..extensions import db
from .base import DocumentMixin


class Shop(DocumentMixin, db.Model):
    """
    Multi-tenant root: every product, customer, transaction and counter
    belongs to exactly one shop.

    All queries and sequence counters are scoped by shop_id.
    """
    __tablename__ = "shops"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r}>"


class User(DocumentMixin, db.Model):
    """
    Shop staff member. Acts as the salesman on transactions and as the
    actor recorded on archive-log entries.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "username", name="uq_users_shop_username"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    username = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    shop = db.relationship("Shop", backref=db.backref("users", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} shop_id={self.shop_id}>"

    def snapshot(self) -> dict:
        """Point-in-time copy embedded into transactions."""
        return {"id": self.id, "name": self.name, "phone": self.phone}
