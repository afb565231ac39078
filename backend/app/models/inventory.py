from __future__ import annotations

from ..extensions import db
from .base import DocumentMixin


class Product(DocumentMixin, db.Model):
    """
    Product master data with its live stock count.

    MULTI-TENANT: Products are scoped to shops via shop_id.

    CLASSIFICATION: category, sub_category, brand, unit, colors, sizes and
    vendor are embedded {id, name} snapshots, not live references. Renaming a
    category does not rewrite existing products.

    STOCK: `quantity` is mutated only through stock_service.apply_delta
    (UPDATE ... SET quantity = quantity + :delta). Never assign it from
    application code; a read-modify-write loses concurrent sales.

    IMEI: each IMEI-tracked unit is its own product row; IMEIs are unique
    within a shop.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "imei", name="uq_products_shop_imei"),
        db.Index("ix_products_shop_name", "shop_id", "name"),
        db.Index("ix_products_shop_quantity", "shop_id", "quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    # Zero-padded per-shop number from the "product_id" sequence counter
    product_id = db.Column(db.String(32), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True, index=True)
    imei = db.Column(db.String(64), nullable=True)
    batch_number = db.Column(db.String(64), nullable=True)
    model = db.Column(db.String(128), nullable=True)

    category = db.Column(db.JSON(none_as_null=True), nullable=True)
    sub_category = db.Column(db.JSON(none_as_null=True), nullable=True)
    brand = db.Column(db.JSON(none_as_null=True), nullable=True)
    unit = db.Column(db.JSON(none_as_null=True), nullable=True)
    colors = db.Column(db.JSON(none_as_null=True), nullable=True)
    sizes = db.Column(db.JSON(none_as_null=True), nullable=True)
    vendor = db.Column(db.JSON(none_as_null=True), nullable=True)

    # Authoritative storage in cents
    purchase_price_cents = db.Column(db.Integer, nullable=True)
    sale_price_cents = db.Column(db.Integer, nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    sold_quantity = db.Column(db.Integer, nullable=False, default=0)

    # Business date of the stock-in, 'YYYY-MM-DD'
    date_string = db.Column(db.String(10), nullable=True, index=True)

    read_only = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} product_id={self.product_id!r} name={self.name!r} shop_id={self.shop_id}>"

    @property
    def display_name(self) -> str:
        """Name with color / size suffixes, as printed on logs and damage slips."""
        name = self.name
        if self.colors and self.colors.get("name"):
            name += f" - {self.colors['name']}"
        if self.sizes and self.sizes.get("name"):
            name += f" - {self.sizes['name']}"
        return name

    def snapshot(self) -> dict:
        """Point-in-time copy embedded into purchase / damage records."""
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.display_name,
            "sku": self.sku,
            "imei": self.imei,
            "model": self.model,
            "category": self.category,
            "vendor": self.vendor,
            "colors": self.colors,
            "sizes": self.sizes,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
        }


class ProductPurchase(DocumentMixin, db.Model):
    """
    Stock-in log. One row per initial stock-in or later top-up of a product.

    previous_quantity is the stock before the top-up; updated_quantity is the
    amount added.
    """
    __tablename__ = "product_purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    product = db.Column(db.JSON, nullable=False)
    previous_quantity = db.Column(db.Integer, nullable=False, default=0)
    updated_quantity = db.Column(db.Integer, nullable=False)

    salesman = db.Column(db.JSON(none_as_null=True), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    date_string = db.Column(db.String(10), nullable=False, index=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class ProductDamage(DocumentMixin, db.Model):
    """Damage record for a product; see stock_service.record_damage for its stock effect."""
    __tablename__ = "product_damages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    product = db.Column(db.JSON, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    date_string = db.Column(db.String(10), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class BuyBack(DocumentMixin, db.Model):
    """
    Second-hand goods bought back from a customer.

    MULTI-TENANT: Scoped to shops via shop_id.

    buy_back_id is the zero-padded per-shop number from the "buy_back_id"
    counter. sku, when given, is unique within a shop. The seller's contact
    details are stored on the record itself; a buy-back does not create or
    touch a Customer row.
    """
    __tablename__ = "buy_backs"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "sku", name="uq_buy_backs_shop_sku"),
        db.Index("ix_buy_backs_shop_name", "shop_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    buy_back_id = db.Column(db.String(32), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    imei = db.Column(db.String(64), nullable=True, index=True)
    model = db.Column(db.String(128), nullable=True)
    description = db.Column(db.Text, nullable=True)

    category = db.Column(db.JSON(none_as_null=True), nullable=True)
    sub_category = db.Column(db.JSON(none_as_null=True), nullable=True)
    brand = db.Column(db.JSON(none_as_null=True), nullable=True)
    unit = db.Column(db.JSON(none_as_null=True), nullable=True)
    colors = db.Column(db.JSON(none_as_null=True), nullable=True)
    sizes = db.Column(db.JSON(none_as_null=True), nullable=True)
    vendor = db.Column(db.JSON(none_as_null=True), nullable=True)

    # Seller
    customer_name = db.Column(db.String(255), nullable=True)
    phone_no = db.Column(db.String(32), nullable=True, index=True)
    nric = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    unit_no = db.Column(db.String(32), nullable=True)
    post_code = db.Column(db.String(16), nullable=True)
    payby = db.Column(db.String(32), nullable=True)

    purchase_price_cents = db.Column(db.Integer, nullable=True)
    sale_price_cents = db.Column(db.Integer, nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    sold_quantity = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(32), nullable=True)
    salesman = db.Column(db.JSON(none_as_null=True), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    date_string = db.Column(db.String(10), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<BuyBack id={self.id} buy_back_id={self.buy_back_id!r} name={self.name!r} shop_id={self.shop_id}>"
