# Overview: Per-entity configuration of the generic list engine.

from __future__ import annotations

from sqlalchemy import func

from ..models import (
    ArchiveLogEntry,
    BuyBack,
    Customer,
    Product,
    ProductDamage,
    ProductPurchase,
    Transaction,
)
from ..models.sales import (
    TRANSACTION_KIND_PRE_ORDER,
    TRANSACTION_KIND_RETURN,
    TRANSACTION_KIND_SALE,
)
from .query_service import EntityQueryConfig


BASE_ID_FIELDS = frozenset({"id", "shop_id"})

PRODUCT_ID_FIELDS = BASE_ID_FIELDS | {
    "category.id", "sub_category.id", "brand.id", "unit.id",
    "colors.id", "sizes.id", "vendor.id",
}

TRANSACTION_ID_FIELDS = BASE_ID_FIELDS | {"customer.id", "salesman.id", "products.product_id"}

TRANSACTION_SELECT = {
    "kind": 1,
    "invoice_no": 1,
    "customer": 1,
    "total_cents": 1,
    "sold_date_string": 1,
}

TRANSACTION_SEARCH = ("invoice_no", "customer.name", "customer.phone", "products.name", "products.imei")


def _sum(column):
    return lambda model: func.coalesce(func.sum(column), 0)


def _transaction_calculations():
    return {
        "total_count": lambda model: func.count(model.id),
        "total_amount": _sum(Transaction.total_cents),
        "total_discount": _sum(Transaction.discount_cents),
        "total_sub_total": _sum(Transaction.sub_total_cents),
    }


def _transactions(name: str, kind: str | None) -> EntityQueryConfig:
    return EntityQueryConfig(
        name=name,
        model=Transaction,
        id_fields=TRANSACTION_ID_FIELDS,
        searchable_fields=TRANSACTION_SEARCH,
        calculations=_transaction_calculations(),
        relations={"products": "lines"},
        base_filter={"kind": kind} if kind else {},
        default_select=TRANSACTION_SELECT,
    )


def _archive_log(name: str, collection: str, searchable: tuple[str, ...]) -> EntityQueryConfig:
    return EntityQueryConfig(
        name=name,
        model=ArchiveLogEntry,
        searchable_fields=searchable,
        base_filter={"collection": collection},
        default_sort={"deleted_at": -1},
    )


ENTITY_CONFIGS: dict[str, EntityQueryConfig] = {
    "products": EntityQueryConfig(
        name="products",
        model=Product,
        id_fields=PRODUCT_ID_FIELDS,
        searchable_fields=("name", "sku", "imei", "product_id", "model"),
        calculations={
            "total_quantity": _sum(Product.quantity),
            "total_sold_quantity": _sum(Product.sold_quantity),
            "total_purchase_value": _sum(Product.purchase_price_cents * Product.quantity),
            "total_sale_value": _sum(Product.sale_price_cents * Product.quantity),
        },
    ),
    "transactions": _transactions("transactions", None),
    "sales": _transactions("sales", TRANSACTION_KIND_SALE),
    "return_sales": _transactions("return_sales", TRANSACTION_KIND_RETURN),
    "pre_orders": _transactions("pre_orders", TRANSACTION_KIND_PRE_ORDER),
    "customers": EntityQueryConfig(
        name="customers",
        model=Customer,
        searchable_fields=("name", "phone"),
        calculations={"total_points": _sum(Customer.user_points)},
    ),
    "product_purchases": EntityQueryConfig(
        name="product_purchases",
        model=ProductPurchase,
        id_fields=BASE_ID_FIELDS | {"product.id", "salesman.id"},
        searchable_fields=("product.name", "product.imei", "product.sku", "note"),
        calculations={"total_quantity": _sum(ProductPurchase.updated_quantity)},
        default_select={"product": 1, "updated_quantity": 1, "date_string": 1},
    ),
    "product_damages": EntityQueryConfig(
        name="product_damages",
        model=ProductDamage,
        id_fields=BASE_ID_FIELDS | {"product.id"},
        searchable_fields=("product.name", "product.imei", "note"),
        calculations={"total_quantity": _sum(ProductDamage.quantity)},
        default_select={"product": 1, "quantity": 1, "date_string": 1},
    ),
    "buy_backs": EntityQueryConfig(
        name="buy_backs",
        model=BuyBack,
        id_fields=PRODUCT_ID_FIELDS | {"salesman.id"},
        searchable_fields=("name", "imei", "sku", "buy_back_id", "customer_name", "phone_no"),
        calculations={
            "total_quantity": _sum(BuyBack.quantity),
            "total_purchase_price": _sum(BuyBack.purchase_price_cents),
            "total_sale_price": _sum(BuyBack.sale_price_cents),
            "total_purchase_value": _sum(BuyBack.purchase_price_cents * BuyBack.quantity),
            "total_sale_value": _sum(BuyBack.sale_price_cents * BuyBack.quantity),
        },
    ),
    "product_logs": _archive_log("product_logs", "products", ("name", "sku", "imei", "product_id")),
    "transaction_logs": _archive_log("transaction_logs", "transactions", ("invoice_no", "customer.phone")),
    "customer_logs": _archive_log("customer_logs", "customers", ("name", "phone")),
}


def get_entity_config(name: str) -> EntityQueryConfig | None:
    return ENTITY_CONFIGS.get(name)
