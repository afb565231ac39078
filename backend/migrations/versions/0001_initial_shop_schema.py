"""initial shop schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the shop-scoped inventory / point-of-sale schema:
- shops, users: tenants and their staff
- sequence_counters: per-shop atomic counters (invoice_no, product_id, ...)
- products, product_purchases, product_damages: catalog, stock-in and damage
- customers, point_configs: loyalty
- transactions, transaction_lines: sales, returns and pre-orders
- archive_log_entries: soft-deleted documents awaiting restore
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    # ============================================================================
    # shops / users
    # ============================================================================
    op.create_table(
        'shops',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_shops'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shops_code', 'shops', ['code'], unique=True)
    op.create_index('ix_shops_is_active', 'shops', ['is_active'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_users_shop_id_shops'),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('shop_id', 'username', name='uq_users_shop_username'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_shop_id', 'users', ['shop_id'])

    # ============================================================================
    # sequence_counters: value = last number issued
    # ============================================================================
    op.create_table(
        'sequence_counters',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('counter_name', sa.String(length=32), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_sequence_counters_shop_id_shops'),
        sa.PrimaryKeyConstraint('id', name='pk_sequence_counters'),
        sa.UniqueConstraint('shop_id', 'counter_name', name='uq_sequence_counters_shop_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sequence_counters_shop_id', 'sequence_counters', ['shop_id'])

    # ============================================================================
    # products: quantity changes only through stock deltas
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('imei', sa.String(length=64), nullable=True),
        sa.Column('batch_number', sa.String(length=64), nullable=True),
        sa.Column('model', sa.String(length=128), nullable=True),
        sa.Column('category', sa.JSON(), nullable=True),
        sa.Column('sub_category', sa.JSON(), nullable=True),
        sa.Column('brand', sa.JSON(), nullable=True),
        sa.Column('unit', sa.JSON(), nullable=True),
        sa.Column('colors', sa.JSON(), nullable=True),
        sa.Column('sizes', sa.JSON(), nullable=True),
        sa.Column('vendor', sa.JSON(), nullable=True),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=True),
        sa.Column('sale_price_cents', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sold_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('date_string', sa.String(length=10), nullable=True),
        sa.Column('read_only', sa.Boolean(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_products_shop_id_shops'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sa.UniqueConstraint('shop_id', 'imei', name='uq_products_shop_imei'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_shop_id', 'products', ['shop_id'])
    op.create_index('ix_products_product_id', 'products', ['product_id'])
    op.create_index('ix_products_sku', 'products', ['sku'])
    op.create_index('ix_products_date_string', 'products', ['date_string'])
    op.create_index('ix_products_shop_name', 'products', ['shop_id', 'name'])
    op.create_index('ix_products_shop_quantity', 'products', ['shop_id', 'quantity'])

    op.create_table(
        'product_purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('product', sa.JSON(), nullable=False),
        sa.Column('previous_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_quantity', sa.Integer(), nullable=False),
        sa.Column('salesman', sa.JSON(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('date_string', sa.String(length=10), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_product_purchases_shop_id_shops'),
        sa.PrimaryKeyConstraint('id', name='pk_product_purchases'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_product_purchases_shop_id', 'product_purchases', ['shop_id'])
    op.create_index('ix_product_purchases_date_string', 'product_purchases', ['date_string'])

    op.create_table(
        'product_damages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('product', sa.JSON(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('date_string', sa.String(length=10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_product_damages_shop_id_shops'),
        sa.PrimaryKeyConstraint('id', name='pk_product_damages'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_product_damages_shop_id', 'product_damages', ['shop_id'])
    op.create_index('ix_product_damages_date_string', 'product_damages', ['date_string'])

    # ============================================================================
    # customers / point_configs
    # ============================================================================
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('user_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('read_only', sa.Boolean(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_customers_shop_id_shops'),
        sa.PrimaryKeyConstraint('id', name='pk_customers'),
        sa.UniqueConstraint('shop_id', 'phone', name='uq_customers_shop_phone'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_customers_shop_id', 'customers', ['shop_id'])

    op.create_table(
        'point_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('point_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('point_value', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_point_configs_shop_id_shops'),
        sa.PrimaryKeyConstraint('id', name='pk_point_configs'),
        sa.UniqueConstraint('shop_id', name='uq_point_configs_shop'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_point_configs_shop_id', 'point_configs', ['shop_id'])

    # ============================================================================
    # transactions / transaction_lines
    # ============================================================================
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('invoice_no', sa.String(length=32), nullable=True),
        sa.Column('customer', sa.JSON(), nullable=True),
        sa.Column('salesman', sa.JSON(), nullable=True),
        sa.Column('sub_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('use_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sold_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sold_date_string', sa.String(length=10), nullable=True),
        sa.Column('month', sa.Integer(), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('idempotency_key', sa.String(length=128), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_transactions_shop_id_shops'),
        sa.PrimaryKeyConstraint('id', name='pk_transactions'),
        sa.UniqueConstraint('shop_id', 'kind', 'idempotency_key', name='uq_transactions_shop_kind_key'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transactions_shop_id', 'transactions', ['shop_id'])
    op.create_index('ix_transactions_shop_kind', 'transactions', ['shop_id', 'kind'])
    op.create_index('ix_transactions_shop_invoice', 'transactions', ['shop_id', 'invoice_no'])
    op.create_index('ix_transactions_sold_date_string', 'transactions', ['sold_date_string'])

    op.create_table(
        'transaction_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('imei', sa.String(length=64), nullable=True),
        sa.Column('category', sa.JSON(), nullable=True),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=True),
        sa.Column('sale_price_cents', sa.Integer(), nullable=True),
        sa.Column('sale_type', sa.String(length=16), nullable=False, server_default='Sale'),
        sa.Column('sold_quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id'],
                                name='fk_transaction_lines_transaction_id_transactions'),
        sa.PrimaryKeyConstraint('id', name='pk_transaction_lines'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transaction_lines_transaction_id', 'transaction_lines', ['transaction_id'])
    op.create_index('ix_transaction_lines_product_id', 'transaction_lines', ['product_id'])

    # ============================================================================
    # archive_log_entries: deleted documents, restorable under their original id
    # ============================================================================
    op.create_table(
        'archive_log_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('collection', sa.String(length=32), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=True),
        sa.Column('original_id', sa.Integer(), nullable=False),
        sa.Column('document', sa.JSON(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deleted_by', sa.String(length=255), nullable=True),
        sa.Column('delete_month', sa.Integer(), nullable=False),
        sa.Column('delete_year', sa.Integer(), nullable=False),
        sa.Column('delete_date_string', sa.String(length=10), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_archive_log_entries'),
        sa.UniqueConstraint('collection', 'original_id', name='uq_archive_log_collection_original'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_archive_log_shop_collection', 'archive_log_entries', ['shop_id', 'collection'])
    op.create_index('ix_archive_log_entries_delete_date_string', 'archive_log_entries', ['delete_date_string'])


def downgrade():
    op.drop_table('archive_log_entries')
    op.drop_table('transaction_lines')
    op.drop_table('transactions')
    op.drop_table('point_configs')
    op.drop_table('customers')
    op.drop_table('product_damages')
    op.drop_table('product_purchases')
    op.drop_table('products')
    op.drop_table('sequence_counters')
    op.drop_table('users')
    op.drop_table('shops')
