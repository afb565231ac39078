"""buy backs

Revision ID: 0002_buy_backs
Revises: 0001_initial
Create Date: 2026-10-19 00:00:00.000000

Adds buy_backs: second-hand goods bought from customers, numbered by the
per-shop "buy_back_id" counter.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_buy_backs'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'buy_backs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('buy_back_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('imei', sa.String(length=64), nullable=True),
        sa.Column('model', sa.String(length=128), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.JSON(), nullable=True),
        sa.Column('sub_category', sa.JSON(), nullable=True),
        sa.Column('brand', sa.JSON(), nullable=True),
        sa.Column('unit', sa.JSON(), nullable=True),
        sa.Column('colors', sa.JSON(), nullable=True),
        sa.Column('sizes', sa.JSON(), nullable=True),
        sa.Column('vendor', sa.JSON(), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('phone_no', sa.String(length=32), nullable=True),
        sa.Column('nric', sa.String(length=32), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('unit_no', sa.String(length=32), nullable=True),
        sa.Column('post_code', sa.String(length=16), nullable=True),
        sa.Column('payby', sa.String(length=32), nullable=True),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=True),
        sa.Column('sale_price_cents', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('sold_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=32), nullable=True),
        sa.Column('salesman', sa.JSON(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('date_string', sa.String(length=10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_buy_backs_shop_id_shops'),
        sa.PrimaryKeyConstraint('id', name='pk_buy_backs'),
        sa.UniqueConstraint('shop_id', 'sku', name='uq_buy_backs_shop_sku'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_buy_backs_shop_id', 'buy_backs', ['shop_id'])
    op.create_index('ix_buy_backs_buy_back_id', 'buy_backs', ['buy_back_id'])
    op.create_index('ix_buy_backs_imei', 'buy_backs', ['imei'])
    op.create_index('ix_buy_backs_phone_no', 'buy_backs', ['phone_no'])
    op.create_index('ix_buy_backs_date_string', 'buy_backs', ['date_string'])
    op.create_index('ix_buy_backs_shop_name', 'buy_backs', ['shop_id', 'name'])


def downgrade():
    op.drop_table('buy_backs')
