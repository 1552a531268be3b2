"""initial schema

Revision ID: 5d1c0e7a9b21
Revises:
Create Date: 2026-10-01 00:00:00.000000

Creates the StockDesk schema from scratch:
- products / product_variants: catalog with per-variant price and stock
- sales / sale_items: posted sales with price snapshots per line
- notifications: dashboard event feed
- settings: business settings singleton

Products and variants carry version_id for optimistic locking.
sale_items.product_id has no foreign key so deleting a product leaves
historical sales untouched.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5d1c0e7a9b21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # products: Product master
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=120), nullable=False),
        sa.Column('brand', sa.String(length=120), nullable=False),
        sa.Column('supplier', sa.String(length=120), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_updated_at', 'products', ['updated_at'])
    op.create_index('ix_products_category', 'products', ['category'])
    op.create_index('ix_products_brand', 'products', ['brand'])
    op.create_index('ix_products_supplier', 'products', ['supplier'])

    # ============================================================================
    # product_variants: ordered children of a product
    # ============================================================================
    op.create_table(
        'product_variants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('cost_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('selling_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('current_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('location', sa.String(length=120), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'],
                                name='fk_product_variants_product_id_products',
                                ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_product_variants'),
        sa.UniqueConstraint('sku', name='uq_product_variants_sku'),
        sa.UniqueConstraint('product_id', 'name', name='uq_product_variants_product_name'),
        sa.CheckConstraint('current_stock >= 0',
                           name='ck_product_variants_current_stock_non_negative'),
        sa.CheckConstraint('low_stock_threshold >= 1',
                           name='ck_product_variants_low_stock_threshold_positive'),
        sa.CheckConstraint('cost_price >= 0',
                           name='ck_product_variants_cost_price_non_negative'),
        sa.CheckConstraint('selling_price >= 0',
                           name='ck_product_variants_selling_price_non_negative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'])

    # ============================================================================
    # sales: posted sales (items and totals immutable after creation)
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=64), nullable=False),
        sa.Column('customer', sa.String(length=255), nullable=True),
        sa.Column('total_amount', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('total_profit', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False, server_default='Cash'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='Completed'),
        sa.Column('flag_status', sa.String(length=8), nullable=False, server_default='green'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_sales'),
        sa.UniqueConstraint('invoice_number', name='uq_sales_invoice_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_created_at', 'sales', ['created_at'])
    op.create_index('ix_sales_payment_status_created', 'sales', ['payment_status', 'created_at'])

    # ============================================================================
    # sale_items: line snapshots (product_id intentionally not a foreign key)
    # ============================================================================
    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('variant', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('cost_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('selling_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('actual_selling_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('profit', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'],
                                name='fk_sale_items_sale_id_sales',
                                ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_sale_items'),
        sa.CheckConstraint('quantity >= 1', name='ck_sale_items_quantity_positive'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])

    # ============================================================================
    # notifications: dashboard feed
    # ============================================================================
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('related_to', sa.Integer(), nullable=True),
        sa.Column('related_model', sa.String(length=32), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_notifications'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_read_created', 'notifications', ['is_read', 'created_at'])

    # ============================================================================
    # settings: singleton row
    # ============================================================================
    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_name', sa.String(length=255), nullable=False,
                  server_default='Auto Parts Store'),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('currency', sa.String(length=8), nullable=False, server_default='USD'),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('tax_rate', sa.Numeric(precision=6, scale=3), nullable=False, server_default='0'),
        sa.Column('notify_low_stock', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('notify_new_sales', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('notify_price_changes', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_settings'),
    )


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('settings')
    op.drop_table('notifications')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('product_variants')
    op.drop_table('products')
