"""checkout schema

Revision ID: 0001_checkout_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the checkout schema from scratch:
- products / customers: sellable items and the people sales are attributed to
- carts / cart_lines: one cart per cashier; lines are active or held
- transactions / transaction_details / profits: finalized sales
- payment_settings: singleton gateway configuration
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_checkout_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # products: stock is only decremented inside a checkout unit
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('buy_price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sell_price', sa.Integer(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('barcode'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_title', 'products', ['title'])

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # carts: the per-cashier row every cart mutation and checkout locks
    # ============================================================================
    op.create_table(
        'carts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cashier_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cashier_id', name='uq_carts_cashier'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'cart_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cart_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('hold_id', sa.String(length=64), nullable=True),
        sa.Column('hold_label', sa.String(length=64), nullable=True),
        sa.Column('held_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('qty >= 1', name='ck_cart_lines_qty_positive'),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cart_lines_cart_id', 'cart_lines', ['cart_id'])
    op.create_index('ix_cart_lines_product_id', 'cart_lines', ['product_id'])
    op.create_index('ix_cart_lines_hold_id', 'cart_lines', ['hold_id'])
    op.create_index('ix_cart_lines_cart_hold', 'cart_lines', ['cart_id', 'hold_id'])

    # ============================================================================
    # transactions: written once by checkout; only payment fields change later
    # ============================================================================
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cashier_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('invoice', sa.String(length=64), nullable=False),
        sa.Column('discount_type', sa.String(length=16), nullable=False, server_default='nominal'),
        sa.Column('discount_value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_type', sa.String(length=16), nullable=False, server_default='percent'),
        sa.Column('tax_value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('grand_total', sa.Integer(), nullable=False),
        sa.Column('cash', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('change', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(length=16), nullable=False, server_default='cash'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='paid'),
        sa.Column('payment_reference', sa.String(length=255), nullable=True),
        sa.Column('payment_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice', name='uq_transactions_invoice'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transactions_customer_id', 'transactions', ['customer_id'])
    op.create_index('ix_transactions_payment_status', 'transactions', ['payment_status'])
    op.create_index('ix_transactions_created_at', 'transactions', ['created_at'])
    op.create_index('ix_transactions_cashier_created', 'transactions', ['cashier_id', 'created_at'])

    op.create_table(
        'transaction_details',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transaction_details_transaction_id', 'transaction_details', ['transaction_id'])
    op.create_index('ix_transaction_details_product_id', 'transaction_details', ['product_id'])

    op.create_table(
        'profits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('transaction_detail_id', sa.Integer(), nullable=False),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id']),
        sa.ForeignKeyConstraint(['transaction_detail_id'], ['transaction_details.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_detail_id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_profits_transaction_id', 'profits', ['transaction_id'])

    # ============================================================================
    # payment_settings: singleton row
    # ============================================================================
    op.create_table(
        'payment_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('default_gateway', sa.String(length=16), nullable=False, server_default='cash'),
        sa.Column('qris_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('qris_string', sa.Text(), nullable=True),
        sa.Column('midtrans_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('midtrans_server_key', sa.String(length=255), nullable=True),
        sa.Column('midtrans_client_key', sa.String(length=255), nullable=True),
        sa.Column('midtrans_production', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('xendit_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('xendit_secret_key', sa.String(length=255), nullable=True),
        sa.Column('xendit_public_key', sa.String(length=255), nullable=True),
        sa.Column('xendit_production', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('payment_settings')
    op.drop_index('ix_profits_transaction_id', table_name='profits')
    op.drop_table('profits')
    op.drop_index('ix_transaction_details_product_id', table_name='transaction_details')
    op.drop_index('ix_transaction_details_transaction_id', table_name='transaction_details')
    op.drop_table('transaction_details')
    op.drop_index('ix_transactions_cashier_created', table_name='transactions')
    op.drop_index('ix_transactions_created_at', table_name='transactions')
    op.drop_index('ix_transactions_payment_status', table_name='transactions')
    op.drop_index('ix_transactions_customer_id', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('ix_cart_lines_cart_hold', table_name='cart_lines')
    op.drop_index('ix_cart_lines_hold_id', table_name='cart_lines')
    op.drop_index('ix_cart_lines_product_id', table_name='cart_lines')
    op.drop_index('ix_cart_lines_cart_id', table_name='cart_lines')
    op.drop_table('cart_lines')
    op.drop_table('carts')
    op.drop_table('customers')
    op.drop_index('ix_products_title', table_name='products')
    op.drop_table('products')
