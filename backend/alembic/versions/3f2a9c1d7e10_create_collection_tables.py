"""Create collection tables and audit log

Revision ID: 3f2a9c1d7e10
Revises: 
Create Date: 2026-10-19 10:12:41.220318

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# Revision identifiers used by Alembic
revision: str = '3f2a9c1d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _entity_columns():
    # Identity and version token shared by every collection table
    return [
        sa.Column('partition_key', sa.String(length=64), primary_key=True),
        sa.Column('row_key', sa.String(length=64), primary_key=True),
        sa.Column('etag', sa.String(length=64), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'customers',
        *_entity_columns(),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('surname', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=False),
        sa.Column('username', sa.String(), nullable=False),
    )
    op.create_index('ix_customers_email', 'customers', ['email'])
    op.create_index('ix_customers_username', 'customers', ['username'])

    op.create_table(
        'products',
        *_entity_columns(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('price', sa.Float(), sa.CheckConstraint('price >= 0'), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), sa.CheckConstraint('stock_quantity >= 0'), nullable=False),
        sa.Column('image_url', sa.String(), nullable=False),
    )
    op.create_index('ix_products_name', 'products', ['name'])

    op.create_table(
        'orders',
        *_entity_columns(),
        sa.Column('customer_id', sa.String(length=64), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), sa.CheckConstraint('quantity > 0'), nullable=False),
        sa.Column('order_status', sa.String(), nullable=False),
        sa.Column('order_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('unit_price', sa.Float(), nullable=False),
        sa.Column('product_name', sa.String(), nullable=False),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('username', sa.String(), nullable=False),
    )
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_product_id', 'orders', ['product_id'])

    op.create_table(
        'file_uploads',
        *_entity_columns(),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('file_name', sa.String(), nullable=False),
        sa.Column('original_file_name', sa.String(), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('content_type', sa.String(), nullable=True),
        sa.Column('upload_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('file_url', sa.String(), nullable=False),
        sa.Column('storage_type', sa.String(), nullable=False),
    )
    op.create_index('ix_file_uploads_order_id', 'file_uploads', ['order_id'])

    op.create_table(
        'logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ts', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('action', sa.String(length=50)),
        sa.Column('resource', sa.String(length=50)),
        sa.Column('status', sa.String(length=20)),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
    )
    for column in ('id', 'ts', 'action', 'resource', 'status'):
        op.create_index(f'ix_logs_{column}', 'logs', [column])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('logs')
    op.drop_table('file_uploads')
    op.drop_table('orders')
    op.drop_table('products')
    op.drop_table('customers')
