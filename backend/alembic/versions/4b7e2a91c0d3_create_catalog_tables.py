"""create_catalog_tables

Revision ID: 4b7e2a91c0d3
Revises:
Create Date: 2026-10-17 10:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4b7e2a91c0d3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'categories',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('config', postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_categories_slug', 'categories', ['slug'], unique=True)

    op.create_table(
        'custom_field_definitions',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('label', sa.String(255), nullable=False),
        sa.Column('group', sa.String(50), nullable=False, server_default='spec'),
        sa.Column('field_type', sa.String(50), nullable=False, server_default='text'),
        sa.Column('options', postgresql.JSONB(), nullable=True),
        sa.Column('table_config', postgresql.JSONB(), nullable=True),
        sa.Column('placeholder', sa.String(255), nullable=True),
        sa.Column('help_text', sa.Text(), nullable=True),
        sa.Column('is_system', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_custom_field_definitions_key', 'custom_field_definitions', ['key'], unique=True)

    op.create_table(
        'products',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('category_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('name', sa.String(500), nullable=False),
        sa.Column('brand', sa.String(255), nullable=True),
        sa.Column('model', sa.String(255), nullable=True),
        sa.Column('sku', sa.String(100), nullable=True),
        sa.Column('ean', sa.String(13), nullable=True),
        sa.Column('serial', sa.String(100), nullable=True),
        sa.Column('imei1', sa.String(15), nullable=True),
        sa.Column('imei2', sa.String(15), nullable=True),
        sa.Column('condition', sa.String(20), nullable=False, server_default='new'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('specs', postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_category_id', 'products', ['category_id'])
    op.create_index('ix_products_ean', 'products', ['ean'])
    op.create_index('ix_products_serial', 'products', ['serial'])
    op.create_index('ix_products_imei1', 'products', ['imei1'])


def downgrade() -> None:
    op.drop_index('ix_products_imei1', table_name='products')
    op.drop_index('ix_products_serial', table_name='products')
    op.drop_index('ix_products_ean', table_name='products')
    op.drop_index('ix_products_category_id', table_name='products')
    op.drop_table('products')
    op.drop_index('ix_custom_field_definitions_key', table_name='custom_field_definitions')
    op.drop_table('custom_field_definitions')
    op.drop_index('ix_categories_slug', table_name='categories')
    op.drop_table('categories')
