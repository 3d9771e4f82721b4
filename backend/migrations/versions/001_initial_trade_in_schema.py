"""
Alembic migration: Initial trade-in schema.

Creates the device catalog (categories, brands, condition levels, device
models and storage price schedules), the customer and staff allow-list
tables, and trade-in orders with their append-only status history.

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_STATUSES = (
    'PENDING',
    'PROCESSING',
    'AWAITING_APPROVAL',
    'COMPLETED',
    'REJECTED',
    'CANCELLED',
)
PAYMENT_METHODS = (
    'CASH',
    'BANK_TRANSFER',
    'CHECK',
    'CREDIT_CARD',
    'E_TRANSFER',
    'PAYPAL',
    'OTHER',
)

condition_tier = postgresql.ENUM(
    'EXCELLENT', 'GOOD', 'FAIR', 'POOR', name='condition_tier', create_type=False
)
staff_role = postgresql.ENUM('STAFF', 'ADMIN', name='staff_role', create_type=False)
order_status = postgresql.ENUM(*ORDER_STATUSES, name='trade_in_order_status', create_type=False)
payment_method = postgresql.ENUM(*PAYMENT_METHODS, name='payment_method', create_type=False)


def _id_column() -> sa.Column:
    return sa.Column(
        'id',
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        nullable=False,
        comment='Unique identifier for the record',
    )


def _timestamp_columns() -> list:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
            comment='Timestamp when record was created',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
            comment='Timestamp when record was last updated',
        ),
    ]


def _audit_columns() -> list:
    return [
        sa.Column('created_by', sa.String(255), nullable=True, comment='Identity who created the record'),
        sa.Column('updated_by', sa.String(255), nullable=True, comment='Identity who last updated the record'),
    ]


def _listing_columns() -> list:
    return [
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default=sa.text('0')),
    ]


def upgrade() -> None:
    """Create enum types, tables, constraints and indexes."""
    bind = op.get_bind()
    for enum_type in (condition_tier, staff_role, order_status, payment_method):
        enum_type.create(bind, checkfirst=True)

    # Catalog lookups
    op.create_table(
        'categories',
        _id_column(),
        sa.Column('name', sa.String(100), nullable=False, comment='Category display name'),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('icon', sa.String(100), nullable=True),
        *_listing_columns(),
        *_timestamp_columns(),
        sa.UniqueConstraint('name', name='uq_categories_name'),
        comment='Device categories',
    )

    op.create_table(
        'brands',
        _id_column(),
        sa.Column('name', sa.String(100), nullable=False, comment='Brand display name'),
        sa.Column('logo_url', sa.String(500), nullable=True),
        *_listing_columns(),
        *_timestamp_columns(),
        sa.UniqueConstraint('name', name='uq_brands_name'),
        comment='Device manufacturers',
    )

    op.create_table(
        'device_conditions',
        _id_column(),
        sa.Column('name', sa.String(50), nullable=False, comment='Condition display name'),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('tier', condition_tier, nullable=False, comment='Pricing tier selected by this condition'),
        *_listing_columns(),
        *_timestamp_columns(),
        sa.UniqueConstraint('name', name='uq_device_conditions_name'),
        comment='Device condition levels',
    )
    op.create_index('ix_device_conditions_tier', 'device_conditions', ['tier'])

    # Device models and price schedules
    op.create_table(
        'device_models',
        _id_column(),
        sa.Column('name', sa.String(200), nullable=False, comment='Model display name'),
        sa.Column(
            'category_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('categories.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column(
            'brand_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('brands.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('model_number', sa.String(100), nullable=True),
        sa.Column('release_year', sa.Integer(), nullable=True),
        sa.Column('image_url', sa.String(500), nullable=True),
        *_listing_columns(),
        *_timestamp_columns(),
        *_audit_columns(),
        sa.UniqueConstraint('brand_id', 'name', name='uq_device_models_brand_name'),
        sa.CheckConstraint(
            'release_year IS NULL OR release_year BETWEEN 1990 AND 2100',
            name='ck_device_models_release_year',
        ),
        comment='Device models available for trade-in',
    )
    op.create_index('ix_device_models_category_id', 'device_models', ['category_id'])
    op.create_index('ix_device_models_brand_id', 'device_models', ['brand_id'])
    op.create_index('ix_device_models_is_active', 'device_models', ['is_active'])

    op.create_table(
        'storage_options',
        _id_column(),
        sa.Column(
            'device_model_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('device_models.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('storage', sa.String(20), nullable=False, comment='Storage label, e.g. 256GB'),
        sa.Column('excellent_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('good_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('fair_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('poor_price', sa.Numeric(precision=10, scale=2), nullable=True),
        *_listing_columns(),
        *_timestamp_columns(),
        sa.CheckConstraint(
            'excellent_price IS NULL OR excellent_price >= 0',
            name='ck_storage_options_excellent_price',
        ),
        sa.CheckConstraint(
            'good_price IS NULL OR good_price >= 0',
            name='ck_storage_options_good_price',
        ),
        sa.CheckConstraint(
            'fair_price IS NULL OR fair_price >= 0',
            name='ck_storage_options_fair_price',
        ),
        sa.CheckConstraint(
            'poor_price IS NULL OR poor_price >= 0',
            name='ck_storage_options_poor_price',
        ),
        comment='Per-storage price schedules',
    )
    op.create_index('ix_storage_options_device_model_id', 'storage_options', ['device_model_id'])
    # One active option per model and case-insensitive label; deactivated rows stay for order history
    op.create_index(
        'uq_storage_options_active_label',
        'storage_options',
        ['device_model_id', sa.text('upper(storage)')],
        unique=True,
        postgresql_where=sa.text('is_active'),
    )

    # People
    op.create_table(
        'customers',
        _id_column(),
        sa.Column('email', sa.String(255), nullable=False, comment='Lower-cased email address'),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('address_line1', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('province', sa.String(100), nullable=True),
        sa.Column('postal_code', sa.String(20), nullable=True),
        *_timestamp_columns(),
        comment='Trade-in customers',
    )
    op.create_index('ix_customers_email', 'customers', ['email'], unique=True)

    op.create_table(
        'staff_members',
        _id_column(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(200), nullable=False, server_default=''),
        sa.Column('role', staff_role, nullable=False, server_default='STAFF'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamp_columns(),
        comment='Staff authorization allow-list',
    )
    op.create_index('ix_staff_members_email', 'staff_members', ['email'], unique=True)

    # Orders
    op.create_table(
        'trade_in_orders',
        _id_column(),
        sa.Column('order_number', sa.String(50), nullable=False, comment='Human-readable order number'),
        sa.Column(
            'customer_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('customers.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column(
            'device_model_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('device_models.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column(
            'condition_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('device_conditions.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column(
            'storage_option_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('storage_options.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('status', order_status, nullable=False, server_default='PENDING'),
        sa.Column('quoted_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('final_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('payment_method', payment_method, nullable=True),
        sa.Column('tracking_number', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamp_columns(),
        *_audit_columns(),
        sa.UniqueConstraint('order_number', name='uq_trade_in_orders_order_number'),
        sa.CheckConstraint('quoted_amount >= 0', name='ck_trade_in_orders_quoted_amount'),
        sa.CheckConstraint(
            'final_amount IS NULL OR final_amount >= 0',
            name='ck_trade_in_orders_final_amount',
        ),
        comment='Customer trade-in orders',
    )
    op.create_index('ix_trade_in_orders_customer_id', 'trade_in_orders', ['customer_id'])
    op.create_index('ix_trade_in_orders_device_model_id', 'trade_in_orders', ['device_model_id'])
    op.create_index('ix_trade_in_orders_status', 'trade_in_orders', ['status'])
    op.create_index('ix_trade_in_orders_submitted_at', 'trade_in_orders', ['submitted_at'])
    op.create_index(
        'ix_trade_in_orders_status_submitted',
        'trade_in_orders',
        ['status', 'submitted_at'],
    )

    op.create_table(
        'order_status_history',
        _id_column(),
        sa.Column(
            'order_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('trade_in_orders.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('status', order_status, nullable=False, comment='Status after the change'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('changed_by', sa.String(255), nullable=False, server_default='system'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        comment='Append-only order status log',
    )
    op.create_index('ix_order_status_history_order_id', 'order_status_history', ['order_id'])
    op.create_index(
        'uq_order_status_history_sequence',
        'order_status_history',
        ['order_id', 'sequence'],
        unique=True,
    )


def downgrade() -> None:
    """Drop all trade-in tables and enum types."""
    op.drop_table('order_status_history')
    op.drop_table('trade_in_orders')
    op.drop_table('staff_members')
    op.drop_table('customers')
    op.drop_index('uq_storage_options_active_label', table_name='storage_options')
    op.drop_table('storage_options')
    op.drop_table('device_models')
    op.drop_table('device_conditions')
    op.drop_table('brands')
    op.drop_table('categories')

    bind = op.get_bind()
    for enum_type in (payment_method, order_status, staff_role, condition_tier):
        enum_type.drop(bind, checkfirst=True)
