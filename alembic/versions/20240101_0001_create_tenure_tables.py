"""create member, subscription, payment, payout and activity_log tables

Revision ID: 0001_create_tenure_tables
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
import sqlalchemy as sa
import sqlmodel
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_create_tenure_tables'
down_revision = None
branch_labels = None
depends_on = None

JSON_VARIANT = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column(
            'created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            'updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    ]


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def upgrade() -> None:
    op.create_table(
        'member',
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('first_name', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column('middle_name', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=True),
        sa.Column('last_name', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        *_timestamps(),
        sa.Column(
            'status',
            _enum('member_status', 'active', 'defaulted', 'won', 'removed'),
            server_default='active',
            nullable=False,
        ),
        sa.Column(
            'kyc_status',
            _enum('kyc_status', 'pending', 'verified', 'rejected'),
            server_default='pending',
            nullable=False,
        ),
        sa.Column('has_tax_form', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_member_status', 'member', ['status'])

    op.create_table(
        'subscription',
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column(
            'provider_subscription_id',
            sqlmodel.sql.sqltypes.AutoString(length=255),
            nullable=True,
        ),
        sa.Column(
            'status',
            _enum('subscription_status', 'active', 'trialing', 'past_due', 'canceled', 'incomplete'),
            server_default='incomplete',
            nullable=False,
        ),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['member_id'], ['member.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_subscription_member_id', 'subscription', ['member_id'])

    op.create_table(
        'payment',
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('subscription_id', sa.Uuid(), nullable=True),
        sa.Column(
            'payment_type',
            _enum('payment_type', 'joining_fee', 'monthly_fee', 'retention_fee'),
            nullable=False,
        ),
        sa.Column(
            'status',
            _enum('payment_status', 'pending', 'completed', 'failed', 'refunded'),
            server_default='pending',
            nullable=False,
        ),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sqlmodel.sql.sqltypes.AutoString(length=3), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            'provider_payment_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(['member_id'], ['member.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscription.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payment_member_id', 'payment', ['member_id'])
    op.create_index('ix_payment_member_date', 'payment', ['member_id', 'payment_date'])

    op.create_table(
        'payout',
        *_timestamps(),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('queue_position', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sqlmodel.sql.sqltypes.AutoString(length=3), nullable=False),
        sa.Column(
            'status',
            _enum(
                'payout_status',
                'pending_approval',
                'approved',
                'scheduled',
                'processing',
                'completed',
                'failed',
                'cancelled',
            ),
            server_default='pending_approval',
            nullable=False,
        ),
        sa.Column('eligibility_snapshot', JSON_VARIANT, nullable=False),
        sa.Column('approvals', JSON_VARIANT, nullable=False),
        sa.Column('initiated_by', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('retention_fee', sa.Numeric(12, 2), nullable=True),
        sa.Column('tax_withholding', sa.Numeric(12, 2), nullable=True),
        sa.Column('net_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('membership_removal_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['member.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payout_member_id', 'payout', ['member_id'])
    op.create_index('ix_payout_status', 'payout', ['status'])

    op.create_table(
        'activity_log',
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('resource_type', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('resource_id', sa.Uuid(), nullable=True),
        sa.Column('details', JSON_VARIANT, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_activity_log_resource', 'activity_log', ['resource_type', 'resource_id'])


def downgrade() -> None:
    op.drop_index('ix_activity_log_resource', table_name='activity_log')
    op.drop_table('activity_log')
    op.drop_index('ix_payout_status', table_name='payout')
    op.drop_index('ix_payout_member_id', table_name='payout')
    op.drop_table('payout')
    op.drop_index('ix_payment_member_date', table_name='payment')
    op.drop_index('ix_payment_member_id', table_name='payment')
    op.drop_table('payment')
    op.drop_index('ix_subscription_member_id', table_name='subscription')
    op.drop_table('subscription')
    op.drop_index('ix_member_status', table_name='member')
    op.drop_table('member')
