"""add payout scheduling, sending and failure columns

Revision ID: 0002_add_payout_processing
Revises: 0001_create_tenure_tables
Create Date: 2024-03-01 00:00:00.000000

"""
import sqlalchemy as sa
import sqlmodel
from alembic import op

# revision identifiers, used by Alembic.
revision = '0002_add_payout_processing'
down_revision = '0001_create_tenure_tables'
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table('payout') as batch_op:
        batch_op.add_column(sa.Column('scheduled_date', sa.Date(), nullable=True))
        batch_op.add_column(sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True))
        batch_op.add_column(
            sa.Column(
                'payment_reference', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True
            )
        )
        batch_op.add_column(sa.Column('failed_at', sa.DateTime(timezone=True), nullable=True))
        batch_op.add_column(
            sa.Column('failure_reason', sqlmodel.sql.sqltypes.AutoString(), nullable=True)
        )


def downgrade() -> None:
    with op.batch_alter_table('payout') as batch_op:
        batch_op.drop_column('failure_reason')
        batch_op.drop_column('failed_at')
        batch_op.drop_column('payment_reference')
        batch_op.drop_column('sent_at')
        batch_op.drop_column('scheduled_date')
