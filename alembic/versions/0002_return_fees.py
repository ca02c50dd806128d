"""return fees: fee schedule and return columns on bookings

Revision ID: 0002_return_fees
Revises: 0001_initial
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa

revision = "0002_return_fees"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "fee_schedules",
        sa.Column("fee_type", sa.String(length=40), primary_key=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    with op.batch_alter_table("bookings") as batch:
        batch.add_column(sa.Column("return_fee_cents", sa.Integer(), nullable=True))
        batch.add_column(sa.Column("returned_at", sa.DateTime(timezone=True), nullable=True))

def downgrade() -> None:
    with op.batch_alter_table("bookings") as batch:
        batch.drop_column("returned_at")
        batch.drop_column("return_fee_cents")
    op.drop_table("fee_schedules")
