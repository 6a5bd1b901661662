"""Create shipments and command_log tables

Revision ID: 001
Revises: None
Create Date: 2026-10-16 00:00:00.000000+00:00

What:  Initial schema: `shipments` (one row per tracked shipment, owned by
       recipient_email) and `command_log` (append-only request log).
How:   Integer identity keys, TIMESTAMP WITH TIME ZONE, CHECK constraints
       mirroring the accepted delivery statuses and numeric ranges.

Rollback: downgrade() drops both tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DELIVERY_STATUSES = (
    "delivered",
    "in transit",
    "ready for pick up",
    "shipment handed over",
)


def upgrade() -> None:
    status_list = ", ".join(f"'{status}'" for status in DELIVERY_STATUSES)

    op.create_table(
        "shipments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.String(100), nullable=False),

        # Owner key: every query filters on this column
        sa.Column("recipient_name", sa.String(255), nullable=False),
        sa.Column("recipient_email", sa.String(320), nullable=False),
        sa.Column("recipient_phone", sa.String(50), nullable=False),

        sa.Column("delivery_address", sa.String(500), nullable=False),
        sa.Column("postal_number", sa.Integer(), nullable=False),
        sa.Column("city", sa.String(120), nullable=False),
        sa.Column("country", sa.String(120), nullable=False),

        sa.Column("delivery_status", sa.String(50), nullable=False),
        sa.Column("tracking_number", sa.String(100), nullable=True),
        sa.Column("weight", sa.Float(), nullable=False, comment="Kilograms"),
        sa.Column("estimated_cost", sa.Float(), nullable=False),

        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),

        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            f"delivery_status IN ({status_list})",
            name="ck_shipments_delivery_status",
        ),
        sa.CheckConstraint("weight > 0", name="ck_shipments_weight_positive"),
        sa.CheckConstraint("estimated_cost >= 0", name="ck_shipments_cost_non_negative"),
    )

    # Serves both "list mine" (prefix) and "get mine by order id"
    op.create_index(
        "idx_shipments_owner_order",
        "shipments",
        ["recipient_email", "order_id"],
    )

    op.create_table(
        "command_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("method", sa.String(10), nullable=False),
        sa.Column("endpoint", sa.String(512), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("command_log")
    op.drop_index("idx_shipments_owner_order", table_name="shipments")
    op.drop_table("shipments")
