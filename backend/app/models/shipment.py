"""
Shipment Service Backend - Shipment SQLAlchemy Model
=====================================================

What:  ORM model representing the `shipments` table.
Who:   Used by ShipmentRepository for scoped CRUD and by alembic.

Table Design:
    - Integer autoincrement primary key: assigned by the store, never changes.
    - order_id: business identifier supplied by the caller. It is NOT unique
      on its own and there is no (recipient_email, order_id) unique
      constraint either; lookups return the lowest id when duplicates exist.
    - recipient_email: owner key. Stored trimmed and lower-cased so that it
      compares equal to the identity taken from the access token.
    - delivery_status: one of DeliveryStatus; enforced by a CHECK constraint
      in addition to request validation.
    - created_at: written once by the repository on insert.
    - updated_at: written on insert, then only by the timestamp-touch
      operation. There is deliberately no `onupdate` hook.

Indexes:
    idx_shipments_owner_order on (recipient_email, order_id) serves every
    scoped lookup: list by owner, get by order id, exists.
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Float, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class DeliveryStatus(str, enum.Enum):
    """
    Fixed set of delivery states.

    No transition graph is enforced: any status may be replaced by any other.
    """

    DELIVERED = "delivered"
    IN_TRANSIT = "in transit"
    READY_FOR_PICK_UP = "ready for pick up"
    SHIPMENT_HANDED_OVER = "shipment handed over"

    @classmethod
    def values(cls):
        return [member.value for member in cls]


_STATUS_SQL_LIST = ", ".join(f"'{value}'" for value in DeliveryStatus.values())


class Shipment(Base):
    """
    A tracked shipment belonging to exactly one recipient email.

    Query Patterns:
        - List for owner: WHERE recipient_email = :owner ORDER BY id
        - Get by order: WHERE order_id = :order_id AND recipient_email = :owner
        - Mutations:    WHERE id = :id AND recipient_email = :owner
    """

    __tablename__ = "shipments"

    # ── Identity ──────────────────────────────────────────────────────────
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    order_id: Mapped[str] = mapped_column(String(100), nullable=False)

    # ── Recipient / Ownership ─────────────────────────────────────────────
    recipient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_email: Mapped[str] = mapped_column(String(320), nullable=False)
    recipient_phone: Mapped[str] = mapped_column(String(50), nullable=False)

    # ── Address ───────────────────────────────────────────────────────────
    delivery_address: Mapped[str] = mapped_column(String(500), nullable=False)
    postal_number: Mapped[int] = mapped_column(Integer, nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    country: Mapped[str] = mapped_column(String(120), nullable=False)

    # ── Shipment Details ──────────────────────────────────────────────────
    delivery_status: Mapped[str] = mapped_column(String(50), nullable=False)
    tracking_number: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, default=None
    )
    # Kilograms
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    estimated_cost: Mapped[float] = mapped_column(Float, nullable=False)

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_shipments_owner_order", "recipient_email", "order_id"),
        CheckConstraint(
            f"delivery_status IN ({_STATUS_SQL_LIST})",
            name="ck_shipments_delivery_status",
        ),
        CheckConstraint("weight > 0", name="ck_shipments_weight_positive"),
        CheckConstraint("estimated_cost >= 0", name="ck_shipments_cost_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Shipment(id={self.id}, order_id='{self.order_id}', "
            f"delivery_status='{self.delivery_status}')>"
        )
