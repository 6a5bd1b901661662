"""
Shipment Service Backend - Shipment Repository
===============================================

What:  Data-access layer translating shipment operations into scoped queries.
How:   Every statement is a SQLAlchemy expression, so values (order_id from
       the URL, email from the token) are always bound parameters.
Who:   Constructed per request around the request's AsyncSession and used
       by ShipmentService.

Scoping rule:
    Every read, update and delete carries `recipient_email = :owner` in its
    WHERE clause next to its primary lookup key. Nothing here ever selects,
    updates or deletes by id or order_id alone.

Write operations commit immediately: each one is a single statement and
relies on the store's row-level atomicity. A zero row count means "not
found or not owned", and callers must not tell the two apart.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import delete, desc, exists, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError
from app.models.shipment import DeliveryStatus, Shipment

logger = logging.getLogger(__name__)

# Columns a caller may set on insert. id and the timestamps are server-owned.
CREATE_FIELDS = (
    "order_id",
    "recipient_name",
    "recipient_phone",
    "delivery_address",
    "postal_number",
    "city",
    "country",
    "delivery_status",
    "tracking_number",
    "weight",
    "estimated_cost",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShipmentRepository:
    """Owner-scoped access to the `shipments` table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_by_owner(self, owner: str) -> List[Shipment]:
        query = (
            select(Shipment)
            .where(Shipment.recipient_email == owner)
            .order_by(Shipment.id)
        )
        return await self._fetch_all(query, "list_by_owner")

    async def get_by_order_id(self, owner: str, order_id: str) -> Optional[Shipment]:
        """
        Returns the owner's shipment with this order_id, or None.

        order_id carries no uniqueness constraint; if the owner has several
        rows with the same order_id the one with the lowest id wins.
        """
        query = (
            select(Shipment)
            .where(Shipment.order_id == order_id, Shipment.recipient_email == owner)
            .order_by(Shipment.id)
            .limit(1)
        )
        return await self._fetch_one(query, "get_by_order_id")

    async def get_by_id(self, owner: str, shipment_id: int) -> Optional[Shipment]:
        query = select(Shipment).where(
            Shipment.id == shipment_id, Shipment.recipient_email == owner
        )
        return await self._fetch_one(query, "get_by_id")

    async def list_by_country(self, owner: str, country: str) -> List[Shipment]:
        query = (
            select(Shipment)
            .where(Shipment.recipient_email == owner, Shipment.country == country)
            .order_by(Shipment.id)
        )
        return await self._fetch_all(query, "list_by_country")

    async def exists(self, owner: str, order_id: str) -> bool:
        query = select(
            exists().where(
                Shipment.order_id == order_id, Shipment.recipient_email == owner
            )
        )
        try:
            result = await self._session.execute(query)
            return bool(result.scalar())
        except SQLAlchemyError as e:
            raise self._wrap(e, "exists") from e

    async def count(self, owner: str) -> int:
        query = select(func.count(Shipment.id)).where(Shipment.recipient_email == owner)
        try:
            result = await self._session.execute(query)
            return int(result.scalar() or 0)
        except SQLAlchemyError as e:
            raise self._wrap(e, "count") from e

    async def count_by_status(self, owner: str) -> Dict[str, int]:
        """Shipment count per delivery status; statuses with no rows map to 0."""
        query = (
            select(Shipment.delivery_status, func.count(Shipment.id))
            .where(Shipment.recipient_email == owner)
            .group_by(Shipment.delivery_status)
        )
        try:
            result = await self._session.execute(query)
            counts = {status: 0 for status in DeliveryStatus.values()}
            for status, total in result.all():
                counts[status] = int(total)
            return counts
        except SQLAlchemyError as e:
            raise self._wrap(e, "count_by_status") from e

    async def top_countries(self, owner: str, limit: int = 5) -> List[Tuple[str, int]]:
        """Most frequent destination countries, ties broken alphabetically."""
        total = func.count(Shipment.id).label("total")
        query = (
            select(Shipment.country, total)
            .where(Shipment.recipient_email == owner)
            .group_by(Shipment.country)
            .order_by(desc(total), Shipment.country)
            .limit(limit)
        )
        try:
            result = await self._session.execute(query)
            return [(country, int(count)) for country, count in result.all()]
        except SQLAlchemyError as e:
            raise self._wrap(e, "top_countries") from e

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(self, owner: str, fields: Mapping[str, Any]) -> int:
        """
        Inserts a shipment owned by `owner` and returns its new id.

        Only CREATE_FIELDS are taken from `fields`; recipient_email is always
        the owner key and both timestamps are stamped here.
        """
        now = _utcnow()
        values = {name: fields.get(name) for name in CREATE_FIELDS}
        status = values["delivery_status"]
        if isinstance(status, DeliveryStatus):
            values["delivery_status"] = status.value

        shipment = Shipment(
            **values,
            recipient_email=owner,
            created_at=now,
            updated_at=now,
        )
        try:
            self._session.add(shipment)
            await self._session.flush()
            shipment_id = shipment.id
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._rollback()
            raise self._wrap(e, "create") from e

        logger.info("Shipment %s created (order_id=%s)", shipment_id, values["order_id"])
        return shipment_id

    async def update_status(self, owner: str, shipment_id: int, status: DeliveryStatus) -> int:
        value = status.value if isinstance(status, DeliveryStatus) else str(status)
        statement = (
            update(Shipment)
            .where(Shipment.id == shipment_id, Shipment.recipient_email == owner)
            .values(delivery_status=value)
        )
        return await self._execute_write(statement, "update_status")

    async def touch_timestamp(self, owner: str, shipment_id: int) -> int:
        statement = (
            update(Shipment)
            .where(Shipment.id == shipment_id, Shipment.recipient_email == owner)
            .values(updated_at=_utcnow())
        )
        return await self._execute_write(statement, "touch_timestamp")

    async def delete(self, owner: str, shipment_id: int) -> int:
        statement = delete(Shipment).where(
            Shipment.id == shipment_id, Shipment.recipient_email == owner
        )
        return await self._execute_write(statement, "delete")

    async def delete_all(self, owner: str) -> int:
        statement = delete(Shipment).where(Shipment.recipient_email == owner)
        return await self._execute_write(statement, "delete_all")

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _fetch_all(self, query, operation: str) -> List[Shipment]:
        try:
            result = await self._session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._wrap(e, operation) from e

    async def _fetch_one(self, query, operation: str) -> Optional[Shipment]:
        try:
            result = await self._session.execute(query)
            return result.scalars().first()
        except SQLAlchemyError as e:
            raise self._wrap(e, operation) from e

    async def _execute_write(self, statement, operation: str) -> int:
        try:
            # synchronize_session=False: rows are not reloaded through this session
            result = await self._session.execute(
                statement, execution_options={"synchronize_session": False}
            )
            await self._session.commit()
            # Identity map may hold pre-update copies of the affected rows
            self._session.expire_all()
        except SQLAlchemyError as e:
            await self._rollback()
            raise self._wrap(e, operation) from e
        return int(result.rowcount or 0)

    async def _rollback(self) -> None:
        try:
            await self._session.rollback()
        except SQLAlchemyError as e:
            logger.warning("Rollback failed: %s", str(e))

    @staticmethod
    def _wrap(error: SQLAlchemyError, operation: str) -> DatabaseError:
        logger.error(
            "Database error in ShipmentRepository.%s: %s",
            operation,
            str(error),
            exc_info=True,
        )
        return DatabaseError(
            context={"operation": operation, "error_type": type(error).__name__}
        )
