"""
Shipment Service Backend - Shipment Service (Business Logic Orchestrator)
==========================================================================

What:  Orchestrates every shipment operation on behalf of a verified caller.
How:   Composes ShipmentRepository (scoped persistence) and UsageNotifier
       (best-effort usage pings). HTTP concerns stay in the routes.
Who:   Built per request by the `get_shipment_service` dependency; called by
       the REST routes and the GraphQL resolvers.

Orchestration per operation:
    ┌────────────┐   ┌──────────────┐   ┌────────────────┐   ┌──────────────┐
    │  Identity  │──▶│  Validate    │──▶│  Repository    │──▶│  Shape +     │
    │ (resolved  │   │  (schemas +  │   │  (scoped by    │   │  report_usage│
    │  by route) │   │   owner rule)│   │   owner email) │   │              │
    └────────────┘   └──────────────┘   └────────────────┘   └──────────────┘

Outcome mapping:
    - no row / zero rows affected → NotFoundError (404), whether the row is
      absent or belongs to someone else
    - DatabaseError from the repository propagates to the global handler,
      which answers 500 with a generic message
    - success → minimal confirmation payload, then report_usage(endpoint)

report_usage() is called only after the operation succeeded and returns
immediately; nothing it does can change the response.
"""

import logging
from typing import List, Optional

from app.exceptions import NotFoundError, ValidationError
from app.models.shipment import DeliveryStatus, Shipment
from app.schemas.shipment import (
    MessageResponse,
    ShipmentCreatedResponse,
    ShipmentCreateRequest,
    ShipmentResponse,
    ShipmentStatistics,
    VerifyShipmentResponse,
)
from app.services.identity_service import Identity
from app.services.shipment_repository import ShipmentRepository
from app.services.usage_notifier import UsageNotifier

logger = logging.getLogger(__name__)

BASE_ENDPOINT = "/api/shipments"


class ShipmentService:
    """
    Business logic layer for shipment operations.

    Every public method takes the caller's Identity and uses identity.email
    as the owner key for the repository call. No method accepts an owner
    from anywhere else.
    """

    def __init__(self, repository: ShipmentRepository, notifier: Optional[UsageNotifier] = None):
        self._repository = repository
        self._notifier = notifier

    # ── REST operations ───────────────────────────────────────────────────

    async def list_shipments(self, identity: Identity) -> List[ShipmentResponse]:
        shipments = await self._repository.list_by_owner(identity.email)
        self._report(BASE_ENDPOINT)
        return [ShipmentResponse.model_validate(s) for s in shipments]

    async def get_shipment(self, identity: Identity, order_id: str) -> ShipmentResponse:
        order_id = (order_id or "").strip()
        if not order_id:
            raise ValidationError("Order ID is required", field="order_id")

        shipment = await self._repository.get_by_order_id(identity.email, order_id)
        if shipment is None:
            raise NotFoundError()

        self._report(f"{BASE_ENDPOINT}/{order_id}")
        return ShipmentResponse.model_validate(shipment)

    async def verify_shipment(self, identity: Identity, order_id: str) -> VerifyShipmentResponse:
        exists = await self._repository.exists(identity.email, order_id)
        self._report(f"{BASE_ENDPOINT}/verify")
        return VerifyShipmentResponse(exists=exists)

    async def create_shipment(
        self, identity: Identity, payload: ShipmentCreateRequest
    ) -> ShipmentCreatedResponse:
        """
        Creates a shipment owned by the caller.

        Raises:
            ValidationError: recipient_email names someone other than the caller.
                Checked before the repository is touched, so nothing is written.
        """
        if payload.recipient_email != identity.email:
            raise ValidationError(
                "recipient_email must match the authenticated user",
                field="recipient_email",
            )

        shipment_id = await self._repository.create(identity.email, payload.model_dump())
        self._report(BASE_ENDPOINT)
        return ShipmentCreatedResponse(shipment_id=shipment_id)

    async def update_delivery_status(
        self, identity: Identity, shipment_id: int, status: DeliveryStatus
    ) -> MessageResponse:
        rows = await self._repository.update_status(identity.email, shipment_id, status)
        if rows == 0:
            raise NotFoundError()

        self._report(f"{BASE_ENDPOINT}/{shipment_id}/delivery-status")
        return MessageResponse(message="Delivery status updated successfully")

    async def touch_timestamp(self, identity: Identity, shipment_id: int) -> MessageResponse:
        rows = await self._repository.touch_timestamp(identity.email, shipment_id)
        if rows == 0:
            raise NotFoundError()

        self._report(f"{BASE_ENDPOINT}/{shipment_id}/timestamp")
        return MessageResponse(message="Timestamp updated successfully")

    async def delete_shipment(self, identity: Identity, shipment_id: int) -> MessageResponse:
        rows = await self._repository.delete(identity.email, shipment_id)
        if rows == 0:
            raise NotFoundError()

        self._report(f"{BASE_ENDPOINT}/{shipment_id}")
        return MessageResponse(message="Shipment deleted successfully")

    async def delete_all_shipments(self, identity: Identity) -> MessageResponse:
        rows = await self._repository.delete_all(identity.email)
        if rows == 0:
            raise NotFoundError("No shipments to delete")

        logger.info("Deleted %d shipments for one owner", rows)
        self._report(BASE_ENDPOINT)
        return MessageResponse(message="All shipments deleted successfully")

    # ── GraphQL reads ─────────────────────────────────────────────────────
    # These return ORM rows; the GraphQL layer reshapes them into nested types.

    async def find_shipments(self, identity: Identity, endpoint: str) -> List[Shipment]:
        shipments = await self._repository.list_by_owner(identity.email)
        self._report(endpoint)
        return shipments

    async def find_shipment_by_id(
        self, identity: Identity, shipment_id: int, endpoint: str
    ) -> Optional[Shipment]:
        shipment = await self._repository.get_by_id(identity.email, shipment_id)
        self._report(endpoint)
        return shipment

    async def find_shipments_by_country(
        self, identity: Identity, country: str, endpoint: str
    ) -> List[Shipment]:
        shipments = await self._repository.list_by_country(identity.email, country.strip())
        self._report(endpoint)
        return shipments

    async def count_shipments(self, identity: Identity, endpoint: str) -> int:
        total = await self._repository.count(identity.email)
        self._report(endpoint)
        return total

    async def shipment_statistics(
        self, identity: Identity, endpoint: str, top: int = 5
    ) -> ShipmentStatistics:
        by_status = await self._repository.count_by_status(identity.email)
        countries = await self._repository.top_countries(identity.email, limit=top)
        self._report(endpoint)
        return ShipmentStatistics(
            total_shipments=sum(by_status.values()),
            delivered_shipments=by_status[DeliveryStatus.DELIVERED.value],
            in_transit_shipments=by_status[DeliveryStatus.IN_TRANSIT.value],
            ready_for_pickup=by_status[DeliveryStatus.READY_FOR_PICK_UP.value],
            top_countries=[country for country, _ in countries],
        )

    # ── Side channel ──────────────────────────────────────────────────────

    def _report(self, endpoint: str) -> None:
        if self._notifier is not None:
            self._notifier.report_usage(endpoint)
