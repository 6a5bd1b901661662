"""
Shipment Service Backend - Shipment Service Unit Tests
=======================================================

What:  Business rules of ShipmentService in isolation.
How:   The repository is an AsyncMock; the notifier is a MagicMock so the
       test can assert which endpoint was reported (report_usage is sync).

What we test:
    ✅ Every call uses identity.email as the owner key
    ✅ Zero affected rows / no row → NotFoundError
    ✅ Create rejects a foreign recipient_email before touching the repository
    ✅ Usage is reported only after success, with the request path
    ✅ DatabaseError propagates unchanged
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from app.exceptions import DatabaseError, NotFoundError, ValidationError
from app.models.shipment import DeliveryStatus, Shipment
from app.schemas.shipment import ShipmentCreateRequest
from app.services.identity_service import Identity
from app.services.shipment_service import ShipmentService

ALICE = Identity(email="alice@example.com")


def _shipment(**overrides) -> Shipment:
    now = datetime.now(timezone.utc)
    fields = dict(
        id=1,
        order_id="ORD1",
        recipient_name="Alice Andersen",
        recipient_email="alice@example.com",
        recipient_phone="+45 11 22 33 44",
        delivery_address="Main Street 1",
        postal_number=2100,
        city="Copenhagen",
        country="Denmark",
        delivery_status="in transit",
        tracking_number=None,
        weight=2.5,
        estimated_cost=49.0,
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    return Shipment(**fields)


class TestShipmentServiceReads:
    def setup_method(self):
        self.repository = AsyncMock()
        self.notifier = MagicMock()
        self.service = ShipmentService(self.repository, self.notifier)

    @pytest.mark.asyncio
    async def test_list_uses_owner_key(self):
        self.repository.list_by_owner.return_value = [_shipment(), _shipment(id=2)]

        result = await self.service.list_shipments(ALICE)

        assert [s.id for s in result] == [1, 2]
        self.repository.list_by_owner.assert_awaited_once_with("alice@example.com")
        self.notifier.report_usage.assert_called_once_with("/api/shipments")

    @pytest.mark.asyncio
    async def test_get_missing_raises_not_found(self):
        self.repository.get_by_order_id.return_value = None

        with pytest.raises(NotFoundError):
            await self.service.get_shipment(ALICE, "ORD404")
        self.notifier.report_usage.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_reports_order_path(self):
        self.repository.get_by_order_id.return_value = _shipment()

        result = await self.service.get_shipment(ALICE, "ORD1")

        assert result.order_id == "ORD1"
        self.notifier.report_usage.assert_called_once_with("/api/shipments/ORD1")

    @pytest.mark.asyncio
    async def test_get_blank_order_id_is_validation_error(self):
        with pytest.raises(ValidationError):
            await self.service.get_shipment(ALICE, "  ")
        self.repository.get_by_order_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_verify(self):
        self.repository.exists.return_value = False

        result = await self.service.verify_shipment(ALICE, "ORD9")

        assert result.exists is False
        self.notifier.report_usage.assert_called_once_with("/api/shipments/verify")

    @pytest.mark.asyncio
    async def test_statistics_shape(self):
        self.repository.count_by_status.return_value = {
            "delivered": 2,
            "in transit": 1,
            "ready for pick up": 0,
            "shipment handed over": 3,
        }
        self.repository.top_countries.return_value = [("Sweden", 4), ("Denmark", 2)]

        stats = await self.service.shipment_statistics(ALICE, "/graphql")

        assert stats.total_shipments == 6
        assert stats.delivered_shipments == 2
        assert stats.in_transit_shipments == 1
        assert stats.ready_for_pickup == 0
        assert stats.top_countries == ["Sweden", "Denmark"]

    @pytest.mark.asyncio
    async def test_database_error_propagates(self):
        self.repository.list_by_owner.side_effect = DatabaseError()

        with pytest.raises(DatabaseError):
            await self.service.list_shipments(ALICE)
        self.notifier.report_usage.assert_not_called()


class TestShipmentServiceWrites:
    def setup_method(self):
        self.repository = AsyncMock()
        self.notifier = MagicMock()
        self.service = ShipmentService(self.repository, self.notifier)

    @pytest.mark.asyncio
    async def test_create_returns_new_id(self, shipment_payload):
        self.repository.create.return_value = 7

        result = await self.service.create_shipment(
            ALICE, ShipmentCreateRequest(**shipment_payload())
        )

        assert result.shipment_id == 7
        assert result.model_dump(by_alias=True) == {
            "message": "Shipment created successfully",
            "shipmentId": 7,
        }
        owner, fields = self.repository.create.await_args.args
        assert owner == "alice@example.com"
        assert fields["order_id"] == "ORD1"

    @pytest.mark.asyncio
    async def test_create_for_someone_else_writes_nothing(self, shipment_payload):
        payload = ShipmentCreateRequest(**shipment_payload(recipient_email="bob@example.com"))

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_shipment(ALICE, payload)

        assert exc_info.value.field == "recipient_email"
        self.repository.create.assert_not_awaited()
        self.notifier.report_usage.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_accepts_differently_cased_email(self, shipment_payload):
        self.repository.create.return_value = 1
        payload = ShipmentCreateRequest(**shipment_payload(recipient_email="ALICE@example.com"))

        await self.service.create_shipment(ALICE, payload)

        self.repository.create.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,repo_method,args",
        [
            ("update_delivery_status", "update_status", (5, DeliveryStatus.DELIVERED)),
            ("touch_timestamp", "touch_timestamp", (5,)),
            ("delete_shipment", "delete", (5,)),
        ],
    )
    async def test_zero_rows_is_not_found(self, method, repo_method, args):
        getattr(self.repository, repo_method).return_value = 0

        with pytest.raises(NotFoundError):
            await getattr(self.service, method)(ALICE, *args)
        self.notifier.report_usage.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_status_reports_path(self):
        self.repository.update_status.return_value = 1

        result = await self.service.update_delivery_status(ALICE, 5, DeliveryStatus.DELIVERED)

        assert result.message == "Delivery status updated successfully"
        self.repository.update_status.assert_awaited_once_with(
            "alice@example.com", 5, DeliveryStatus.DELIVERED
        )
        self.notifier.report_usage.assert_called_once_with("/api/shipments/5/delivery-status")

    @pytest.mark.asyncio
    async def test_delete_all_with_nothing_to_delete(self):
        self.repository.delete_all.return_value = 0

        with pytest.raises(NotFoundError) as exc_info:
            await self.service.delete_all_shipments(ALICE)
        assert exc_info.value.message == "No shipments to delete"

    @pytest.mark.asyncio
    async def test_delete_all(self):
        self.repository.delete_all.return_value = 3

        result = await self.service.delete_all_shipments(ALICE)

        assert result.message == "All shipments deleted successfully"

    @pytest.mark.asyncio
    async def test_works_without_notifier(self):
        self.repository.delete.return_value = 1
        service = ShipmentService(self.repository)

        result = await service.delete_shipment(ALICE, 1)

        assert result.message == "Shipment deleted successfully"
