"""
Shipment Service Backend - Shipment Route Handlers
===================================================

What:  REST surface for shipments under /api/shipments.
How:   Each handler resolves the caller (get_current_identity), lets FastAPI
       validate path/body against the schemas, and delegates to
       ShipmentService. Errors are rendered by the global handlers.

Route Inventory:
    GET    /api/shipments                        list caller's shipments
    GET    /api/shipments/{order_id}             one shipment by order id
    POST   /api/shipments                        create (201)
    POST   /api/shipments/verify                 {exists: bool}
    PUT    /api/shipments/{id}/delivery-status   change status
    PUT    /api/shipments/{id}/timestamp         advance updated_at
    DELETE /api/shipments/{id}                   delete one
    DELETE /api/shipments                        delete all of caller's
"""

import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, Path

from app.dependencies import get_current_identity, get_shipment_service
from app.schemas.common import ErrorResponse
from app.schemas.shipment import (
    DeliveryStatusUpdateRequest,
    MessageResponse,
    ShipmentCreatedResponse,
    ShipmentCreateRequest,
    ShipmentResponse,
    VerifyShipmentRequest,
    VerifyShipmentResponse,
)
from app.services.identity_service import Identity
from app.services.shipment_service import ShipmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/shipments", tags=["Shipments"])

AUTH_RESPONSES = {
    401: {"description": "Missing or expired access token", "model": ErrorResponse},
    403: {"description": "Invalid access token", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}
NOT_FOUND = {404: {"description": "Shipment not found", "model": ErrorResponse}}
BAD_REQUEST = {400: {"description": "Missing or invalid field", "model": ErrorResponse}}

ShipmentId = Annotated[int, Path(ge=1, description="Server-assigned shipment id")]


@router.get(
    "",
    response_model=List[ShipmentResponse],
    responses=AUTH_RESPONSES,
    summary="Get all shipments for the authenticated user",
)
async def get_all_shipments(
    identity: Identity = Depends(get_current_identity),
    service: ShipmentService = Depends(get_shipment_service),
) -> List[ShipmentResponse]:
    return await service.list_shipments(identity)


@router.get(
    "/{order_id}",
    response_model=ShipmentResponse,
    responses={**AUTH_RESPONSES, **NOT_FOUND},
    summary="Get a shipment by order id",
)
async def get_shipment_by_order_id(
    order_id: str,
    identity: Identity = Depends(get_current_identity),
    service: ShipmentService = Depends(get_shipment_service),
) -> ShipmentResponse:
    return await service.get_shipment(identity, order_id)


@router.post(
    "",
    status_code=201,
    response_model=ShipmentCreatedResponse,
    responses={**AUTH_RESPONSES, **BAD_REQUEST},
    summary="Create a new shipment",
    description=(
        "Creates a shipment owned by the authenticated user. recipient_email "
        "must be the caller's own email. tracking_number is optional."
    ),
)
async def create_shipment(
    payload: ShipmentCreateRequest,
    identity: Identity = Depends(get_current_identity),
    service: ShipmentService = Depends(get_shipment_service),
) -> ShipmentCreatedResponse:
    return await service.create_shipment(identity, payload)


@router.post(
    "/verify",
    response_model=VerifyShipmentResponse,
    responses={**AUTH_RESPONSES, **BAD_REQUEST},
    summary="Check whether the caller has a shipment with this order id",
)
async def verify_shipment(
    payload: VerifyShipmentRequest,
    identity: Identity = Depends(get_current_identity),
    service: ShipmentService = Depends(get_shipment_service),
) -> VerifyShipmentResponse:
    return await service.verify_shipment(identity, payload.order_id)


@router.put(
    "/{shipment_id}/delivery-status",
    response_model=MessageResponse,
    responses={**AUTH_RESPONSES, **BAD_REQUEST, **NOT_FOUND},
    summary="Update the delivery status of a shipment",
)
async def update_delivery_status(
    shipment_id: ShipmentId,
    payload: DeliveryStatusUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    service: ShipmentService = Depends(get_shipment_service),
) -> MessageResponse:
    return await service.update_delivery_status(identity, shipment_id, payload.delivery_status)


@router.put(
    "/{shipment_id}/timestamp",
    response_model=MessageResponse,
    responses={**AUTH_RESPONSES, **NOT_FOUND},
    summary="Set updated_at of a shipment to the current time",
)
async def update_timestamp(
    shipment_id: ShipmentId,
    identity: Identity = Depends(get_current_identity),
    service: ShipmentService = Depends(get_shipment_service),
) -> MessageResponse:
    return await service.touch_timestamp(identity, shipment_id)


@router.delete(
    "/{shipment_id}",
    response_model=MessageResponse,
    responses={**AUTH_RESPONSES, **NOT_FOUND},
    summary="Delete a shipment",
)
async def delete_shipment(
    shipment_id: ShipmentId,
    identity: Identity = Depends(get_current_identity),
    service: ShipmentService = Depends(get_shipment_service),
) -> MessageResponse:
    return await service.delete_shipment(identity, shipment_id)


@router.delete(
    "",
    response_model=MessageResponse,
    responses={**AUTH_RESPONSES, **NOT_FOUND},
    summary="Delete all shipments of the authenticated user",
)
async def delete_all_shipments(
    identity: Identity = Depends(get_current_identity),
    service: ShipmentService = Depends(get_shipment_service),
) -> MessageResponse:
    return await service.delete_all_shipments(identity)
