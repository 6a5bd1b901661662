"""
Shipment Service Backend - Pydantic Request/Response Schemas
=============================================================

What:  Pydantic models defining the REST contract.
How:   FastAPI validates request bodies against the *Request models and
       serializes responses through the *Response models. Validation
       failures surface as 400 through the handler registered in main.py.

Schemas are separate from the SQLAlchemy model: the create request never
accepts id, created_at or updated_at, whatever the client sends.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.shipment import DeliveryStatus


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ShipmentCreateRequest(BaseModel):
    """
    Body of POST /api/shipments.

    Every field except tracking_number is required. Blank strings count as
    missing (whitespace is stripped before the length check). Unknown keys,
    including client-supplied timestamps, are ignored.
    """

    order_id: str = Field(min_length=1, max_length=100)
    recipient_name: str = Field(min_length=1, max_length=255)
    recipient_email: str = Field(min_length=3, max_length=320)
    recipient_phone: str = Field(min_length=1, max_length=50)
    delivery_address: str = Field(min_length=1, max_length=500)
    postal_number: int = Field(ge=0)
    city: str = Field(min_length=1, max_length=120)
    country: str = Field(min_length=1, max_length=120)
    delivery_status: DeliveryStatus
    weight: float = Field(gt=0, allow_inf_nan=False, description="Weight of the shipment in kg")
    estimated_cost: float = Field(
        ge=0, allow_inf_nan=False, description="Estimated cost of delivery"
    )
    tracking_number: Optional[str] = Field(default=None, max_length=100)

    model_config = {"str_strip_whitespace": True, "extra": "ignore"}

    @field_validator("recipient_email")
    @classmethod
    def validate_recipient_email(cls, v: str) -> str:
        email = normalize_email(v)
        local, _, domain = email.partition("@")
        if not local or not domain:
            raise ValueError("recipient_email must be an email address")
        return email

    @field_validator("tracking_number")
    @classmethod
    def blank_tracking_number_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class VerifyShipmentRequest(BaseModel):
    """Body of POST /api/shipments/verify."""

    order_id: str = Field(min_length=1, max_length=100)

    model_config = {"str_strip_whitespace": True}


class DeliveryStatusUpdateRequest(BaseModel):
    """Body of PUT /api/shipments/{id}/delivery-status."""

    delivery_status: DeliveryStatus


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ShipmentResponse(BaseModel):
    """Full representation of a shipment row."""

    id: int
    order_id: str
    recipient_name: str
    recipient_email: str
    recipient_phone: str
    delivery_address: str
    postal_number: int
    city: str
    country: str
    delivery_status: str
    tracking_number: Optional[str] = None
    weight: float
    estimated_cost: float
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Timestamps are written in UTC; some drivers hand them back naive
        return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v


class ShipmentCreatedResponse(BaseModel):
    """201 body of POST /api/shipments: `{"message", "shipmentId"}`."""

    message: str = "Shipment created successfully"
    shipment_id: int = Field(serialization_alias="shipmentId")


class VerifyShipmentResponse(BaseModel):
    exists: bool


class MessageResponse(BaseModel):
    message: str


class ShipmentStatistics(BaseModel):
    """Per-owner aggregates served through GraphQL `statistics`."""

    total_shipments: int
    delivered_shipments: int
    in_transit_shipments: int
    ready_for_pickup: int
    top_countries: List[str]
