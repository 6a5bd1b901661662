"""
Shipment Service Backend - GraphQL Read API
============================================

What:  Read-only GraphQL view over the caller's shipments at /graphql.
How:   strawberry-graphql schema mounted through GraphQLRouter. The
       context getter is a FastAPI dependency, so the bearer token is
       resolved (and auth errors rendered by the global handlers) before
       any resolver runs. Every resolver goes through ShipmentService with
       the caller's Identity; there is no way to name another owner.

Schema:
    type Query {
        shipments: [Shipment!]!
        shipmentById(id: Int!): Shipment          # error "Shipment not found"
        shipmentsByCountry(country: String!): [Shipment!]!
        totalShipments: Int!
        statistics: Statistics!
    }

Shipment objects nest `recipient` and `address` sub-objects.
"""

from typing import Any, Dict, List, Optional

import strawberry
from fastapi import Depends
from strawberry.fastapi import GraphQLRouter
from strawberry.schema.config import StrawberryConfig
from strawberry.types import Info

from app.dependencies import get_current_identity, get_shipment_service
from app.exceptions import NotFoundError
from app.models.shipment import Shipment
from app.services.identity_service import Identity
from app.services.shipment_service import ShipmentService

GRAPHQL_ENDPOINT = "/graphql"


@strawberry.type
class Recipient:
    name: str
    email: str
    phone: str


@strawberry.type
class Address:
    delivery_address: str
    postal_number: int
    city: str
    country: str


@strawberry.type(name="Shipment")
class ShipmentType:
    id: int
    order_id: str
    recipient: Recipient
    address: Address
    delivery_status: str
    weight: float
    estimated_cost: float
    tracking_number: Optional[str]

    @classmethod
    def from_model(cls, shipment: Shipment) -> "ShipmentType":
        return cls(
            id=shipment.id,
            order_id=shipment.order_id,
            recipient=Recipient(
                name=shipment.recipient_name,
                email=shipment.recipient_email,
                phone=shipment.recipient_phone,
            ),
            address=Address(
                delivery_address=shipment.delivery_address,
                postal_number=shipment.postal_number,
                city=shipment.city,
                country=shipment.country,
            ),
            delivery_status=shipment.delivery_status,
            weight=shipment.weight,
            estimated_cost=shipment.estimated_cost,
            tracking_number=shipment.tracking_number,
        )


@strawberry.type
class Statistics:
    total_shipments: int
    delivered_shipments: int
    in_transit_shipments: int
    ready_for_pickup: int
    top_countries: List[str]


def _caller(info: Info) -> tuple:
    return info.context["identity"], info.context["service"]


@strawberry.type
class Query:
    @strawberry.field
    async def shipments(self, info: Info) -> List[ShipmentType]:
        identity, service = _caller(info)
        rows = await service.find_shipments(identity, GRAPHQL_ENDPOINT)
        return [ShipmentType.from_model(row) for row in rows]

    @strawberry.field(name="shipmentById")
    async def shipment_by_id(self, info: Info, id: int) -> Optional[ShipmentType]:
        identity, service = _caller(info)
        row = await service.find_shipment_by_id(identity, id, GRAPHQL_ENDPOINT)
        if row is None:
            # Reported in `errors`; absent and foreign ids read the same
            raise NotFoundError()
        return ShipmentType.from_model(row)

    @strawberry.field(name="shipmentsByCountry")
    async def shipments_by_country(self, info: Info, country: str) -> List[ShipmentType]:
        identity, service = _caller(info)
        rows = await service.find_shipments_by_country(identity, country, GRAPHQL_ENDPOINT)
        return [ShipmentType.from_model(row) for row in rows]

    @strawberry.field(name="totalShipments")
    async def total_shipments(self, info: Info) -> int:
        identity, service = _caller(info)
        return await service.count_shipments(identity, GRAPHQL_ENDPOINT)

    @strawberry.field
    async def statistics(self, info: Info) -> Statistics:
        identity, service = _caller(info)
        stats = await service.shipment_statistics(identity, GRAPHQL_ENDPOINT)
        return Statistics(**stats.model_dump())


schema = strawberry.Schema(query=Query, config=StrawberryConfig(auto_camel_case=False))


async def get_graphql_context(
    identity: Identity = Depends(get_current_identity),
    service: ShipmentService = Depends(get_shipment_service),
) -> Dict[str, Any]:
    return {"identity": identity, "service": service}


router = GraphQLRouter(schema, context_getter=get_graphql_context)
