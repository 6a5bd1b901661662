"""
Shipment Service Backend - FastAPI Dependencies
================================================

What:  Wires process-scoped resources (stored on app.state at startup) into
       per-request objects for the route handlers.
How:   FastAPI's Depends() system. Authentication dependencies run before
       the handler body is touched, so auth failures short-circuit every
       operation before validation or persistence.

Dependency graph:
    get_current_identity ─┐
    get_db_session ──▶ get_shipment_repository ─┐
    get_usage_notifier ─────────────────────────┴─▶ get_shipment_service
"""

from typing import Callable, Optional, Union

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.exceptions import PermissionDeniedError
from app.services.identity_service import Identity, IdentityResolver
from app.services.shipment_repository import ShipmentRepository
from app.services.shipment_service import ShipmentService
from app.services.statistics_client import StatisticsClient
from app.services.usage_notifier import UsageNotifier


def get_identity_resolver(request: Request) -> IdentityResolver:
    return request.app.state.identity_resolver


async def get_current_identity(
    authorization: Optional[str] = Header(default=None),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Identity:
    """Resolves the bearer credential; raises AuthMissing/Expired/InvalidError."""
    return resolver.resolve(authorization)


def require_role(role: Union[str, Callable[[], Optional[str]], None]) -> Callable:
    """
    Builds a dependency that admits only callers whose `role` claim equals
    `role`. `role` may be a zero-argument callable, evaluated per request so
    the requirement can come from settings. A falsy role admits any
    authenticated caller.
    """

    async def _check(identity: Identity = Depends(get_current_identity)) -> Identity:
        required = role() if callable(role) else role
        if required and identity.role != required:
            raise PermissionDeniedError(required_role=required)
        return identity

    return _check


def get_usage_notifier(request: Request) -> Optional[UsageNotifier]:
    return getattr(request.app.state, "usage_notifier", None)


def get_statistics_client(request: Request) -> StatisticsClient:
    return request.app.state.statistics_client


def get_shipment_repository(
    db: AsyncSession = Depends(get_db_session),
) -> ShipmentRepository:
    return ShipmentRepository(db)


def get_shipment_service(
    repository: ShipmentRepository = Depends(get_shipment_repository),
    notifier: Optional[UsageNotifier] = Depends(get_usage_notifier),
) -> ShipmentService:
    return ShipmentService(repository, notifier)
