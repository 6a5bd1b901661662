"""
Shipment Service Backend - Statistics Proxy Route
==================================================

GET /api/statistics relays the aggregate document of the remote statistics
service. The caller must be authenticated; when STATISTICS_REQUIRED_ROLE is
set, the token's role claim must match it.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.config import settings
from app.dependencies import get_statistics_client, require_role
from app.schemas.common import ErrorResponse
from app.services.identity_service import Identity
from app.services.statistics_client import StatisticsClient

router = APIRouter(prefix="/api", tags=["Statistics"])


@router.get(
    "/statistics",
    responses={
        401: {"description": "Missing or expired access token", "model": ErrorResponse},
        403: {"description": "Invalid token or insufficient role", "model": ErrorResponse},
        503: {"description": "Statistics service unavailable", "model": ErrorResponse},
    },
    summary="Fetch shipment statistics",
)
async def get_statistics(
    identity: Identity = Depends(require_role(lambda: settings.statistics_required_role)),
    client: StatisticsClient = Depends(get_statistics_client),
) -> Dict[str, Any]:
    return await client.fetch_statistics()
