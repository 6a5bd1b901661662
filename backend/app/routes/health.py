"""
Shipment Service Backend - Health Check Route
==============================================

What:  GET /api/health for container health checks and load balancers.
How:   No authentication; runs SELECT 1 through the Database handle.

    UP   → 200, database reachable
    DOWN → 503, database unreachable
"""

import logging
import time

from fastapi import APIRouter, Request, Response

from app import __version__
from app.database import Database
from app.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/api/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Check the health of the service",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    database: Database = request.app.state.database

    if await database.ping():
        return HealthResponse(
            status="UP",
            message="Service is healthy",
            version=__version__,
            database="connected",
            uptime_seconds=round(time.time() - _start_time, 2),
        )

    response.status_code = 503
    return HealthResponse(
        status="DOWN",
        message="Database is unreachable",
        version=__version__,
        database="disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
