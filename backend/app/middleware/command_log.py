"""
Shipment Service Backend - Command Log Middleware
==================================================

What:  Records (method, path) of every request to the shipment REST and
       GraphQL surfaces in the `command_log` table.
How:   Hands the pair to UsageNotifier.record_request() before the handler
       runs. The write happens in a detached task with its own session, so
       it is recorded whether the request later succeeds or fails, and a
       failed write never changes the response.
"""

from typing import Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

LOGGED_PREFIXES: Tuple[str, ...] = ("/api/shipments", "/graphql")


class CommandLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        notifier = getattr(request.app.state, "usage_notifier", None)

        if notifier is not None and path.startswith(LOGGED_PREFIXES):
            notifier.record_request(request.method, path)

        return await call_next(request)
