# Middleware package init
"""
Shipment Service Backend - Middleware Package
==============================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Command Log] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Command Log: records method + path of shipment/GraphQL requests before
       the handler runs, so every attempt is logged whatever its outcome
    2. Request ID: correlation ID for log lines and error bodies
    3. Logging: method, path, status and duration per request
    4. GZip / CORS: Starlette built-ins

    Responses travel back through the same chain in reverse.
"""
