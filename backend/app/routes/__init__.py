# Routes package init
"""
Shipment Service Backend - API Routes Package
==============================================

Route Inventory:
    - shipments.py:  /api/shipments          (owner-scoped CRUD)
    - graphql.py:    /graphql                (read-only GraphQL view)
    - statistics.py: GET /api/statistics     (proxy to statistics service)
    - health.py:     GET /api/health         (database check, no auth)

Routes stay thin: resolve the caller, let FastAPI validate input, call
ShipmentService, return its payload. Errors are rendered by the global
exception handlers registered in app.main.
"""
