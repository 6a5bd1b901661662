"""
Shipment Service Backend - Application Package
===============================================

Shipment-tracking record service: a per-user store of shipment records
behind a REST API and a read-only GraphQL view.

Layers:

    ┌─────────────────────────────────────┐
    │   Routes + Middleware (HTTP)        │  ← auth dependency, status codes
    ├─────────────────────────────────────┤
    │   Services (business rules)         │  ← ownership, not-found mapping
    ├─────────────────────────────────────┤
    │   Repository (scoped persistence)   │  ← every query filtered by owner
    ├─────────────────────────────────────┤
    │   Models & Schemas / Database       │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
