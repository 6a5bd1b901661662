# Services package init
"""
Shipment Service Backend - Services Layer
==========================================

Service Inventory:
    - IdentityResolver:   bearer token → Identity (owner email, role)
    - ShipmentRepository: owner-scoped queries on the shipments table
    - ShipmentService:    per-operation rules and outcome mapping
    - UsageNotifier:      fire-and-forget command log + usage pings
    - StatisticsClient:   retrying httpx client for the statistics service
"""
