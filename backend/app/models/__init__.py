"""
ORM models. Importing this package registers every table on Base.metadata.
"""

from app.models.command_log import CommandLog
from app.models.shipment import DeliveryStatus, Shipment

__all__ = ["CommandLog", "DeliveryStatus", "Shipment"]
