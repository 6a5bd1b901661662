"""
Shipment Service Backend - Request Log Model
=============================================

What:  ORM model for the append-only `command_log` table.
Who:   Written by UsageNotifier.record_request(); never read by the API.

One row per inbound request under the tracked prefixes: the HTTP method and
the endpoint path exactly as requested, plus the time it was recorded.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class CommandLog(Base):
    __tablename__ = "command_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    method: Mapped[str] = mapped_column(String(10), nullable=False)

    # Full request path, e.g. /api/shipments/ORD1
    endpoint: Mapped[str] = mapped_column(String(512), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<CommandLog(id={self.id}, method='{self.method}', endpoint='{self.endpoint}')>"
