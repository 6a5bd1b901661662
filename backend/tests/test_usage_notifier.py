"""
Shipment Service Backend - Usage Notifier Tests
================================================

What we test:
    ✅ record_request() persists a command_log row in the background
    ✅ report_usage() POSTs {"endpoint": ...} to the stats collaborator
    ✅ Collaborator errors, timeouts and DB failures are swallowed
    ✅ Disabled sinks schedule nothing
    ✅ Calls outside an event loop are dropped, not raised
"""

import asyncio
import json

import httpx
import pytest
from sqlalchemy import select

from app.database import Database
from app.models.command_log import CommandLog
from app.services.usage_notifier import UsageNotifier


async def _command_log_rows(database):
    async with database.session() as session:
        result = await session.execute(select(CommandLog).order_by(CommandLog.id))
        return list(result.scalars().all())


class TestRecordRequest:
    @pytest.mark.asyncio
    async def test_writes_command_log_row(self, database):
        notifier = UsageNotifier(database=database, stats_url=None)

        notifier.record_request("GET", "/api/shipments/ORD1")
        await notifier.drain(timeout=5)

        rows = await _command_log_rows(database)
        assert [(r.method, r.endpoint) for r in rows] == [("GET", "/api/shipments/ORD1")]
        assert rows[0].created_at is not None

    @pytest.mark.asyncio
    async def test_disabled_sink_writes_nothing(self, database):
        notifier = UsageNotifier(database=database, stats_url=None, command_log_enabled=False)

        notifier.record_request("GET", "/api/shipments")

        assert notifier.pending == 0
        assert await _command_log_rows(database) == []

    @pytest.mark.asyncio
    async def test_database_failure_is_swallowed(self, tmp_path, caplog):
        unreachable = Database(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}")
        notifier = UsageNotifier(database=unreachable, stats_url=None)

        notifier.record_request("DELETE", "/api/shipments")
        await notifier.drain(timeout=5)

        assert notifier.pending == 0
        assert "Error logging request DELETE /api/shipments" in caplog.text
        await unreachable.dispose()


class TestReportUsage:
    @pytest.mark.asyncio
    async def test_posts_endpoint(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append((request.method, str(request.url), json.loads(request.content)))
            return httpx.Response(200)

        notifier = UsageNotifier(
            database=None,
            stats_url="http://stats.test/stats",
            transport=httpx.MockTransport(handler),
        )
        notifier.report_usage("/api/shipments")
        await notifier.aclose()

        assert received == [("POST", "http://stats.test/stats", {"endpoint": "/api/shipments"})]

    @pytest.mark.asyncio
    async def test_returns_before_ping_completes(self):
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return httpx.Response(200)

        notifier = UsageNotifier(
            database=None,
            stats_url="http://stats.test/stats",
            transport=httpx.MockTransport(handler),
        )
        notifier.report_usage("/api/shipments")

        assert notifier.pending == 1
        release.set()
        await notifier.aclose()
        assert notifier.pending == 0

    @pytest.mark.asyncio
    async def test_error_status_is_swallowed(self, caplog):
        notifier = UsageNotifier(
            database=None,
            stats_url="http://stats.test/stats",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )
        notifier.report_usage("/api/shipments")
        await notifier.aclose()

        assert "Failed to log stat for /api/shipments" in caplog.text

    @pytest.mark.asyncio
    async def test_connection_error_is_swallowed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        notifier = UsageNotifier(
            database=None,
            stats_url="http://stats.test/stats",
            transport=httpx.MockTransport(handler),
        )
        notifier.report_usage("/api/shipments")
        await notifier.aclose()

        assert notifier.pending == 0

    @pytest.mark.asyncio
    async def test_no_url_schedules_nothing(self):
        notifier = UsageNotifier(database=None, stats_url="")

        notifier.report_usage("/api/shipments")

        assert notifier.pending == 0


class TestWithoutEventLoop:
    def test_report_outside_loop_is_dropped(self):
        notifier = UsageNotifier(database=None, stats_url="http://stats.test/stats")

        notifier.report_usage("/api/shipments")

        assert notifier.pending == 0
