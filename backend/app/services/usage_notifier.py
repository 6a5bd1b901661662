"""
Shipment Service Backend - Audit / Usage Notifier
==================================================

What:  Two best-effort side channels:
       1. record_request(): append (method, endpoint) to the command_log table
       2. report_usage():   POST {"endpoint": ...} to the remote stats service
How:   Each call schedules a detached asyncio task and returns immediately.
       The caller's response never waits on, or learns about, the outcome.
Who:   CommandLogMiddleware calls record_request() for every tracked request;
       ShipmentService calls report_usage() after each successful operation.

Failure policy:
    Every failure is logged here and then dropped. There is no retry, no
    queue bound to fill, and no effect on the request that triggered it.
    The stats ping uses a short fixed timeout so a hung collaborator only
    costs one background task, never a request worker.

Lifecycle:
    Pending tasks are kept in a set until they finish (the event loop only
    holds weak references to tasks). aclose() waits for them, bounded by a
    timeout, then closes the shared httpx client.
"""

import asyncio
import logging
from typing import Coroutine, Optional, Set

import httpx

from app.config import Settings, settings as default_settings
from app.database import Database
from app.models.command_log import CommandLog

logger = logging.getLogger(__name__)


class UsageNotifier:
    """Fire-and-forget request log and usage ping dispatcher."""

    def __init__(
        self,
        database: Optional[Database],
        stats_url: Optional[str],
        timeout: float = 2.0,
        command_log_enabled: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            database:            Store for the command log (None disables it)
            stats_url:           Remote stats endpoint (None or "" disables pings)
            timeout:             Per-ping timeout in seconds
            command_log_enabled: Switch for the request log sink
            transport:           Optional httpx transport (tests use MockTransport)
        """
        self._database = database
        self._stats_url = stats_url
        self._timeout = timeout
        self._command_log_enabled = command_log_enabled and database is not None
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls, database: Optional[Database], config: Optional[Settings] = None
    ) -> "UsageNotifier":
        config = config or default_settings
        return cls(
            database=database,
            stats_url=config.stats_service_url,
            timeout=config.stats_timeout_seconds,
            command_log_enabled=config.command_log_enabled,
        )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    # ── Public API (non-blocking) ─────────────────────────────────────────

    def record_request(self, method: str, endpoint: str) -> None:
        if not self._command_log_enabled:
            return
        self._spawn(self._write_command_log(method, endpoint), "command-log")

    def report_usage(self, endpoint: str) -> None:
        if not self._stats_url:
            return
        self._spawn(self._send_usage_ping(endpoint), "usage-ping")

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Waits for in-flight side-channel tasks; unfinished ones are left running."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("%d usage notifications still pending after drain", len(pending))

    async def aclose(self, timeout: float = 5.0) -> None:
        await self.drain(timeout=timeout)
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── Internals ─────────────────────────────────────────────────────────

    def _spawn(self, coro: Coroutine, name: str) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro, name=name)
        except RuntimeError:
            # No running loop: nothing can be scheduled, drop the notification
            coro.close()
            logger.warning("No running event loop; dropped %s notification", name)
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def _write_command_log(self, method: str, endpoint: str) -> None:
        try:
            async with self._database.session() as session:
                session.add(CommandLog(method=method, endpoint=endpoint))
        except Exception as e:
            logger.warning("Error logging request %s %s: %s", method, endpoint, str(e))

    async def _send_usage_ping(self, endpoint: str) -> None:
        try:
            response = await self._get_client().post(
                self._stats_url, json={"endpoint": endpoint}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to log stat for %s: %s", endpoint, str(e))
        except Exception as e:
            logger.error("Unexpected error logging stat for %s: %s", endpoint, str(e))
