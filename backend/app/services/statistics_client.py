"""
Shipment Service Backend - Statistics Service Client
=====================================================

What:  Fetches aggregated shipment statistics from the remote statistics
       service for GET /api/statistics.
How:   httpx GET with a bounded timeout. Transport-level failures (connect
       errors, timeouts) are retried with tenacity using exponential backoff
       and jitter; HTTP error statuses are not retried.
Who:   Created at startup, stored on app.state, used by routes/statistics.py.

This client is on the request path and the caller waits for it, unlike the
usage pings in usage_notifier.py, which never retry and never block.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import Settings, settings as default_settings
from app.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


class StatisticsClient:
    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        max_attempts: int = 3,
        min_wait: float = 0.5,
        max_wait: float = 4.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self._max_attempts = max_attempts
        self._min_wait = min_wait
        self._max_wait = max_wait
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "StatisticsClient":
        config = config or default_settings
        return cls(
            url=config.statistics_service_url,
            timeout=config.statistics_timeout_seconds,
            max_attempts=config.retry_max_attempts,
            min_wait=config.retry_min_wait,
            max_wait=config.retry_max_wait,
        )

    async def fetch_statistics(self) -> Dict[str, Any]:
        """
        Returns the statistics document served by the remote service.

        Raises:
            UpstreamServiceError: after the last failed attempt, on an error
                status, or when the body is not a JSON object.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential_jitter(initial=self._min_wait, max=self._max_wait),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._client.get(self.url)
        except RetryError as e:
            last = e.last_attempt.exception()
            logger.error("Statistics service unreachable after retries: %s", str(last))
            raise UpstreamServiceError(
                context={"url": self.url, "error_type": type(last).__name__}
            ) from e
        except httpx.HTTPError as e:
            logger.error("Statistics request failed: %s", str(e))
            raise UpstreamServiceError(
                context={"url": self.url, "error_type": type(e).__name__}
            ) from e

        if response.is_error:
            logger.error(
                "Statistics service returned HTTP %d", response.status_code
            )
            raise UpstreamServiceError(
                context={"url": self.url, "status_code": response.status_code}
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamServiceError(context={"url": self.url, "reason": "invalid JSON"}) from e
        if not isinstance(payload, dict):
            raise UpstreamServiceError(context={"url": self.url, "reason": "unexpected payload"})
        return payload

    async def aclose(self) -> None:
        await self._client.aclose()
