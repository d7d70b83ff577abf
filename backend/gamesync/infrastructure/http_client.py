"""Resilient HTTP Client — wraps httpx.AsyncClient with retry, backoff, and Retry-After.

Invariants:
    - Transport errors (connect, read, timeout): retried up to max_retries, then re-raised
    - Retryable statuses (429, 5xx): retried with backoff; the last response is returned
    - Any other status is returned immediately, no retry (401/403 never retried)
    - Callers map responses and httpx errors to their own domain errors;
      provider_get() does that mapping for metadata providers

Design Decisions:
    - One shared AsyncClient per adapter: connection pooling across a whole sync
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
    - transport injectable so tests drive the client through httpx.MockTransport
"""

import asyncio
import logging
import random
from typing import Any

import httpx

from gamesync.core.errors import MetadataApiError, MetadataRateLimitError

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


class ResilientHttpClient:
    """httpx wrapper with bounded exponential backoff."""

    def __init__(
        self,
        name: str,
        *,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 30_000,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.name = name
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.client = httpx.AsyncClient(
            timeout=timeout_seconds,
            headers=headers,
            transport=transport,
            follow_redirects=True,
        )

    async def get(
        self, url: str, *, params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """GET with retry on transport errors and retryable statuses."""
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.get(url, params=params)
            except httpx.TransportError as e:
                if attempt >= self.max_retries:
                    raise
                delay = self._backoff(attempt)
                logger.warning(
                    f"{self.name}: transport error, retry after {delay}ms: {e}",
                    extra={"provider_id": self.name, "attempt": attempt + 1},
                )
                await asyncio.sleep(delay / 1000)
                continue

            if response.status_code not in RETRYABLE_STATUSES or attempt >= self.max_retries:
                return response
            delay = self._retry_after(response) or self._backoff(attempt)
            logger.warning(
                f"{self.name}: HTTP {response.status_code}, retry after {delay}ms",
                extra={"provider_id": self.name, "attempt": attempt + 1},
            )
            await asyncio.sleep(delay / 1000)

    async def aclose(self) -> None:
        await self.client.aclose()

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _retry_after(self, response: httpx.Response) -> int | None:
        """Retry-After header in milliseconds, capped at max_delay_ms."""
        delay = _header_retry_after(response)
        return min(delay, self.max_delay_ms) if delay is not None else None


async def provider_get(
    http: ResilientHttpClient, provider_id: str, url: str,
    params: dict[str, Any] | None = None,
) -> httpx.Response | None:
    """GET for metadata providers: rate-limit and outage signals raise, other misses return None.

    MetadataRateLimitError / MetadataApiError are routed by the pipeline's error
    handling; a 404 or other client error simply means "no data".
    """
    try:
        response = await http.get(url, params=params)
    except httpx.HTTPError as e:
        raise MetadataApiError(provider_id, f"transport error: {e}")
    if response.status_code == 429:
        raise MetadataRateLimitError(
            provider_id, 429, retry_after_ms=_header_retry_after(response),
        )
    if response.status_code >= 500:
        raise MetadataApiError(
            provider_id, f"HTTP {response.status_code}", response.status_code,
        )
    if not response.is_success:
        return None
    return response


def _header_retry_after(response: httpx.Response) -> int | None:
    val = response.headers.get("retry-after")
    return int(val) * 1000 if val and val.isdigit() else None
