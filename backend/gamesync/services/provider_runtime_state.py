"""Provider Runtime State — shared rate-limit clocks, error counters, rate-limited set.

Invariants:
    - One instance per pipeline; injected, never a module-level singleton
    - Every read-modify-write happens under one asyncio.Lock, so concurrent
      enrichments for different accounts see consistent counters
    - A provider marked rate limited stays marked for the lifetime of this
      instance; only reset() clears it

Design Decisions:
    - wait_turn() reserves the next slot under the lock and sleeps outside it:
      concurrent callers queue behind each other without holding the lock while idle
    - clock injectable so tests need no real sleeps
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class ProviderRuntimeState:
    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_request: dict[str, float] = {}
        self._consecutive_errors: dict[str, int] = {}
        self._rate_limited: set[str] = set()

    async def wait_turn(self, provider_id: str, delay_ms: int) -> None:
        """Sleep until delay_ms has passed since this provider's previous call."""
        async with self._lock:
            now = self._clock()
            last = self._last_request.get(provider_id)
            start = now if last is None else max(now, last + delay_ms / 1000)
            self._last_request[provider_id] = start
        wait = start - now
        if wait > 0:
            await self._sleep(wait)

    async def record_success(self, provider_id: str) -> None:
        async with self._lock:
            self._consecutive_errors[provider_id] = 0

    async def record_error(self, provider_id: str, max_consecutive_errors: int) -> bool:
        """Count a failure. Returns True when this failure tripped the threshold."""
        async with self._lock:
            count = self._consecutive_errors.get(provider_id, 0) + 1
            self._consecutive_errors[provider_id] = count
            if count >= max_consecutive_errors and provider_id not in self._rate_limited:
                self._rate_limited.add(provider_id)
                return True
            return False

    async def mark_rate_limited(self, provider_id: str) -> None:
        async with self._lock:
            self._rate_limited.add(provider_id)

    def is_rate_limited(self, provider_id: str) -> bool:
        return provider_id in self._rate_limited

    def consecutive_errors(self, provider_id: str) -> int:
        return self._consecutive_errors.get(provider_id, 0)

    def rate_limited_providers(self) -> frozenset[str]:
        return frozenset(self._rate_limited)

    def reset(self, provider_id: str | None = None) -> None:
        """Clear state for one provider, or for all of them."""
        if provider_id is None:
            self._last_request.clear()
            self._consecutive_errors.clear()
            self._rate_limited.clear()
        else:
            self._last_request.pop(provider_id, None)
            self._consecutive_errors.pop(provider_id, None)
            self._rate_limited.discard(provider_id)
        logger.info(
            "Provider runtime state reset",
            extra={"provider_id": provider_id or "*"},
        )
