"""
Endpoint pool and fallback executor.

Runs one operation against an ordered ring of interchangeable RPC endpoints,
starting at the last endpoint that succeeded and moving to the next one on
failure. Each endpoint is tried at most once per call, with a fixed backoff
between attempts.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

import httpx

from backend_trustscan.core.exceptions import AllEndpointsExhausted
from backend_trustscan.rpc.client import RpcEndpoint
from backend_trustscan.trustscan_logging import get_logger

logger = get_logger(__name__)

DEFAULT_BACKOFF_SEC = 1.0

E = TypeVar("E")
T = TypeVar("T")


def _endpoint_label(endpoint: Any) -> str:
    return str(getattr(endpoint, "display_url", None) or endpoint)


class EndpointPool(Generic[E]):
    """
    Ordered endpoint ring with a sticky "last known good" index.

    The index is shared by all calls on the pool. Concurrent calls may race on
    it; every call still walks the full ring, so a stale index only changes
    which endpoint is tried first.
    """

    def __init__(
        self,
        endpoints: Sequence[E],
        *,
        backoff_sec: float = DEFAULT_BACKOFF_SEC,
        start_index: int = 0,
    ) -> None:
        if not endpoints:
            raise ValueError("endpoints must be non-empty")
        if backoff_sec < 0:
            raise ValueError("backoff_sec must be >= 0")
        self._endpoints: tuple[E, ...] = tuple(endpoints)
        self._backoff_sec = backoff_sec
        # seeds the sticky index, e.g. from a previous pool over the same urls
        self._current = start_index % len(self._endpoints)

    @classmethod
    def from_urls(
        cls,
        urls: Sequence[str],
        *,
        timeout_sec: float = 15.0,
        backoff_sec: float = DEFAULT_BACKOFF_SEC,
        start_index: int = 0,
        client: httpx.AsyncClient | None = None,
    ) -> "EndpointPool[RpcEndpoint]":
        """Build a pool of RpcEndpoint handles; pass `client` to share one httpx client."""
        endpoints = [RpcEndpoint(u, client=client, timeout_sec=timeout_sec) for u in urls]
        return cls(endpoints, backoff_sec=backoff_sec, start_index=start_index)  # type: ignore[return-value]

    @property
    def endpoints(self) -> tuple[E, ...]:
        return self._endpoints

    @property
    def current_index(self) -> int:
        return self._current

    def __len__(self) -> int:
        return len(self._endpoints)

    async def execute(self, operation: Callable[[E], Awaitable[T]]) -> T:
        """
        Run `operation(endpoint)` with fallback across the ring.

        Args:
            operation: async callable taking one endpoint handle.

        Returns:
            The first successful result. The endpoint that produced it becomes
            the starting point for the next call.

        Raises:
            AllEndpointsExhausted: every endpoint failed; carries the last error
                and the number of attempts (always the pool size).
        """
        n = len(self._endpoints)
        start = self._current
        last_error: Exception | None = None

        for attempt in range(n):
            idx = (start + attempt) % n
            endpoint = self._endpoints[idx]
            try:
                result = await operation(endpoint)
            except Exception as e:
                last_error = e
                logger.warning(
                    "endpoint_attempt_failed",
                    endpoint=_endpoint_label(endpoint),
                    attempt=attempt + 1,
                    max_attempts=n,
                    error=str(e) or type(e).__name__,
                )
                if attempt + 1 < n:
                    await asyncio.sleep(self._backoff_sec)
                continue
            if idx != self._current:
                logger.info("endpoint_switched", endpoint=_endpoint_label(endpoint), index=idx)
            self._current = idx
            return result

        logger.error(
            "endpoints_exhausted",
            attempts=n,
            error=str(last_error) if last_error else None,
        )
        raise AllEndpointsExhausted(last_error, n)

    async def aclose(self) -> None:
        """Close endpoint handles that own network clients."""
        for endpoint in self._endpoints:
            close = getattr(endpoint, "aclose", None)
            if close is not None:
                await close()

    async def __aenter__(self) -> "EndpointPool[E]":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
