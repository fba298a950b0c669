"""
Pytest fixtures for TrustScan tests. RPC endpoints are in-memory fakes; HTTP
providers use httpx.MockTransport, so nothing touches the network.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from backend_trustscan.config.settings import Settings
from backend_trustscan.rpc.endpoint_pool import EndpointPool
from tests.fakes import FakeRpc


@pytest.fixture
def make_pool():
    """Factory: EndpointPool over the given fakes with zero backoff."""

    def _make(*endpoints: FakeRpc, backoff_sec: float = 0.0) -> EndpointPool:
        return EndpointPool(list(endpoints), backoff_sec=backoff_sec)

    return _make


@pytest.fixture
def settings() -> Settings:
    return Settings(
        rpc_endpoints=("http://rpc.invalid",),
        rpc_backoff_sec=0.0,
        holder_batch_delay_sec=0.0,
        analysis_timeout_sec=10.0,
        metadata_timeout_sec=1.0,
    )


@pytest.fixture
def offline_http_client():
    """httpx client whose every request returns 404 (all metadata providers miss); closed on teardown."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "not found"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    yield client
    asyncio.run(client.aclose())
