"""
Tests for the metadata waterfall and its HTTP providers (httpx.MockTransport).
"""

from __future__ import annotations

import asyncio

import httpx

from backend_trustscan.analytics.metadata_waterfall import (
    BirdeyeProvider,
    CoinGeckoProvider,
    DexScreenerProvider,
    HeliusDasProvider,
    JupiterProvider,
    MetadataWaterfall,
    WellKnownProvider,
    default_providers,
)
from backend_trustscan.core.models import TokenMetadata
from tests.fakes import USDC_MINT, make_pubkey

MINT = make_pubkey(77)


class StubProvider:
    def __init__(self, name, result=None, *, delay=0.0, error=None):
        self.name = name
        self.result = result
        self.delay = delay
        self.error = error
        self.calls = 0

    async def resolve_metadata(self, client, asset_id):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _not_found(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404)


def _resolve(providers, handler=_not_found, timeout_sec=1.0):
    async def run():
        async with _client(handler) as client:
            return await MetadataWaterfall(providers, client, timeout_sec=timeout_sec).resolve(MINT)

    return asyncio.run(run())


def test_timeout_then_hit_stops_waterfall():
    """Provider 1 times out, provider 2 returns Foo, provider 3 is never called."""
    foo = TokenMetadata(name="Foo", symbol="FOO", source="second")
    first = StubProvider("first", delay=1.0)
    second = StubProvider("second", foo)
    third = StubProvider("third", TokenMetadata(name="Bar", symbol="BAR", source="third"))

    result = _resolve([first, second, third], timeout_sec=0.05)

    assert result == foo
    assert first.calls == 1
    assert third.calls == 0


def test_exception_and_empty_name_are_misses():
    failing = StubProvider("failing", error=httpx.ConnectError("refused"))
    empty = StubProvider("empty", TokenMetadata(name="", symbol="X", source="empty"))
    hit = StubProvider("hit", TokenMetadata(name="Hit", symbol="HIT", source="hit"))

    result = _resolve([failing, empty, hit])

    assert result.name == "Hit"


def test_all_misses_return_none():
    providers = [StubProvider("a"), StubProvider("b", error=RuntimeError("boom"))]
    assert _resolve(providers) is None


def test_well_known_mint_needs_no_network():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("network must not be used")

    async def run():
        async with _client(handler) as client:
            return await MetadataWaterfall([WellKnownProvider(), DexScreenerProvider()], client).resolve(USDC_MINT)

    result = asyncio.run(run())
    assert result.symbol == "USDC"
    assert result.source == "well_known"


def test_dexscreener_parses_first_pair_and_market():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith(f"/tokens/{MINT}")
        return httpx.Response(
            200,
            json={
                "pairs": [
                    {
                        "baseToken": {"address": MINT, "name": "Foo Coin", "symbol": "FOO"},
                        "priceUsd": "0.0123",
                        "volume": {"h24": 1500.5},
                        "marketCap": 1_000_000,
                        "liquidity": {"usd": 25_000},
                        "info": {"imageUrl": "https://img.example/foo.png"},
                    },
                    {"baseToken": {"name": "Other", "symbol": "OTH"}},
                ]
            },
        )

    result = _resolve([DexScreenerProvider()], handler)

    assert result.name == "Foo Coin"
    assert result.symbol == "FOO"
    assert result.image == "https://img.example/foo.png"
    assert result.market.price_usd == 0.0123
    assert result.market.volume_24h == 1500.5
    assert result.market.liquidity_usd == 25_000


def test_non_2xx_falls_through_to_next_provider():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.dexscreener.com":
            return httpx.Response(503)
        if request.url.host == "tokens.jup.ag":
            return httpx.Response(200, json={"address": MINT, "name": "Jup Listed", "symbol": "JL", "logoURI": None})
        return httpx.Response(404)

    result = _resolve([DexScreenerProvider(), JupiterProvider(), CoinGeckoProvider()], handler)

    assert result.name == "Jup Listed"
    assert result.source == "jupiter"


def test_coingecko_shape():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "name": "Gecko Token",
                "symbol": "gek",
                "image": {"large": "https://img.example/gek.png"},
                "description": {"en": "A token"},
                "market_data": {"current_price": {"usd": 2.5}, "market_cap": {"usd": 10}},
            },
        )

    result = _resolve([CoinGeckoProvider()], handler)
    assert result.symbol == "GEK"
    assert result.description == "A token"
    assert result.market.price_usd == 2.5


def test_birdeye_sends_api_key_header():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["X-API-KEY"] == "bird-key"
        assert request.url.params["address"] == MINT
        return httpx.Response(200, json={"success": True, "data": {"name": "Bird", "symbol": "BRD", "price": 1}})

    result = _resolve([BirdeyeProvider("bird-key")], handler)
    assert result.name == "Bird"


def test_helius_das_reads_content_metadata():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "result": {
                    "content": {
                        "metadata": {"name": "Das Token", "symbol": "DAS", "description": "d"},
                        "links": {"image": "https://img.example/das.png"},
                    }
                },
            },
        )

    result = _resolve([HeliusDasProvider("helius-key")], handler)
    assert result.name == "Das Token"
    assert result.image == "https://img.example/das.png"


def test_default_providers_include_keyed_sources_only_when_configured():
    names = [p.name for p in default_providers()]
    assert names == ["well_known", "dexscreener", "jupiter", "coingecko"]

    names = [p.name for p in default_providers(birdeye_api_key="b", helius_api_key="h")]
    assert names == ["well_known", "dexscreener", "birdeye", "jupiter", "coingecko", "helius_das"]
