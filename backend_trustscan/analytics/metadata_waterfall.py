"""
Metadata waterfall: resolve token name/symbol/image from an ordered list of providers.

Providers are tried strictly one after another; the first one that returns a
non-empty name wins. Exceptions, timeouts, non-2xx responses and malformed
bodies count as misses. All misses means "metadata unknown" (None), not an error.

Default order: well_known (static table), dexscreener, birdeye (needs
BIRDEYE_API_KEY), jupiter, coingecko, helius_das (needs HELIUS_API_KEY).
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol, Sequence

import httpx

from backend_trustscan.core.models import MarketData, TokenMetadata
from backend_trustscan.rpc.client import build_rpc_body
from backend_trustscan.trustscan_logging import get_logger, short_id

logger = get_logger(__name__)

DEFAULT_METADATA_TIMEOUT_SEC = 5.0

DEXSCREENER_URL = "https://api.dexscreener.com/latest/dex/tokens/{mint}"
BIRDEYE_URL = "https://public-api.birdeye.so/defi/token_overview"
JUPITER_URL = "https://tokens.jup.ag/token/{mint}"
COINGECKO_URL = "https://api.coingecko.com/api/v3/coins/solana/contract/{mint}"
HELIUS_RPC_URL = "https://mainnet.helius-rpc.com/?api-key={key}"

_TOKEN_LIST_LOGO = "https://raw.githubusercontent.com/solana-labs/token-list/main/assets/mainnet/{mint}/logo.png"

WELL_KNOWN_TOKENS: dict[str, dict[str, str]] = {
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": {
        "name": "USD Coin",
        "symbol": "USDC",
        "description": "USD Coin (USDC) is a fully collateralized US dollar stablecoin",
    },
    "So11111111111111111111111111111111111111112": {
        "name": "Wrapped SOL",
        "symbol": "SOL",
        "description": "Wrapped Solana",
    },
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": {
        "name": "Tether USD",
        "symbol": "USDT",
        "description": "Tether USD (USDT) stablecoin",
    },
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN": {
        "name": "Jupiter",
        "symbol": "JUP",
        "description": "Jupiter Exchange Token",
        "image": "https://static.jup.ag/jup/icon.png",
    },
}


class MetadataProvider(Protocol):
    name: str

    async def resolve_metadata(self, client: httpx.AsyncClient, asset_id: str) -> TokenMetadata | None:
        ...


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _float_or_none(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _metadata(
    source: str,
    name: Any,
    symbol: Any,
    *,
    image: Any = None,
    description: Any = None,
    market: MarketData | None = None,
) -> TokenMetadata | None:
    """Build TokenMetadata, or None when name is empty (a miss)."""
    clean_name = _str_or_none(name)
    if not clean_name:
        return None
    return TokenMetadata(
        name=clean_name,
        symbol=_str_or_none(symbol),
        source=source,
        image=_str_or_none(image),
        description=_str_or_none(description),
        market=market,
    )


class WellKnownProvider:
    """Static table of major mints; no network."""

    name = "well_known"

    def __init__(self, table: dict[str, dict[str, str]] | None = None) -> None:
        self._table = WELL_KNOWN_TOKENS if table is None else table

    async def resolve_metadata(self, client: httpx.AsyncClient, asset_id: str) -> TokenMetadata | None:
        entry = self._table.get(asset_id)
        if not entry:
            return None
        return _metadata(
            self.name,
            entry.get("name"),
            entry.get("symbol"),
            image=entry.get("image") or _TOKEN_LIST_LOGO.format(mint=asset_id),
            description=entry.get("description"),
        )


class DexScreenerProvider:
    name = "dexscreener"

    async def resolve_metadata(self, client: httpx.AsyncClient, asset_id: str) -> TokenMetadata | None:
        resp = await client.get(DEXSCREENER_URL.format(mint=asset_id))
        resp.raise_for_status()
        pairs = (resp.json() or {}).get("pairs") or []
        if not pairs or not isinstance(pairs[0], dict):
            return None
        pair = pairs[0]
        base = pair.get("baseToken") or {}
        info = pair.get("info") or {}
        market = MarketData(
            price_usd=_float_or_none(pair.get("priceUsd")),
            volume_24h=_float_or_none((pair.get("volume") or {}).get("h24")),
            market_cap=_float_or_none(pair.get("marketCap")),
            liquidity_usd=_float_or_none((pair.get("liquidity") or {}).get("usd")),
        )
        name = base.get("name")
        return _metadata(
            self.name,
            name,
            base.get("symbol"),
            image=info.get("imageUrl"),
            description=f"{name} trading pair" if name else None,
            market=market,
        )


class BirdeyeProvider:
    name = "birdeye"

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

    async def resolve_metadata(self, client: httpx.AsyncClient, asset_id: str) -> TokenMetadata | None:
        resp = await client.get(
            BIRDEYE_URL,
            params={"address": asset_id},
            headers={"X-API-KEY": self._api_key, "x-chain": "solana"},
        )
        resp.raise_for_status()
        body = resp.json() or {}
        if not body.get("success"):
            return None
        data = body.get("data") or {}
        market = MarketData(
            price_usd=_float_or_none(data.get("price")),
            volume_24h=_float_or_none(data.get("v24hUSD")),
            market_cap=_float_or_none(data.get("mc") or data.get("marketCap")),
            liquidity_usd=_float_or_none(data.get("liquidity")),
        )
        extensions = data.get("extensions") or {}
        return _metadata(
            self.name,
            data.get("name"),
            data.get("symbol"),
            image=data.get("logoURI"),
            description=extensions.get("description"),
            market=market,
        )


class JupiterProvider:
    name = "jupiter"

    async def resolve_metadata(self, client: httpx.AsyncClient, asset_id: str) -> TokenMetadata | None:
        resp = await client.get(JUPITER_URL.format(mint=asset_id))
        resp.raise_for_status()
        token = resp.json() or {}
        if not isinstance(token, dict):
            return None
        return _metadata(
            self.name,
            token.get("name"),
            token.get("symbol"),
            image=token.get("logoURI"),
            description=token.get("name"),
        )


class CoinGeckoProvider:
    name = "coingecko"

    async def resolve_metadata(self, client: httpx.AsyncClient, asset_id: str) -> TokenMetadata | None:
        resp = await client.get(COINGECKO_URL.format(mint=asset_id))
        resp.raise_for_status()
        data = resp.json() or {}
        image = data.get("image") or {}
        description = data.get("description") or {}
        market_data = data.get("market_data") or {}
        market = MarketData(
            price_usd=_float_or_none((market_data.get("current_price") or {}).get("usd")),
            volume_24h=_float_or_none((market_data.get("total_volume") or {}).get("usd")),
            market_cap=_float_or_none((market_data.get("market_cap") or {}).get("usd")),
        )
        symbol = data.get("symbol")
        return _metadata(
            self.name,
            data.get("name"),
            symbol.upper() if isinstance(symbol, str) else symbol,
            image=image.get("large") if isinstance(image, dict) else image,
            description=description.get("en") if isinstance(description, dict) else description,
            market=market if market_data else None,
        )


class HeliusDasProvider:
    """Helius DAS getAsset; name/symbol/description from content.metadata."""

    name = "helius_das"

    def __init__(self, api_key: str) -> None:
        self._url = HELIUS_RPC_URL.format(key=api_key)

    async def resolve_metadata(self, client: httpx.AsyncClient, asset_id: str) -> TokenMetadata | None:
        resp = await client.post(self._url, json=build_rpc_body("getAsset", {"id": asset_id}))
        resp.raise_for_status()
        body = resp.json() or {}
        if body.get("error"):
            return None
        asset = body.get("result") or {}
        content = asset.get("content") or {}
        metadata = content.get("metadata") or {}
        links = content.get("links") or {}
        return _metadata(
            self.name,
            metadata.get("name"),
            metadata.get("symbol"),
            image=links.get("image"),
            description=metadata.get("description"),
        )


def default_providers(
    *,
    birdeye_api_key: str | None = None,
    helius_api_key: str | None = None,
) -> list[MetadataProvider]:
    """Default provider order. Keyed providers are included only when their key is set."""
    providers: list[MetadataProvider] = [WellKnownProvider(), DexScreenerProvider()]
    if birdeye_api_key:
        providers.append(BirdeyeProvider(birdeye_api_key))
    providers.append(JupiterProvider())
    providers.append(CoinGeckoProvider())
    if helius_api_key:
        providers.append(HeliusDasProvider(helius_api_key))
    return providers


class MetadataWaterfall:
    """
    Ordered first-hit-wins metadata resolution.

    Args:
        providers: objects with `name` and `async resolve_metadata(client, asset_id)`.
        client: shared httpx client passed to every provider.
        timeout_sec: per-provider bound; a slower provider is a miss.
    """

    def __init__(
        self,
        providers: Sequence[MetadataProvider],
        client: httpx.AsyncClient,
        *,
        timeout_sec: float = DEFAULT_METADATA_TIMEOUT_SEC,
    ) -> None:
        self._providers = tuple(providers)
        self._client = client
        self._timeout_sec = timeout_sec

    @property
    def providers(self) -> tuple[MetadataProvider, ...]:
        return self._providers

    async def resolve(self, asset_id: str) -> TokenMetadata | None:
        """Return metadata from the first provider with a non-empty name, else None."""
        for provider in self._providers:
            try:
                result = await asyncio.wait_for(
                    provider.resolve_metadata(self._client, asset_id),
                    timeout=self._timeout_sec,
                )
            except asyncio.TimeoutError:
                logger.warning("metadata_provider_timeout", provider=provider.name, subject=short_id(asset_id))
                continue
            except Exception as e:
                logger.warning(
                    "metadata_provider_failed",
                    provider=provider.name,
                    subject=short_id(asset_id),
                    error=str(e) or type(e).__name__,
                )
                continue
            if result is not None and result.name:
                logger.info("metadata_resolved", provider=provider.name, subject=short_id(asset_id))
                return result
            logger.debug("metadata_provider_miss", provider=provider.name, subject=short_id(asset_id))
        logger.info("metadata_not_found", subject=short_id(asset_id), providers=len(self._providers))
        return None
