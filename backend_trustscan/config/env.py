"""
Environment variable loading and validation for TrustScan.

- SOLANA_NETWORK: devnet | mainnet (default: mainnet)
- SOLANA_RPC_URLS: comma-separated RPC endpoint pool (ordered)
- SOLANA_RPC_URL: single RPC endpoint, placed first in the pool
- HELIUS_API_KEY: Helius key; adds a Helius endpoint and enables the DAS metadata provider
- BIRDEYE_API_KEY: enables the Birdeye metadata provider
- KNOWN_SCAMS_PATH: JSON array of known scam addresses
- Loads .env from project root when available.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from backend_trustscan.trustscan_logging import get_logger

logger = get_logger(__name__)

# Project root: config is backend_trustscan/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_KNOWN_SCAMS_PATH = _PACKAGE_DIR / "data" / "known_scams.json"

DEVNET_RPC_URL = "https://api.devnet.solana.com"
MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
HELIUS_MAINNET_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"
HELIUS_DEVNET_URL_TEMPLATE = "https://devnet.helius-rpc.com/?api-key={key}"

# Public fallbacks tried after any configured endpoint
MAINNET_PUBLIC_RPC_URLS = (
    MAINNET_RPC_URL,
    "https://rpc.ankr.com/solana",
    "https://solana.public-rpc.com",
)


def load_trustscan_env() -> None:
    """Load .env from project root. Safe to call multiple times."""
    from dotenv import load_dotenv

    load_dotenv(_ENV_PATH)


def get_solana_network() -> str:
    """Return SOLANA_NETWORK from env: devnet | mainnet. Default: mainnet."""
    load_trustscan_env()
    raw = (os.getenv("SOLANA_NETWORK") or os.getenv("SOLANA_CLUSTER") or "mainnet").strip().lower()
    if raw == "devnet":
        return "devnet"
    return "mainnet"


def get_helius_api_key() -> str | None:
    load_trustscan_env()
    return (os.getenv("HELIUS_API_KEY") or "").strip() or None


def get_birdeye_api_key() -> str | None:
    load_trustscan_env()
    return (os.getenv("BIRDEYE_API_KEY") or "").strip() or None


def get_rpc_endpoints() -> list[str]:
    """
    Resolve the ordered RPC endpoint pool from env.

    Order: SOLANA_RPC_URLS entries > SOLANA_RPC_URL > Helius (if HELIUS_API_KEY)
    > public endpoints for the network. Duplicates are dropped, order kept.
    """
    load_trustscan_env()
    urls: list[str] = []
    for part in (os.getenv("SOLANA_RPC_URLS") or "").split(","):
        if part.strip():
            urls.append(part.strip())
    single = (os.getenv("SOLANA_RPC_URL") or "").strip()
    if single:
        urls.append(single)
    network = get_solana_network()
    key = get_helius_api_key()
    if key:
        template = HELIUS_DEVNET_URL_TEMPLATE if network == "devnet" else HELIUS_MAINNET_URL_TEMPLATE
        urls.append(template.format(key=key))
    if network == "devnet":
        urls.append(DEVNET_RPC_URL)
    else:
        urls.extend(MAINNET_PUBLIC_RPC_URLS)

    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            ordered.append(url)
    return ordered


def get_env_float(name: str, default: float) -> float:
    """Read a float from env; fall back to default on missing or malformed values."""
    load_trustscan_env()
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("config_invalid_float", name=name, value=raw, default=default)
        return default


def get_env_int(name: str, default: int) -> int:
    """Read an int from env; fall back to default on missing or malformed values."""
    load_trustscan_env()
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("config_invalid_int", name=name, value=raw, default=default)
        return default


def load_known_scams() -> frozenset[str]:
    """
    Load known scam addresses from KNOWN_SCAMS_PATH (JSON array of strings).

    Returns an empty set when the file is missing or malformed.
    """
    load_trustscan_env()
    path_str = (os.getenv("KNOWN_SCAMS_PATH") or "").strip() or str(DEFAULT_KNOWN_SCAMS_PATH)
    path = Path(path_str)
    if not path.is_file():
        logger.debug("known_scams_missing", path=path_str)
        return frozenset()
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("known_scams_load_failed", path=path_str, error=str(e))
        return frozenset()
    if not isinstance(data, list):
        logger.warning("known_scams_not_a_list", path=path_str)
        return frozenset()
    return frozenset(str(a).strip() for a in data if a and str(a).strip())


def mask_url(url: str) -> str:
    """Mask api-key query values so endpoint URLs are safe to log."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
