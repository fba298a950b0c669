"""
Application settings and environment configuration.

Responsibilities:
- Build one immutable Settings object from environment variables and .env.
- Provide defaults for every tunable (backoff, batch width, caps, timeouts).
- Expose the static security configuration (trusted programs, known scams,
  suspicious substrings), loaded once for the process lifetime.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field

from backend_trustscan.core.models import SecurityConfig
from backend_trustscan.core.programs import (
    DEFAULT_SUSPICIOUS_PATTERNS,
    DEFAULT_TRUSTED_PROGRAMS,
    KNOWN_SAFE_PROGRAMS,
)
from backend_trustscan.config.env import (
    get_birdeye_api_key,
    get_env_float,
    get_env_int,
    get_helius_api_key,
    get_rpc_endpoints,
    get_solana_network,
    load_known_scams,
)

DEFAULT_RPC_BACKOFF_SEC = 1.0
DEFAULT_RPC_TIMEOUT_SEC = 15.0
DEFAULT_HOLDER_SCAN_CAP = 50
DEFAULT_HOLDER_BATCH_SIZE = 20
DEFAULT_HOLDER_BATCH_DELAY_SEC = 0.1
DEFAULT_HOLDER_TOP_N = 100
DEFAULT_METADATA_TIMEOUT_SEC = 5.0
DEFAULT_ANALYSIS_TIMEOUT_SEC = 60.0
DEFAULT_SIGNATURE_HISTORY_LIMIT = 2000


@dataclass(frozen=True)
class Settings:
    """Typed engine configuration. Construct directly in tests; use get_settings() in services."""

    rpc_endpoints: tuple[str, ...]
    network: str = "mainnet"
    rpc_backoff_sec: float = DEFAULT_RPC_BACKOFF_SEC
    rpc_timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC
    holder_scan_cap: int = DEFAULT_HOLDER_SCAN_CAP
    holder_batch_size: int = DEFAULT_HOLDER_BATCH_SIZE
    holder_batch_delay_sec: float = DEFAULT_HOLDER_BATCH_DELAY_SEC
    holder_top_n: int = DEFAULT_HOLDER_TOP_N
    metadata_timeout_sec: float = DEFAULT_METADATA_TIMEOUT_SEC
    analysis_timeout_sec: float = DEFAULT_ANALYSIS_TIMEOUT_SEC
    signature_history_limit: int = DEFAULT_SIGNATURE_HISTORY_LIMIT
    trusted_programs: frozenset[str] = DEFAULT_TRUSTED_PROGRAMS
    known_scams: frozenset[str] = field(default_factory=frozenset)
    suspicious_patterns: tuple[str, ...] = DEFAULT_SUSPICIOUS_PATTERNS
    helius_api_key: str | None = None
    birdeye_api_key: str | None = None

    def security(self) -> SecurityConfig:
        return SecurityConfig(
            known_scams=self.known_scams,
            trusted_programs=self.trusted_programs,
            known_safe_programs=KNOWN_SAFE_PROGRAMS | self.trusted_programs,
            suspicious_patterns=self.suspicious_patterns,
        )


def load_settings() -> Settings:
    """Build Settings from the environment (no caching)."""
    return Settings(
        rpc_endpoints=tuple(get_rpc_endpoints()),
        network=get_solana_network(),
        rpc_backoff_sec=get_env_float("RPC_BACKOFF_SEC", DEFAULT_RPC_BACKOFF_SEC),
        rpc_timeout_sec=get_env_float("RPC_TIMEOUT_SEC", DEFAULT_RPC_TIMEOUT_SEC),
        holder_scan_cap=get_env_int("HOLDER_SCAN_CAP", DEFAULT_HOLDER_SCAN_CAP),
        holder_batch_size=get_env_int("HOLDER_BATCH_SIZE", DEFAULT_HOLDER_BATCH_SIZE),
        holder_batch_delay_sec=get_env_float("HOLDER_BATCH_DELAY_SEC", DEFAULT_HOLDER_BATCH_DELAY_SEC),
        metadata_timeout_sec=get_env_float("METADATA_TIMEOUT_SEC", DEFAULT_METADATA_TIMEOUT_SEC),
        analysis_timeout_sec=get_env_float("ANALYSIS_TIMEOUT_SEC", DEFAULT_ANALYSIS_TIMEOUT_SEC),
        signature_history_limit=get_env_int("SIGNATURE_HISTORY_LIMIT", DEFAULT_SIGNATURE_HISTORY_LIMIT),
        known_scams=load_known_scams(),
        helius_api_key=get_helius_api_key(),
        birdeye_api_key=get_birdeye_api_key(),
    )


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the process-wide settings, loaded on first call.

    Returns:
        Settings with rpc_endpoints, tunables and static security sets.
    """
    return load_settings()
