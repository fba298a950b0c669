"""
Configuration management for the TrustScan engine.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for all engine configuration.
"""

from backend_trustscan.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
