"""
Test that trustscan_logging can be imported without circular import and logger works.
"""

from __future__ import annotations

from backend_trustscan.trustscan_logging.logger import _normalize_event


def test_logging_import():
    """Import get_logger from trustscan_logging and use the logger."""
    from backend_trustscan.trustscan_logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")


def test_short_id_truncates_long_values():
    from backend_trustscan.trustscan_logging import short_id

    assert short_id("abc") == "abc"
    assert short_id(None) == ""
    assert short_id("x" * 44) == "x" * 16 + "..."


def test_event_renamed_to_event_type():
    out = _normalize_event(None, "info", {"event": "endpoint_switched"})
    assert out["event_type"] == "endpoint_switched"
    assert out["message"] == "endpoint_switched"
    assert "event" not in out
