"""
Structured logging for Backend TrustScan.

JSON logs with timestamp, subject, event_type. Use get_logger() in all engine
modules for aggregation-friendly output.
"""

from backend_trustscan.trustscan_logging.logger import bind_subject, configure_logging, get_logger, short_id

__all__ = ["bind_subject", "configure_logging", "get_logger", "short_id"]
