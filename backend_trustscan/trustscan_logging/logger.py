"""
Structured logging for the TrustScan engine.

Every record carries event_type, level, an ISO timestamp and the emitting module;
engine code adds subject (shortened address or signature), endpoint, provider
or error as relevant. LOG_FORMAT=json (default) renders one JSON object per
line, anything else renders a console view. Output goes to stderr so the CLI's
stdout stays pure JSON.

Imports nothing from backend_trustscan, so any module may import it.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, TextIO

import structlog

SHORT_ID_LEN = 16
ROOT_LOGGER_NAME = "backend_trustscan"


def _level_from_env() -> int:
    return getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO)


def _format_from_env() -> str:
    return os.getenv("LOG_FORMAT", "json").strip().lower()


def _normalize_event(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type; message mirrors it when absent."""
    event = event_dict.pop("event", None)
    if event is not None:
        event_dict.setdefault("event_type", event)
    if "event_type" in event_dict:
        event_dict.setdefault("message", str(event_dict["event_type"]))
    return event_dict


def configure_logging(level: int | None = None, fmt: str | None = None, stream: TextIO | None = None) -> None:
    """(Re)configure structlog. Called once at import with env defaults."""
    fmt = fmt or _format_from_env()
    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        out = stream or sys.stderr
        renderer = structlog.dev.ConsoleRenderer(colors=out.isatty())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _normalize_event,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level if level is not None else _level_from_env()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger with `logger=<name>` bound.

        logger = get_logger(__name__)
        logger.info("holder_batch_done", subject=short_id(mint), batch=2, holders=17)
    """
    return structlog.get_logger(name).bind(logger=name)


def short_id(value: str | None) -> str:
    """First 16 chars of an address or signature, for log lines."""
    value = value or ""
    if len(value) <= SHORT_ID_LEN:
        return value
    return value[:SHORT_ID_LEN] + "..."


def bind_subject(subject: str, name: str = ROOT_LOGGER_NAME) -> structlog.BoundLogger:
    """Logger with the (shortened) subject bound to every call."""
    return get_logger(name).bind(subject=short_id(subject))
