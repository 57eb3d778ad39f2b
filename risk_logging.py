"""
Structured logging for the risk engine.

structlog with ISO timestamps, log level and an event_type key. Output goes to
stderr so that JSON reports printed on stdout stay machine-readable.

    logger = get_logger(__name__)
    logger.info("report_generated", protocol="Foo", overall_score=4.2)
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List

import structlog

from risk_settings import LOG_CONFIG


def _add_timestamp(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601)."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Rename structlog 'event' to event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_structlog(level: str = None, log_format: str = None) -> None:
    """Configure structlog processors, level filter and renderer."""
    level = (level or LOG_CONFIG["level"]).upper()
    log_format = (log_format or LOG_CONFIG["format"]).lower()
    level_value = getattr(logging, level, logging.INFO)

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
    ]
    if log_format == "json":
        processors.append(_normalize_event)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structured logger whose events carry logger_name=name.

    The module name goes in as an initial value rather than as the factory
    argument, so the proxy stays unbound until first use and a later
    configure_structlog() call (e.g. from the CLI) still applies.
    """
    return structlog.get_logger(logger_name=name)
