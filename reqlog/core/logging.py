"""
Structured logging configuration using structlog.
Application-level loggers emit the same NDJSON records as request loggers.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from reqlog.core.config import Settings, get_settings
from reqlog.core.levels import SeverityLevel, parse_level, to_stdlib_level
from reqlog.core.redaction import RedactProcessor
from reqlog.services.logger import assign_safe
from reqlog.services.sink import Sink

# structlog method names that are not syslog level names
_METHOD_LEVELS = {
    "warn": SeverityLevel.WARNING,
    "exception": SeverityLevel.ERROR,
    "fatal": SeverityLevel.CRITICAL,
    "msg": SeverityLevel.INFO,
    "log": SeverityLevel.INFO,
}


def _syslog_level(name: Any) -> SeverityLevel:
    if name in _METHOD_LEVELS:
        return _METHOD_LEVELS[name]
    try:
        return parse_level(name)
    except ValueError:
        return SeverityLevel.INFO


def make_app_context(settings: Settings) -> Processor:
    """Processor adding application-level context to every log entry."""

    def add_app_context(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", settings.APP_NAME)
        event_dict.setdefault("version", settings.APP_VERSION)
        return event_dict

    return add_app_context


class SinkProcessor:
    """
    Terminal processor: reorders the event into a log record and writes it.

    The record gets the same reserved prefix as request records
    (level, msg, [trace], time) and goes through the same Sink, so both
    kinds of lines share routing and the serialization fallback. The event
    is dropped afterwards; the wrapped logger never sees it.
    """

    def __init__(self, sink: Optional[Sink] = None) -> None:
        self._sink = sink if sink is not None else Sink()

    def __call__(
        self, logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        level = _syslog_level(event_dict.pop("level", method_name))
        entry = {"level": level.value, "msg": event_dict.pop("msg", "")}
        if "trace" in event_dict:
            entry["trace"] = event_dict.pop("trace")
        if "time" in event_dict:
            entry["time"] = event_dict.pop("time")
        assign_safe(entry, event_dict)

        self._sink.write(entry)
        raise structlog.DropEvent


def configure_logging(
    settings: Optional[Settings] = None, sink: Optional[Sink] = None
) -> None:
    """
    Configure structlog so module loggers write NDJSON through a Sink.
    Call once at application startup.
    """
    settings = settings or get_settings()
    log_level = to_stdlib_level(settings.LOG_LEVEL)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="time"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.EventRenamer("msg"),
        make_app_context(settings),
        RedactProcessor(settings.LOG_REDACT_KEYS),
        SinkProcessor(sink),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=settings.is_production,
    )

    # Standard library records stay off stdout, which carries only NDJSON
    logging.basicConfig(
        format="%(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
        level=log_level,
    )

    for noisy_logger in ("uvicorn.access",):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)
