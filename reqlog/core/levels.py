"""
Syslog severity scale used by the request logger.
Eight ordered levels; "error" and above are routed to the error channel.
"""

import logging
from enum import Enum
from typing import Dict, Tuple, Union


class SeverityLevel(str, Enum):
    """Syslog severities, lowest to highest."""

    DEBUG = "debug"
    INFO = "info"
    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
    ALERT = "alert"
    EMERGENCY = "emergency"


SYSLOG_LEVELS: Tuple[SeverityLevel, ...] = tuple(SeverityLevel)

LEVEL_PRIORITY: Dict[SeverityLevel, int] = {
    level: priority for priority, level in enumerate(SYSLOG_LEVELS)
}

DEFAULT_LEVEL = SeverityLevel.INFO
ERROR_LEVEL_PRIORITY = LEVEL_PRIORITY[SeverityLevel.ERROR]

# structlog's filtering bound logger speaks the stdlib numeric scale
_STDLIB_LEVELS: Dict[SeverityLevel, int] = {
    SeverityLevel.DEBUG: logging.DEBUG,
    SeverityLevel.INFO: logging.INFO,
    SeverityLevel.NOTICE: logging.INFO,
    SeverityLevel.WARNING: logging.WARNING,
    SeverityLevel.ERROR: logging.ERROR,
    SeverityLevel.CRITICAL: logging.CRITICAL,
    SeverityLevel.ALERT: logging.CRITICAL,
    SeverityLevel.EMERGENCY: logging.CRITICAL,
}

LevelLike = Union[SeverityLevel, str]


def parse_level(value: LevelLike) -> SeverityLevel:
    """
    Resolve a level name (any case) or enum member to a SeverityLevel.

    Raises:
        ValueError: If the name is not one of the eight syslog levels.
    """
    if isinstance(value, SeverityLevel):
        return value
    try:
        return SeverityLevel(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(level.value for level in SYSLOG_LEVELS)
        raise ValueError(
            f"Unknown log level {value!r}; expected one of: {allowed}"
        ) from None


def get_level_priority(level: LevelLike) -> int:
    return LEVEL_PRIORITY[parse_level(level)]


def should_log_priority(level_priority: int, min_level_priority: int) -> bool:
    return level_priority >= min_level_priority


def should_log(level: LevelLike, min_level: LevelLike) -> bool:
    """True when `level` is at or above the `min_level` threshold."""
    return should_log_priority(get_level_priority(level), get_level_priority(min_level))


def is_error_level(level: LevelLike) -> bool:
    """True for "error" and every level above it."""
    return get_level_priority(level) >= ERROR_LEVEL_PRIORITY


def to_stdlib_level(level: LevelLike) -> int:
    return _STDLIB_LEVELS[parse_level(level)]
