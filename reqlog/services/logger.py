"""
Request-scoped structured logger.
Assembles one NDJSON record per call from base data, context and call data.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Union

import structlog

from reqlog.core.levels import (
    DEFAULT_LEVEL,
    LEVEL_PRIORITY,
    LevelLike,
    SeverityLevel,
    get_level_priority,
    parse_level,
    should_log_priority,
)
from reqlog.core.redaction import normalize_redact_keys, redact_deep
from reqlog.schemas.schemas import DataPlacement, ErrorMetadata, RequestMetadata
from reqlog.services.sink import Sink

RESERVED_KEYS = frozenset({"level", "msg", "time", "trace"})

PlacementLike = Union[DataPlacement, str]

_default_sink = Sink()
_stamp_time = structlog.processors.TimeStamper(fmt="iso", utc=True, key="time")


def assign_safe(target: Dict[str, Any], source: Optional[Mapping[str, Any]]) -> None:
    """Copy `source` into `target`, never touching a reserved key."""
    if not source:
        return
    for key, value in source.items():
        if key in RESERVED_KEYS:
            continue
        target[key] = value


def _parse_placement(placement: PlacementLike) -> DataPlacement:
    try:
        return DataPlacement(placement)
    except ValueError:
        raise ValueError(
            f"Unknown data placement {placement!r}; expected 'nested' or 'flattened'"
        ) from None


class Logger:
    """
    One logger per inbound request.

    The minimum level, trace id, request metadata and redaction keys are
    fixed at construction; only the context grows, through set_context().
    """

    def __init__(
        self,
        level: LevelLike = DEFAULT_LEVEL,
        trace_id: Optional[str] = None,
        req: Optional[RequestMetadata] = None,
        redact_keys: Optional[Iterable[str]] = None,
        sink: Optional[Sink] = None,
    ) -> None:
        self._level = parse_level(level)
        self._min_level_priority = LEVEL_PRIORITY[self._level]
        self._redact_keys = normalize_redact_keys(redact_keys)
        self._sink = sink if sink is not None else _default_sink
        self._context: Dict[str, Any] = {}

        self._base_data: Dict[str, Any] = {}
        if trace_id:
            self._base_data["trace_id"] = trace_id
        if req is not None:
            self._base_data["req"] = req.to_log_dict()

    @property
    def level(self) -> SeverityLevel:
        return self._level

    @property
    def trace_id(self) -> Optional[str]:
        return self._base_data.get("trace_id")

    @property
    def context(self) -> Dict[str, Any]:
        """Snapshot of the current context."""
        return dict(self._context)

    def set_context(self, context: Mapping[str, Any]) -> None:
        """Merge `context` into the logger's context; later values win."""
        self._context.update(context)

    def is_enabled_for(self, level: LevelLike) -> bool:
        return should_log_priority(get_level_priority(level), self._min_level_priority)

    # --- Below the error tier: message and data only ---

    def debug(
        self, msg: str, data: Optional[Mapping[str, Any]] = None,
        *, placement: PlacementLike = DataPlacement.NESTED,
    ) -> None:
        self._write(SeverityLevel.DEBUG, msg, data, None, placement)

    def info(
        self, msg: str, data: Optional[Mapping[str, Any]] = None,
        *, placement: PlacementLike = DataPlacement.NESTED,
    ) -> None:
        self._write(SeverityLevel.INFO, msg, data, None, placement)

    def notice(
        self, msg: str, data: Optional[Mapping[str, Any]] = None,
        *, placement: PlacementLike = DataPlacement.NESTED,
    ) -> None:
        self._write(SeverityLevel.NOTICE, msg, data, None, placement)

    def warning(
        self, msg: str, data: Optional[Mapping[str, Any]] = None,
        *, placement: PlacementLike = DataPlacement.NESTED,
    ) -> None:
        self._write(SeverityLevel.WARNING, msg, data, None, placement)

    # --- Error tier: optionally carries an exception ---

    def error(
        self, msg: str, err: Optional[BaseException] = None,
        data: Optional[Mapping[str, Any]] = None,
        *, placement: PlacementLike = DataPlacement.NESTED,
    ) -> None:
        self._write(SeverityLevel.ERROR, msg, data, err, placement)

    def critical(
        self, msg: str, err: Optional[BaseException] = None,
        data: Optional[Mapping[str, Any]] = None,
        *, placement: PlacementLike = DataPlacement.NESTED,
    ) -> None:
        self._write(SeverityLevel.CRITICAL, msg, data, err, placement)

    def alert(
        self, msg: str, err: Optional[BaseException] = None,
        data: Optional[Mapping[str, Any]] = None,
        *, placement: PlacementLike = DataPlacement.NESTED,
    ) -> None:
        self._write(SeverityLevel.ALERT, msg, data, err, placement)

    def emergency(
        self, msg: str, err: Optional[BaseException] = None,
        data: Optional[Mapping[str, Any]] = None,
        *, placement: PlacementLike = DataPlacement.NESTED,
    ) -> None:
        self._write(SeverityLevel.EMERGENCY, msg, data, err, placement)

    def _write(
        self,
        level: SeverityLevel,
        msg: str,
        data: Optional[Mapping[str, Any]],
        err: Optional[BaseException],
        placement: PlacementLike,
    ) -> None:
        if not should_log_priority(LEVEL_PRIORITY[level], self._min_level_priority):
            return

        placement = _parse_placement(placement)

        entry: Dict[str, Any] = {"level": level.value, "msg": msg}
        if data is not None and placement is DataPlacement.NESTED:
            entry["trace"] = data
        _stamp_time(None, level.value, entry)

        assign_safe(entry, self._base_data)
        assign_safe(entry, self._context)
        if data is not None and placement is DataPlacement.FLATTENED:
            assign_safe(entry, data)

        if isinstance(err, BaseException):
            entry["err"] = ErrorMetadata.from_exception(err).to_log_dict()

        self._sink.write(redact_deep(entry, self._redact_keys))
