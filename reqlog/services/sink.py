"""
NDJSON output sink.
Renders one record per line and routes it to stdout or stderr by severity tier.
"""

import json
import sys
from datetime import date, datetime, time
from typing import Any, Dict, Optional, TextIO

import structlog

from reqlog.core.levels import is_error_level

FALLBACK_LINE = '{"level":"error","msg":"Logger failed to serialize object"}'


def _json_default(obj: Any) -> str:
    """Leaf objects serialize through their textual representation."""
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    return str(obj)


class Sink:
    """
    Writes finished log records as single JSON lines.

    Error-tier records go to the error stream, everything else to the
    standard stream. A record that cannot be rendered is replaced by
    FALLBACK_LINE on the error stream.
    """

    def __init__(
        self,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
    ) -> None:
        self._stdout = stdout
        self._stderr = stderr
        self._renderer = structlog.processors.JSONRenderer(
            default=_json_default,
            allow_nan=False,
            separators=(",", ":"),
        )

    @property
    def standard_stream(self) -> TextIO:
        return self._stdout if self._stdout is not None else sys.stdout

    @property
    def error_stream(self) -> TextIO:
        return self._stderr if self._stderr is not None else sys.stderr

    def render(self, entry: Dict[str, Any]) -> str:
        return self._renderer(None, str(entry.get("level", "")), entry)

    def write(self, entry: Dict[str, Any]) -> None:
        try:
            line = self.render(entry)
            to_error = is_error_level(entry["level"])
        except (TypeError, ValueError, KeyError, OverflowError, RecursionError):
            self._emit(self.error_stream, FALLBACK_LINE)
            return

        self._emit(self.error_stream if to_error else self.standard_stream, line)

    @staticmethod
    def _emit(stream: TextIO, line: str) -> None:
        # PrintLogger appends the newline and holds a per-stream write lock
        structlog.PrintLogger(file=stream).msg(line)
