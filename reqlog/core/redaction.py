"""
Recursive, cycle-safe redaction of sensitive keys in log payloads.
Only branches that contain a match are copied; everything else is shared.
"""

from typing import Any, Dict, FrozenSet, Iterable, Optional

from structlog.types import EventDict, WrappedLogger

REDACTED_VALUE = "[REDACTED]"


def normalize_redact_keys(keys: Optional[Iterable[str]]) -> FrozenSet[str]:
    """
    Lower-case and strip configured key names, dropping blanks.
    A single string is read as a comma-separated list.
    """
    if not keys:
        return frozenset()
    if isinstance(keys, str):
        keys = keys.split(",")
    return frozenset(k.strip().lower() for k in keys if k and k.strip())


def _redact_sequence(value: Any, redact_keys: FrozenSet[str], seen: Dict[int, Any]) -> Any:
    marker = id(value)
    seen[marker] = value
    clone: Optional[list] = None

    for index, item in enumerate(value):
        redacted_item = _redact_node(item, redact_keys, seen)
        if clone is None:
            if redacted_item is item:
                continue
            clone = list(value)
            seen[marker] = clone
        clone[index] = redacted_item

    if clone is None:
        return value
    if isinstance(value, tuple):
        result = tuple(clone)
        seen[marker] = result
        return result
    return clone


def _redact_mapping(value: dict, redact_keys: FrozenSet[str], seen: Dict[int, Any]) -> Any:
    marker = id(value)
    seen[marker] = value
    clone: Optional[dict] = None

    for key, raw_value in value.items():
        if isinstance(key, str) and key.lower() in redact_keys:
            if clone is None:
                clone = value.copy()
                seen[marker] = clone
            clone[key] = REDACTED_VALUE
            continue

        redacted_value = _redact_node(raw_value, redact_keys, seen)
        if clone is None:
            if redacted_value is raw_value:
                continue
            clone = value.copy()
            seen[marker] = clone
        clone[key] = redacted_value

    return value if clone is None else clone


def _redact_node(value: Any, redact_keys: FrozenSet[str], seen: Dict[int, Any]) -> Any:
    if not isinstance(value, (dict, list, tuple)):
        # datetimes, URLs and other objects are leaves; the renderer stringifies them
        return value

    if id(value) in seen:
        return seen[id(value)]

    if isinstance(value, dict):
        return _redact_mapping(value, redact_keys, seen)
    return _redact_sequence(value, redact_keys, seen)


def redact_deep(value: Any, redact_keys: FrozenSet[str]) -> Any:
    """
    Return `value` with every matching key's value replaced by REDACTED_VALUE.

    Keys are matched case-insensitively at any depth, including inside lists
    and tuples. Self-referencing structures are traversed once per container;
    a container reached again resolves to its cached (possibly unfinished)
    result, so the output may still be cyclic and is left for the renderer
    to reject.

    Args:
        value: Arbitrary log payload.
        redact_keys: Lower-cased key names, see normalize_redact_keys().

    Returns:
        The original object when nothing matched, otherwise a partial copy.
    """
    if not redact_keys:
        return value
    return _redact_node(value, redact_keys, {})


class RedactProcessor:
    """structlog processor applying redact_deep() to the whole event dict."""

    def __init__(self, redact_keys: Optional[Iterable[str]] = None) -> None:
        self._redact_keys = normalize_redact_keys(redact_keys)

    def __call__(
        self, logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        return redact_deep(event_dict, self._redact_keys)
