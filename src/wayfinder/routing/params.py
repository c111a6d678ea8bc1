"""Placeholder parameter parsing and type conversion.

Built-in converters for pattern segments like ``<int:id>``.
"""

import re
import uuid
from collections.abc import Callable, Sequence
from typing import TypeAlias

# A value captured by a placeholder after conversion
MatchValue: TypeAlias = str | int | float | uuid.UUID

# (segments, index) -> converted value; raises ValueError on mismatch
Converter: TypeAlias = Callable[[Sequence[str], int], MatchValue]


# Canonical spellings only, so one value has exactly one URL
_INT = re.compile(r"-?\d+", re.ASCII)
_FLOAT = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?", re.ASCII)
_UUID = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.ASCII | re.IGNORECASE)


def _checked(pattern: re.Pattern[str], value: str, type_name: str) -> str:
    if pattern.fullmatch(value) is None:
        msg = f"{value!r} is not a valid {type_name}"
        raise ValueError(msg)
    return value


def _string(segments: Sequence[str], index: int) -> str:
    return segments[index]


def _int(segments: Sequence[str], index: int) -> int:
    return int(_checked(_INT, segments[index], "int"))


def _float(segments: Sequence[str], index: int) -> float:
    return float(_checked(_FLOAT, segments[index], "float"))


def _uuid(segments: Sequence[str], index: int) -> uuid.UUID:
    return uuid.UUID(_checked(_UUID, segments[index], "uuid"))


def _path(segments: Sequence[str], index: int) -> str:
    # Greedy: consumes every remaining segment
    return "/".join(segments[index:])


CONVERTERS: dict[str, Converter] = {
    "string": _string,
    "int": _int,
    "float": _float,
    "uuid": _uuid,
    "path": _path,
}


def convert_param(segments: Sequence[str], index: int, param_type: str | None) -> MatchValue:
    """Convert the captured segment at *index* to the placeholder's type.

    Untyped placeholders and unknown type names capture the raw string.
    Raises ``ValueError`` if the string cannot be converted.
    """
    if param_type is None or param_type not in CONVERTERS:
        return segments[index]
    return CONVERTERS[param_type](segments, index)


def stringify_param(value: MatchValue) -> str:
    """Render a parameter value back into a path segment."""
    if isinstance(value, bool):
        msg = f"Cannot use a bool as a path parameter: {value!r}"
        raise ValueError(msg)
    return str(value)
