"""Parameter validation: raw request parameters to a ``TransformSpec``."""

import math
import re
from typing import Any, Callable, Dict, Mapping, Tuple

from .exceptions import InvalidParameter
from .formats import validate_extension
from .models import TransformSpec

_TRUE_VALUES = frozenset({"true", "1"})
_FALSE_VALUES = frozenset({"false", "0"})
_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")


def _as_text(value: Any) -> str:
    """Normalise JSON scalars to the string form used by query params."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value).strip()


def _parse_uint(key: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise InvalidParameter(
            f"Invalid value for '{key}': '{raw}' is not an integer", key, raw
        ) from None
    if value < 0:
        raise InvalidParameter(
            f"Invalid value for '{key}': {value} must not be negative", key, raw
        )
    return value


def _parse_quality(key: str, raw: str) -> int:
    value = _parse_uint(key, raw)
    if value > 100:
        raise InvalidParameter(
            f"Invalid value for '{key}': {value} must be between 0 and 100",
            key,
            raw,
        )
    return value


def _parse_non_negative_float(key: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise InvalidParameter(
            f"Invalid value for '{key}': '{raw}' is not a number", key, raw
        ) from None
    if not math.isfinite(value):
        raise InvalidParameter(
            f"Invalid value for '{key}': '{raw}' is not a finite number", key, raw
        )
    if value < 0:
        raise InvalidParameter(
            f"Invalid value for '{key}': {raw} must not be negative", key, raw
        )
    return value


def _parse_bool(key: str, raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise InvalidParameter(
        f"Invalid value for '{key}': '{raw}' must be one of true, false, 1, 0",
        key,
        raw,
    )


def _parse_tint(key: str, raw: str) -> Tuple[int, int, int]:
    match = _HEX_COLOR.match(raw)
    if not match:
        raise InvalidParameter(
            f"Invalid value for '{key}': '{raw}' is not a 6-digit hex color",
            key,
            raw,
        )
    digits = match.group(1)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def _parse_format(key: str, raw: str) -> str:
    return validate_extension(raw, key=key)


PARSERS: Dict[str, Callable[[str, str], Any]] = {
    "width": _parse_uint,
    "height": _parse_uint,
    "quality": _parse_quality,
    "format": _parse_format,
    "rotate": _parse_non_negative_float,
    "greyscale": _parse_bool,
    "blur": _parse_non_negative_float,
    "flip": _parse_bool,
    "flop": _parse_bool,
    "tint": _parse_tint,
}


def validate_params(raw: Mapping[str, Any]) -> TransformSpec:
    """
    Parse and validate raw transformation parameters.

    Args:
        raw: Mapping of parameter name to raw value. Query strings give
            strings; JSON batch bodies may give numbers or booleans.

    Returns:
        An immutable ``TransformSpec``; empty when ``raw`` is empty.

    Raises:
        InvalidParameter: On an unknown key or a malformed value. The error
            carries the offending key and raw value.
    """
    parsed: Dict[str, Any] = {}
    for key, value in raw.items():
        parser = PARSERS.get(key)
        if parser is None:
            raise InvalidParameter(
                f"Unknown parameter '{key}'. "
                f"Allowed parameters: {', '.join(PARSERS)}",
                key,
                value,
            )
        parsed[key] = parser(key, _as_text(value))
    return TransformSpec(**parsed)
