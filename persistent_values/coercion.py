"""Type coercion for declared value datatypes."""

from __future__ import annotations

import json
import math
import re
from enum import Enum
from typing import Any


# ASCII digits only; no underscores, no inf/nan spellings.
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
_DECIMAL_PATTERN = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class DataType(str, Enum):
    """Primitive datatypes a persistent value can be declared with."""

    BOOL = "bool"
    NUM = "num"
    STR = "str"


class CoercionError(ValueError):
    """Raised when a value cannot be converted to the declared datatype."""


def coerce(value: Any, datatype: DataType) -> Any:
    """Convert a raw message/config value to the declared datatype."""
    datatype = DataType(datatype)
    if datatype is DataType.BOOL:
        return _coerce_bool(value)
    if datatype is DataType.NUM:
        return _coerce_num(value)
    return _stringify(value)


def matches_datatype(value: Any, datatype: DataType) -> bool:
    """Check the nominal type of a value without converting it."""
    datatype = DataType(datatype)
    if datatype is DataType.BOOL:
        return isinstance(value, bool)
    if datatype is DataType.NUM:
        return _is_number(value)
    return isinstance(value, str)


def values_equal(left: Any, right: Any) -> bool:
    """Equality that never treats a boolean as equal to a number."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    return left == right


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise CoercionError(f"Cannot interpret {value!r} as bool.")


def _coerce_num(value: Any) -> int | float:
    if _is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if _INTEGER_PATTERN.fullmatch(text):
            return int(text)
        if _DECIMAL_PATTERN.fullmatch(text):
            parsed = float(text)
            if math.isfinite(parsed):
                return parsed
    raise CoercionError(f"Cannot interpret {value!r} as num.")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not isinstance(value, float) or math.isfinite(value)


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)
