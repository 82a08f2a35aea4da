"""Block-if rule evaluation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from persistent_values.coercion import CoercionError, DataType, coerce, matches_datatype, values_equal

TYPE_MISMATCH_WARNING = "Type mismatch of block flow values"
UNKNOWN_RULE_WARNING = "Unknown block-if rule"


class BlockIfRule(str, Enum):
    EQUAL = "eq"
    NOT_EQUAL = "neq"


@dataclass(frozen=True)
class UnrecognizedRule:
    """A configured rule string outside the supported set."""

    raw: str


@dataclass(frozen=True)
class BlockDecision:
    blocked: bool
    warning: Optional[str] = None


_COMPARATORS: Dict[BlockIfRule, Callable[[Any, Any], bool]] = {
    BlockIfRule.EQUAL: lambda a, b: values_equal(a, b),
    BlockIfRule.NOT_EQUAL: lambda a, b: not values_equal(a, b),
}


def parse_block_if_rule(raw: str) -> BlockIfRule | UnrecognizedRule:
    try:
        return BlockIfRule(raw)
    except ValueError:
        return UnrecognizedRule(raw)


def evaluate_block_if(
    rule: BlockIfRule | UnrecognizedRule,
    value: Any,
    compare_value: Any,
    datatype: DataType,
) -> BlockDecision:
    """Decide whether the effective value blocks further flow processing.

    Unknown rules and values that do not fit the declared datatype never block;
    they yield a warning for the caller to report instead.
    """
    if isinstance(rule, UnrecognizedRule):
        return BlockDecision(blocked=False, warning=f"{UNKNOWN_RULE_WARNING} '{rule.raw}'.")

    try:
        expected = coerce(compare_value, datatype)
    except CoercionError:
        return BlockDecision(
            blocked=False,
            warning=f"{TYPE_MISMATCH_WARNING}: compare value {compare_value!r} is not '{DataType(datatype).value}'.",
        )
    if not matches_datatype(value, datatype):
        return BlockDecision(
            blocked=False,
            warning=f"{TYPE_MISMATCH_WARNING}: value {value!r} is not '{DataType(datatype).value}'.",
        )

    return BlockDecision(blocked=_COMPARATORS[rule](value, expected))
