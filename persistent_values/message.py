"""Utilities for reading and writing (dotted) message properties."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Dict, Mapping, Tuple

from persistent_values.interfaces import JsonObject


class PathResolutionError(KeyError):
    """Raised when a message property path cannot be resolved."""


def _split_path(path: str) -> Tuple[str, ...]:
    if not path or not path.strip():
        raise ValueError("Path must be a non-empty string.")
    parts = tuple(part.strip() for part in path.split(".") if part.strip())
    if not parts:
        raise ValueError(f"Path '{path}' has no property names.")
    return parts


def resolve_path(data: Mapping[str, Any], path: str, *, default: Any = None, raise_on_missing: bool = True) -> Any:
    """Resolve a dotted path inside a nested message."""
    current: Any = data
    for part in _split_path(path):
        if not isinstance(current, Mapping) or part not in current:
            if raise_on_missing:
                raise PathResolutionError(f"Path '{path}' not found at segment '{part}'.")
            return default
        current = current[part]
    return current


def ensure_container(data: Dict[str, Any], path: str) -> Tuple[Dict[str, Any], str]:
    """Ensure all parent containers for a path exist and return the parent dict and final key."""
    parts = _split_path(path)
    if len(parts) == 1:
        return data, parts[0]

    current: Any = data
    for part in parts[:-1]:
        if part not in current or current[part] is None:
            current[part] = {}
        elif not isinstance(current[part], dict):
            raise PathResolutionError(f"Expected dict at '{part}', found {type(current[part]).__name__}.")
        current = current[part]

    return current, parts[-1]


def write_path(data: Dict[str, Any], path: str, value: Any) -> None:
    """Write a value to the specified path, creating intermediate containers as needed."""
    container, key = ensure_container(data, path)
    container[key] = deepcopy(value)


def clone_message(message: Mapping[str, Any]) -> JsonObject:
    """Deep copy a message so outbound messages never alias the inbound one."""
    return deepcopy(dict(message))
