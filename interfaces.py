"""Shared protocol definitions for persistent value nodes."""

from __future__ import annotations

from typing import Dict, Optional, Protocol, TypeAlias, runtime_checkable

JsonPrimitive = str | int | float | bool | None
JsonValue: TypeAlias = JsonPrimitive | Dict[str, "JsonValue"] | list["JsonValue"]
JsonObject: TypeAlias = Dict[str, JsonValue]


@runtime_checkable
class Context(Protocol):
    """Key-value context capability bound to one scope (node, flow or global)."""

    def get(self, key: str, storage: Optional[str] = None) -> JsonValue:
        """Return the stored value, or None when the key is absent."""

    def set(self, key: str, value: JsonValue, storage: Optional[str] = None) -> None:
        """Store a value under the key in the selected storage backend."""


@runtime_checkable
class ContextProvider(Protocol):
    """Hands out scoped contexts and validates backend names."""

    def node(self, node_id: str) -> Context:
        """Context private to a single node."""

    def flow(self, flow_id: str) -> Context:
        """Context shared by all nodes of one flow."""

    def global_(self) -> Context:
        """Context shared by every flow."""

    def has_storage(self, name: str) -> bool:
        """Whether the named backend (or the `default` alias) is configured."""
