"""Persistent values re-export shared interfaces."""

from __future__ import annotations

from interfaces import Context, ContextProvider, JsonObject, JsonPrimitive, JsonValue  # noqa: F401

__all__ = [
    "Context",
    "ContextProvider",
    "JsonObject",
    "JsonPrimitive",
    "JsonValue",
]
