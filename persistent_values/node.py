"""Persistent value node: read/write a declared value and gate the flow."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from persistent_values.blockif import evaluate_block_if, parse_block_if_rule
from persistent_values.coercion import CoercionError, coerce, values_equal
from persistent_values.context import ContextStoreError
from persistent_values.interfaces import Context, ContextProvider, JsonObject, JsonValue
from persistent_values.message import PathResolutionError, clone_message, resolve_path, write_path
from persistent_values.models import Command, Scope, ValueDeclaration, ValueNodeConfig, ValuesConfig

logger = logging.getLogger(__name__)

_MISSING = object()


class ConfigurationError(ValueError):
    """Raised when a value node cannot be set up from its configuration."""


@dataclass(frozen=True)
class NodeOutput:
    """Messages for the two output ports; None means nothing is sent."""

    primary: Optional[JsonObject] = None
    on_change: Optional[JsonObject] = None

    @property
    def blocked(self) -> bool:
        return self.primary is None and self.on_change is None

    def as_list(self) -> list[Optional[JsonObject]]:
        return [self.primary, self.on_change]


def build_context_key(values_config: ValuesConfig, declaration: ValueDeclaration) -> str:
    return f"{values_config.name}_{declaration.name}"


def merge_collected_values(accumulator: Any, key: str, value: JsonValue) -> JsonObject:
    """Return a new collected-values mapping with ``key`` set to ``value``."""
    merged: JsonObject = dict(accumulator) if isinstance(accumulator, Mapping) else {}
    merged[key] = value
    return merged


class ValueNode:
    """Handles inbound messages for one configured persistent value."""

    def __init__(self, config: ValueNodeConfig, values_config: Optional[ValuesConfig], store: ContextProvider) -> None:
        if values_config is None:
            raise ConfigurationError(f"Node '{config.id}' references missing values config '{config.values_config}'.")
        if values_config.id != config.values_config:
            raise ConfigurationError(
                f"Node '{config.id}' expects values config '{config.values_config}', got '{values_config.id}'."
            )

        declaration = values_config.resolve(config.value)
        if declaration is None:
            raise ConfigurationError(
                f"Node '{config.id}': value '{config.value}' is not declared in config '{values_config.name}'."
            )

        storage = config.storage or declaration.storage
        if not store.has_storage(storage):
            raise ConfigurationError(f"Node '{config.id}': unknown context storage '{storage}'.")

        self.config = config
        self.values_config = values_config
        self.declaration = declaration
        self.storage = storage
        self.context_key = build_context_key(values_config, declaration)
        self.context = _select_context(store, declaration.scope, config)
        self.block_if_rule = parse_block_if_rule(config.block_if_rule)

    @property
    def id(self) -> str:
        return self.config.id

    def warn(self, message: str) -> None:
        logger.warning("[%s] %s", self.config.id, message)

    def handle(self, message: Mapping[str, Any]) -> NodeOutput:
        """Process one inbound message and return the messages for both ports."""
        try:
            return self._handle(message)
        except (ContextStoreError, PathResolutionError) as exc:
            self.warn(f"Forwarding message unchanged: {exc}")
            return NodeOutput(primary=clone_message(message))

    def _handle(self, message: Mapping[str, Any]) -> NodeOutput:
        if self.config.command is Command.WRITE:
            value, changed = self._write(message)
        else:
            value, changed = self._read(), False

        if self.config.block_if_enable:
            decision = evaluate_block_if(
                self.block_if_rule,
                value,
                self.config.block_if_compare_value,
                self.declaration.datatype,
            )
            if decision.warning:
                self.warn(decision.warning)
            if decision.blocked:
                logger.debug("[%s] blocked by rule %s", self.config.id, self.config.block_if_rule)
                return NodeOutput()

        primary = clone_message(message)
        write_path(primary, self.config.msg_property, value)

        if self.config.collect_values:
            property_path = self.config.collect_values_msg_property
            accumulator = resolve_path(message, property_path, default=None, raise_on_missing=False)
            write_path(primary, property_path, merge_collected_values(accumulator, self.context_key, value))

        on_change = clone_message(primary) if changed else None
        return NodeOutput(primary=primary, on_change=on_change)

    def _read(self) -> JsonValue:
        stored = self.context.get(self.context_key, self.storage)
        if stored is None:
            stored = self.declaration.default
        return self._coerce(stored, "stored")

    def _write(self, message: Mapping[str, Any]) -> tuple[JsonValue, bool]:
        incoming = resolve_path(message, self.config.msg_property, default=_MISSING, raise_on_missing=False)
        previous = self.context.get(self.context_key, self.storage)

        # None is indistinguishable from an absent context entry, so it is never stored.
        if incoming is _MISSING or incoming is None:
            self.warn(f"Message property '{self.config.msg_property}' is missing or null, nothing written.")
            fallback = self.declaration.default if previous is None else previous
            return self._coerce(fallback, "stored"), False

        value = self._coerce(incoming, "incoming")
        if previous is not None and values_equal(previous, value):
            return value, False

        self.context.set(self.context_key, value, self.storage)
        return value, True

    def _coerce(self, value: Any, origin: str) -> JsonValue:
        try:
            return coerce(value, self.declaration.datatype)
        except CoercionError as exc:
            self.warn(f"Using {origin} value as is: {exc}")
            return value


def _select_context(store: ContextProvider, scope: Scope, config: ValueNodeConfig) -> Context:
    if scope is Scope.NODE:
        return store.node(config.id)
    if scope is Scope.FLOW:
        return store.flow(config.flow_id)
    return store.global_()
