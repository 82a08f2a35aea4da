"""Pydantic models for persistent value flow configuration."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from persistent_values.coercion import CoercionError, DataType, coerce
from persistent_values.interfaces import JsonPrimitive

VALUES_CONFIG_TYPE = "persistent values config"
VALUE_NODE_TYPE = "persistent value"
DEFAULT_STORAGE = "default"
DEFAULT_MSG_PROPERTY = "payload"
DEFAULT_COLLECT_VALUES_PROPERTY = "collectedValues"


class Scope(str, Enum):
    """Context namespace a value is stored in."""

    NODE = "node"
    FLOW = "flow"
    GLOBAL = "global"


class Command(str, Enum):
    READ = "read"
    WRITE = "write"


class ValueDeclaration(BaseModel):
    """Named, typed value definition shared by value nodes."""

    name: str
    datatype: DataType
    default: JsonPrimitive = Field(...)
    scope: Scope = Scope.GLOBAL
    storage: str = DEFAULT_STORAGE

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Value name must be a non-empty string.")
        return value

    @field_validator("default")
    @classmethod
    def coerce_default(cls, value: JsonPrimitive, info: ValidationInfo) -> JsonPrimitive:
        datatype = info.data.get("datatype")
        if datatype is None:
            # datatype failed validation; that error is reported on its own.
            return value
        try:
            return coerce(value, datatype)
        except CoercionError as exc:
            raise ValueError(f"Default {value!r} does not match datatype '{datatype.value}'.") from exc

    @field_validator("storage")
    @classmethod
    def validate_storage(cls, value: str) -> str:
        return value.strip() or DEFAULT_STORAGE


class ValuesConfig(BaseModel):
    """Immutable catalog of value declarations (the config node)."""

    id: str
    type: Literal["persistent values config"] = VALUES_CONFIG_TYPE
    name: str
    values: Tuple[ValueDeclaration, ...] = ()

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("id", "name")
    @classmethod
    def validate_non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Config id and name must be non-empty strings.")
        return value

    @model_validator(mode="after")
    def validate_unique_names(self) -> "ValuesConfig":
        seen: set[str] = set()
        for declaration in self.values:
            if declaration.name in seen:
                raise ValueError(f"Duplicate value name detected: '{declaration.name}'")
            seen.add(declaration.name)
        return self

    def resolve(self, name: str) -> Optional[ValueDeclaration]:
        """Return the declaration with the given name, if any."""
        return next((declaration for declaration in self.values if declaration.name == name), None)


class ValueNodeConfig(BaseModel):
    """Settings of a single persistent value node instance."""

    id: str
    type: Literal["persistent value"] = VALUE_NODE_TYPE
    name: str = ""
    values_config: str = Field(..., alias="valuesConfig")
    value: str
    command: Command = Command.READ
    msg_property: str = Field(default=DEFAULT_MSG_PROPERTY, alias="msgProperty")
    collect_values: bool = Field(default=False, alias="collectValues")
    collect_values_msg_property: str = Field(
        default=DEFAULT_COLLECT_VALUES_PROPERTY, alias="collectValuesMsgProperty"
    )
    block_if_enable: bool = Field(default=False, alias="blockIfEnable")
    block_if_rule: str = Field(default="eq", alias="blockIfRule")
    block_if_compare_value: JsonPrimitive = Field(default=None, alias="blockIfCompareValue")
    storage: Optional[str] = None
    wires: List[List[str]] = Field(default_factory=list)
    flow_id: str = Field(default="flow", alias="z")

    # Editor-only keys (x, y, ...) are ignored.
    model_config = ConfigDict(extra="ignore", validate_by_name=True, frozen=True)

    @field_validator("id", "value")
    @classmethod
    def validate_non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Node id and value name must be non-empty strings.")
        return value

    @field_validator("msg_property")
    @classmethod
    def default_msg_property(cls, value: str) -> str:
        return _property_path(value, DEFAULT_MSG_PROPERTY)

    @field_validator("collect_values_msg_property")
    @classmethod
    def default_collect_property(cls, value: str) -> str:
        return _property_path(value, DEFAULT_COLLECT_VALUES_PROPERTY)

    @field_validator("storage")
    @classmethod
    def blank_storage_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()


def _property_path(value: str, default: str) -> str:
    path = value.strip()
    if not path:
        return default
    if not any(part.strip() for part in path.split(".")):
        raise ValueError(f"Message property '{value}' has no property names.")
    return path


class FlowConfig(BaseModel):
    """Persistent value related nodes of a deployed flow."""

    configs: List[ValuesConfig] = Field(default_factory=list)
    nodes: List[ValueNodeConfig] = Field(default_factory=list)
    sinks: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "FlowConfig":
        seen: set[str] = set()
        for node_id in [config.id for config in self.configs] + [node.id for node in self.nodes] + self.sinks:
            if node_id in seen:
                raise ValueError(f"Duplicate node id detected: '{node_id}'")
            seen.add(node_id)
        return self

    @classmethod
    def from_entries(cls, entries: List[Dict[str, Any]]) -> "FlowConfig":
        """Split raw flow entries by node type; unknown types become sinks."""
        configs: List[Dict[str, Any]] = []
        nodes: List[Dict[str, Any]] = []
        sinks: List[str] = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError(f"Flow entries must be objects, got {type(entry).__name__}.")
            node_type = entry.get("type")
            if node_type == VALUES_CONFIG_TYPE:
                configs.append(entry)
            elif node_type == VALUE_NODE_TYPE:
                nodes.append(entry)
            elif "id" in entry:
                sinks.append(str(entry["id"]))
        return cls.model_validate({"configs": configs, "nodes": nodes, "sinks": sinks})


def load_flow_config(path: Path | str) -> FlowConfig:
    """Read and validate a flow definition from a JSON file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Flow configuration not found: {path}")

    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("nodes", [])
    if not isinstance(payload, list):
        raise ValueError("Flow configuration must be a list of nodes or an object with 'nodes'.")
    return FlowConfig.from_entries(payload)
