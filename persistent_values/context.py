"""Context store with pluggable memory and file backends."""

from __future__ import annotations

import json
import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, MutableMapping, Optional, Protocol

from persistent_values.interfaces import JsonValue

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_ALIAS = "default"
GLOBAL_SCOPE = "global"


class ContextStoreError(RuntimeError):
    """Raised when a context backend cannot be selected, read or written."""


class ContextStorage(Protocol):
    """A storage backend holding one key-value namespace per scope."""

    def get(self, scope: str, key: str) -> JsonValue: ...

    def set(self, scope: str, key: str, value: JsonValue) -> None: ...

    def delete(self, scope: str, key: str) -> None: ...

    def keys(self, scope: str) -> List[str]: ...


class MemoryContextStorage:
    """Process-local storage; values are lost when the process exits."""

    def __init__(self) -> None:
        self._scopes: Dict[str, Dict[str, JsonValue]] = {}

    def get(self, scope: str, key: str) -> JsonValue:
        return deepcopy(self._scopes.get(scope, {}).get(key))

    def set(self, scope: str, key: str, value: JsonValue) -> None:
        self._scopes.setdefault(scope, {})[key] = deepcopy(value)

    def delete(self, scope: str, key: str) -> None:
        self._scopes.get(scope, {}).pop(key, None)

    def keys(self, scope: str) -> List[str]:
        return list(self._scopes.get(scope, {}))


class FileContextStorage:
    """Durable storage writing one JSON document per scope.

    Documents live at ``<directory>/<scope>.json``. Each scope is loaded on first
    access and written through on every change, so a new instance pointed at the
    same directory sees previously stored values.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        self._cache: Dict[str, Dict[str, JsonValue]] = {}

    def get(self, scope: str, key: str) -> JsonValue:
        return deepcopy(self._load(scope).get(key))

    def set(self, scope: str, key: str, value: JsonValue) -> None:
        updated = dict(self._load(scope))
        updated[key] = deepcopy(value)
        self._flush(scope, updated)
        self._cache[scope] = updated

    def delete(self, scope: str, key: str) -> None:
        data = self._load(scope)
        if key in data:
            updated = {name: value for name, value in data.items() if name != key}
            self._flush(scope, updated)
            self._cache[scope] = updated

    def keys(self, scope: str) -> List[str]:
        return list(self._load(scope))

    def _path(self, scope: str) -> Path:
        safe_scope = scope.replace(os.sep, "_").replace(":", "_")
        return self.directory / f"{safe_scope}.json"

    def _load(self, scope: str) -> Dict[str, JsonValue]:
        if scope in self._cache:
            return self._cache[scope]

        path = self._path(scope)
        data: Dict[str, JsonValue] = {}
        if path.exists():
            try:
                loaded = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise ContextStoreError(f"Failed to read context file {path}: {exc}") from exc
            if not isinstance(loaded, dict):
                raise ContextStoreError(f"Context file {path} must contain a JSON object.")
            data = loaded
        self._cache[scope] = data
        return data

    def _flush(self, scope: str, data: Mapping[str, JsonValue]) -> None:
        path = self._path(scope)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            tmp_path.unlink(missing_ok=True)
            raise ContextStoreError(f"Failed to write context file {path}: {exc}") from exc


class ContextStore:
    """Registry of named storage backends with a configurable default."""

    def __init__(self, backends: MutableMapping[str, ContextStorage], *, default: str) -> None:
        if not backends:
            raise ContextStoreError("At least one context storage backend is required.")
        if DEFAULT_STORAGE_ALIAS in backends:
            raise ContextStoreError(f"'{DEFAULT_STORAGE_ALIAS}' is reserved for the default backend alias.")
        if default not in backends:
            raise ContextStoreError(f"Default storage '{default}' is not a configured backend.")
        self.backends = backends
        self.default = default

    def backend(self, name: Optional[str] = None) -> ContextStorage:
        """Return the backend for a name; None and 'default' select the default backend."""
        resolved = self.default if name in (None, DEFAULT_STORAGE_ALIAS) else name
        try:
            return self.backends[resolved]
        except KeyError as exc:
            raise ContextStoreError(f"Unknown context storage '{name}'.") from exc

    def has_storage(self, name: str) -> bool:
        return name == DEFAULT_STORAGE_ALIAS or name in self.backends

    def scoped(self, scope: str) -> "ScopedContext":
        return ScopedContext(self, scope)

    def node(self, node_id: str) -> "ScopedContext":
        return self.scoped(f"node:{node_id}")

    def flow(self, flow_id: str) -> "ScopedContext":
        return self.scoped(f"flow:{flow_id}")

    def global_(self) -> "ScopedContext":
        return self.scoped(GLOBAL_SCOPE)


class ScopedContext:
    """Context view bound to one scope; None from get() means absent."""

    def __init__(self, store: ContextStore, scope: str) -> None:
        self.store = store
        self.scope = scope

    def get(self, key: str, storage: Optional[str] = None) -> JsonValue:
        return self.store.backend(storage).get(self.scope, key)

    def set(self, key: str, value: JsonValue, storage: Optional[str] = None) -> None:
        logger.debug("context set scope=%s key=%s storage=%s", self.scope, key, storage or DEFAULT_STORAGE_ALIAS)
        self.store.backend(storage).set(self.scope, key, value)

    def delete(self, key: str, storage: Optional[str] = None) -> None:
        self.store.backend(storage).delete(self.scope, key)

    def keys(self, storage: Optional[str] = None) -> List[str]:
        return self.store.backend(storage).keys(self.scope)
