"""Context storage settings loaded from the environment."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from persistent_values.context import ContextStore, FileContextStorage, MemoryContextStorage

ENV_DEFAULT_STORAGE = "PERSISTENT_VALUES_DEFAULT_STORAGE"
ENV_CONTEXT_DIR = "PERSISTENT_VALUES_CONTEXT_DIR"


class ContextSettings(BaseModel):
    """Equivalent of the host's ``contextStorage`` setting."""

    default: Literal["memory", "file"] = "memory"
    file_directory: Path = Field(default=Path(".node-red-context"), alias="fileDirectory")

    model_config = ConfigDict(extra="forbid", validate_by_name=True)


def load_context_settings(env_file: Optional[Path | str] = None) -> ContextSettings:
    """Read settings from the process environment, optionally seeded from a .env file."""
    if env_file is not None:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)

    values: dict[str, str] = {}
    if os.environ.get(ENV_DEFAULT_STORAGE):
        values["default"] = os.environ[ENV_DEFAULT_STORAGE].strip()
    if os.environ.get(ENV_CONTEXT_DIR):
        values["file_directory"] = os.environ[ENV_CONTEXT_DIR]
    return ContextSettings.model_validate(values)


def build_context_store(settings: ContextSettings) -> ContextStore:
    """Create a store with a ``memory`` and a ``file`` backend."""
    return ContextStore(
        {
            "memory": MemoryContextStorage(),
            "file": FileContextStorage(settings.file_directory),
        },
        default=settings.default,
    )
