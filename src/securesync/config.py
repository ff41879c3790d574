"""Workspace configuration (stored in .securesync/config.yaml)."""

import os
import uuid
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .constants import DEFAULT_BRANCH, KEY_ENV_VAR
from .context import ProjectContext
from .crypto import validate_key
from .errors import ConfigError
from .storage.fs import atomic_write_text


class TransportConfig(BaseModel):
    """Where the encrypted object tree is pushed to and pulled from.

    ``provider == ""`` means local-only: nothing is pushed or pulled.
    """

    provider: Literal["", "directory"] = ""
    location: str = ""


class SyncConfig(BaseModel):
    """Workspace configuration."""

    environment_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    default_branch: str = DEFAULT_BRANCH
    transport: TransportConfig = Field(default_factory=TransportConfig)
    ignore: List[str] = Field(default_factory=list)
    resolution: Literal["auto", "interactive"] = "auto"


def load_config(ctx: Optional[ProjectContext] = None) -> SyncConfig:
    """Load workspace configuration.

    A missing file is created with defaults, so the generated environment id
    stays fixed for this workspace.

    Raises:
        ConfigError: If the file isn't valid YAML or fails validation
    """
    if ctx is None:
        ctx = ProjectContext()

    if not ctx.config_path.exists():
        config = SyncConfig()
        save_config(config, ctx)
        return config

    try:
        with ctx.config_path.open() as f:
            data = yaml.safe_load(f) or {}
        return SyncConfig(**data)
    except (yaml.YAMLError, ValidationError, TypeError) as e:
        raise ConfigError(f"Invalid configuration at {ctx.config_path}: {e}") from e


def save_config(config: SyncConfig, ctx: Optional[ProjectContext] = None) -> None:
    """Save workspace configuration atomically."""
    if ctx is None:
        ctx = ProjectContext()

    config_text = yaml.safe_dump(config.model_dump(), default_flow_style=False, sort_keys=False)
    atomic_write_text(ctx.config_path, config_text)


def resolve_key(explicit: Optional[str] = None) -> str:
    """Pick the encryption key: explicit argument, else the environment.

    Raises:
        InvalidKeyError: If no key is available or it is malformed
    """
    key = explicit or os.environ.get(KEY_ENV_VAR, "")
    validate_key(key)
    return key
