"""Factory for creating transport instances."""

from pathlib import Path
from typing import Optional

from ..config import SyncConfig
from ..context import ProjectContext
from ..errors import ConfigError
from .base import Transport
from .directory import DirectoryTransport


def make_transport(config: SyncConfig, ctx: ProjectContext) -> Optional[Transport]:
    """
    Create a transport from configuration.

    Returns:
        Transport instance, or None when no provider is configured

    Raises:
        ConfigError: If configuration is invalid
    """
    provider = config.transport.provider
    if not provider:
        return None

    if provider == "directory":
        if not config.transport.location:
            raise ConfigError("transport.location (directory path) required for directory transport")
        location = Path(config.transport.location).expanduser()
        if not location.is_absolute():
            location = ctx.root / location
        return DirectoryTransport(ctx.remotes_dir, location)

    raise ConfigError(f"Transport provider {provider!r} not supported")
