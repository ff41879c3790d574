"""Storage package for workspace file-system access."""

from .base import FileStat, FileSystem
from .fs import LocalFileSystem

__all__ = ["FileStat", "FileSystem", "LocalFileSystem"]
