"""Base protocol for workspace file-system access."""

from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

from ..ignore import IgnoreSpec


@dataclass(frozen=True)
class FileStat:
    """Subset of stat() the sync engine relies on."""

    size: int
    mtime: int  # epoch milliseconds, compared for equality only
    is_file: bool


class FileSystem(Protocol):
    """
    Protocol for file-system implementations.

    All paths are POSIX strings relative to the workspace root. The metadata
    directory is addressed through the same root (``.securesync/...``).
    """

    def read(self, relpath: str) -> bytes:
        """
        Read a whole file.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        ...

    def write(self, relpath: str, data: bytes) -> None:
        """
        Write a whole file atomically, creating parent directories.
        """
        ...

    def stat(self, relpath: str) -> Optional[FileStat]:
        """
        Stat a path.

        Returns:
            FileStat, or None if nothing exists at ``relpath``
        """
        ...

    def list_directory(self, relpath: str) -> List[Tuple[str, bool]]:
        """
        List a directory.

        Returns:
            (name, is_directory) pairs, or an empty list if it doesn't exist
        """
        ...

    def create_directory(self, relpath: str) -> None:
        """
        Create a directory and its parents; no-op if it exists.
        """
        ...

    def delete(self, relpath: str) -> None:
        """
        Delete a file.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        ...

    def find_files(self, ignore: IgnoreSpec) -> List[str]:
        """
        Find every file under the root that isn't ignored.

        Returns:
            Sorted workspace-relative POSIX paths
        """
        ...
