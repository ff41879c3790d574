"""Project context for managing paths and workspace discovery."""

from pathlib import Path
from typing import Iterable, Optional, Union

from .constants import (
    CONFIG_FILE,
    HEAD_FILE,
    LOCK_FILE,
    REMOTES_DIR,
    SECURESYNC_DIR,
)
from .errors import WorkspaceNotFoundError
from .ignore import IgnoreSpec


class ProjectContext:
    """Manages workspace root discovery and metadata path resolution."""

    def __init__(self, start_path: Optional[Path] = None):
        """Initialize context by finding the workspace root.

        Args:
            start_path: Path to start searching for the workspace root

        Raises:
            WorkspaceNotFoundError: If no metadata directory is found
        """
        root = self._find_root(start_path or Path.cwd())
        if not root:
            raise WorkspaceNotFoundError(
                f"Not inside a securesync workspace (no {SECURESYNC_DIR} found)"
            )
        self.root = root
        self._ignore_spec: Optional[IgnoreSpec] = None

    @classmethod
    def is_initialized(cls, path: Optional[Path] = None) -> bool:
        """Check if a specific directory is initialized (without traversing up)."""
        target = path or Path.cwd()
        return (target / SECURESYNC_DIR).is_dir()

    @classmethod
    def init(cls, path: Optional[Path] = None) -> "ProjectContext":
        """Create the metadata directory at ``path`` and return its context."""
        target = path or Path.cwd()
        if not target.is_dir():
            raise WorkspaceNotFoundError(f"Workspace root does not exist: {target}")
        (target / SECURESYNC_DIR / REMOTES_DIR).mkdir(parents=True, exist_ok=True)
        return cls(target)

    def _find_root(self, start: Path) -> Optional[Path]:
        """Walk up directory tree to find the workspace root."""
        current = start.resolve()

        while current != current.parent:
            if (current / SECURESYNC_DIR).is_dir():
                return current
            current = current.parent

        # Check root directory
        if (current / SECURESYNC_DIR).is_dir():
            return current
        return None

    def resolve(self, path: Union[str, Path]) -> str:
        """Convert any path to a workspace-relative POSIX string."""
        p = Path(path)
        absolute = p if p.is_absolute() else (Path.cwd() / p)
        try:
            return absolute.resolve().relative_to(self.root).as_posix()
        except ValueError:
            raise ValueError(f"Path {p} is outside workspace")

    @property
    def storage_dir(self) -> Path:
        """Get the metadata directory."""
        return self.root / SECURESYNC_DIR

    @property
    def remotes_dir(self) -> Path:
        """Get the encrypted object tree that transports move around."""
        return self.storage_dir / REMOTES_DIR

    @property
    def config_path(self) -> Path:
        return self.storage_dir / CONFIG_FILE

    @property
    def head_path(self) -> Path:
        return self.storage_dir / HEAD_FILE

    @property
    def lock_path(self) -> Path:
        return self.storage_dir / LOCK_FILE

    def get_ignore_spec(self, extra: Iterable[str] = ()) -> IgnoreSpec:
        """Get the ignore specification (memoized on first call)."""
        if self._ignore_spec is None:
            self._ignore_spec = IgnoreSpec(self.root, extra)
        return self._ignore_spec

    def should_ignore(self, relpath: Union[str, Path]) -> bool:
        """Check if a path should be ignored.

        Args:
            relpath: Either a workspace-relative POSIX string or a Path
        """
        if isinstance(relpath, Path):
            relpath = relpath.as_posix()
        return self.get_ignore_spec().is_ignored(relpath)
