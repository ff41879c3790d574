"""Gitignore-style pattern matching for securesync."""

from pathlib import Path
from typing import Iterable

from pathspec import PathSpec
from pathspec.patterns import GitWildMatchPattern

from .constants import IGNORE_FILE, SECURESYNC_DIR


# Default patterns to always ignore
DEFAULTS = [
    # securesync metadata (object store, refs, workspace index)
    f"{SECURESYNC_DIR}/",

    # Version control
    ".git/",

    # Dependency trees
    "node_modules/",

    # IDE and editors
    ".vscode/",
    ".idea/",
    "*.swp",
    "*~",

    # OS files
    ".DS_Store",
    "Thumbs.db",
]


def is_internal_path(relpath: str) -> bool:
    """True for paths inside the metadata directory.

    Reconciliation never writes or deletes these, whatever the patterns say.
    """
    return relpath == SECURESYNC_DIR or relpath.startswith(SECURESYNC_DIR + "/")


class IgnoreSpec:
    """Manages gitignore-style patterns for file exclusion."""

    def __init__(self, root: Path, extra: Iterable[str] = ()):
        """Initialize ignore spec with default and custom patterns.

        Args:
            root: Workspace root directory
            extra: Additional patterns to include (e.g. from config.yaml)
        """
        self.root = root
        patterns = list(DEFAULTS)

        # Load project-specific ignore file if it exists
        ignore_file = root / IGNORE_FILE
        if ignore_file.exists():
            for line in ignore_file.read_text().splitlines():
                line = line.strip()
                if line and not line.startswith("#"):
                    patterns.append(line)

        patterns.extend(extra)
        self.patterns = patterns

        # Compile patterns once for efficiency
        self.spec = PathSpec.from_lines(GitWildMatchPattern, patterns)

    def is_ignored(self, relpath: str) -> bool:
        """Check if a workspace-relative POSIX path should be ignored."""
        if is_internal_path(relpath):
            return True
        return self.spec.match_file(relpath)

    def should_traverse(self, dirpath: str) -> bool:
        """Check if a directory should be traversed during scanning.

        Args:
            dirpath: Workspace-relative directory path in POSIX format
        """
        if is_internal_path(dirpath.rstrip("/")):
            return False

        # Add trailing slash to match directory patterns
        if not dirpath.endswith("/"):
            dirpath = dirpath + "/"

        return not self.spec.match_file(dirpath)
