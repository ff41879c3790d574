"""securesync: end-to-end encrypted directory sync with branches."""

from .constants import SECURESYNC_VERSION as __version__

__all__ = ["__version__"]
