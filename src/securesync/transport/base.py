"""Base protocol for remote transports."""

from typing import Protocol


class Transport(Protocol):
    """
    Protocol for moving the encrypted ``remotes/`` tree to and from a remote.

    Transports only ever see ciphertext. Object files are immutable and are
    copied at most once; branch refs are the only files that get replaced.
    Errors are raised as TransportError subclasses and never retried here.
    """

    def remote_index_exists(self) -> bool:
        """
        Check whether the remote holds any branch at all.

        Returns:
            True if at least one branch ref exists remotely
        """
        ...

    def pull_latest(self, branch: str) -> bool:
        """
        Fetch new objects and the remote ref of ``branch``.

        Returns:
            True if the local ref of ``branch`` changed
        """
        ...

    def push_latest(self, branch: str) -> bool:
        """
        Upload objects the remote lacks and replace its ref of ``branch``.

        Returns:
            True if anything was uploaded
        """
        ...

    def clone_all(self) -> None:
        """Fetch every object and every branch ref from the remote."""
        ...
