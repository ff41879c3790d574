"""Transports move the encrypted object tree between machines."""

from .base import Transport
from .directory import DirectoryTransport
from .factory import make_transport

__all__ = ["Transport", "DirectoryTransport", "make_transport"]
