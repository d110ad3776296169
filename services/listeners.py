"""
Listener registration.

Listen directives (and the default listener chosen at finalization) are
validated here: the host is resolved to its addresses and the request is
recorded. Binding the sockets is left to the serving layer, which reads
ListenerRegistry.listeners once startup has finished.
"""

from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class Listener:
    """A resolved listen request."""

    host: Optional[str]
    """Host or interface name; None means all interfaces."""

    port: int
    addresses: Tuple[str, ...]
    """Numeric addresses the host resolved to."""

    def __str__(self) -> str:
        return f"{self.host or '*'}:{self.port}"


class ListenerRegistry:
    """
    Records listen requests made while the configuration is loaded.

    create_listeners() has the signature the directive interpreter expects,
    so a bound method can be passed straight to load_system().
    """

    def __init__(self, resolver: Optional[Callable] = None):
        # getaddrinfo-compatible; the system resolver by default
        self._resolver = resolver or socket.getaddrinfo
        self._listeners: List[Listener] = []

    @property
    def listeners(self) -> List[Listener]:
        """Registered listeners, in registration order."""
        return list(self._listeners)

    def __len__(self) -> int:
        return len(self._listeners)

    def create_listeners(self, host: Optional[str], port: int) -> bool:
        """
        Resolve and record a listener.

        Args:
            host: Host name or address ("*" or None for all interfaces,
                IPv6 addresses may be bracketed)
            port: TCP port

        Returns:
            True on success, False if the host could not be resolved
        """
        if host in (None, "", "*"):
            host = None
            lookup = None
        else:
            lookup = host.strip("[]")

        try:
            infos = self._resolver(lookup, port, socket.AF_UNSPEC, socket.SOCK_STREAM, 0, socket.AI_PASSIVE)
        except OSError as e:
            logger.error(f"Unable to resolve listen address {host or '*'}:{port}: {e}")
            return False

        addresses = tuple(sorted({info[4][0] for info in infos}))
        if not addresses:
            logger.error(f"No addresses for listen address {host or '*'}:{port}")
            return False

        listener = Listener(host=host, port=port, addresses=addresses)
        self._listeners.append(listener)
        logger.info(f"Listening on {listener} ({', '.join(addresses)}).")
        return True
