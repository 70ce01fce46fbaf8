"""
RestSpy Server Registry

Directory of running local servers keyed by port, and the lock that
serializes their lifecycle transitions.
"""

from __future__ import annotations

import atexit
import logging
import threading
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from .errors import DuplicatePortError

if TYPE_CHECKING:
    from .server import LocalServer

logger = logging.getLogger("restspy.registry")


class ServerRegistry:
    """
    Lock-guarded map of port -> running LocalServer.

    Harnesses can own an explicit instance and call shutdown() on teardown.
    Code that does not pass one gets the process-wide default, which is
    drained by an atexit hook.

    Example:
        registry = ServerRegistry()
        server = LocalServer(8080, registry=registry)
        server.start()
        ...
        registry.shutdown()
    """

    _default: Optional[ServerRegistry] = None
    _default_lock = threading.Lock()

    def __init__(self):
        self._servers: Dict[int, LocalServer] = {}
        self._mutex = threading.RLock()
        self._shut_down = False

    @classmethod
    def default(cls) -> ServerRegistry:
        """Process-wide registry, created on first use."""
        with cls._default_lock:
            if cls._default is None:
                cls._default = cls()
                atexit.register(cls._default.shutdown)
            return cls._default

    @property
    def mutex(self) -> threading.RLock:
        """Lock held by LocalServer.start/stop for their whole body."""
        return self._mutex

    def register(self, server: LocalServer):
        """
        Register a server under its port.

        Raises:
            DuplicatePortError: If a server is already registered for the port
        """
        with self._mutex:
            if server.port in self._servers:
                raise DuplicatePortError(server.port)
            self._servers[server.port] = server

    def unregister(self, server: LocalServer) -> bool:
        """
        Remove the entry for a server's port.

        Returns:
            True if an entry was removed, False if the port was not registered
        """
        with self._mutex:
            if server.port not in self._servers:
                return False
            del self._servers[server.port]
            return True

    def each(self, visitor: Callable[[LocalServer], None]):
        """Call visitor once per registered server, over a snapshot."""
        with self._mutex:
            snapshot: List[LocalServer] = list(self._servers.values())
        for server in snapshot:
            visitor(server)

    def shutdown(self):
        """
        Stop every registered server. Runs at most once.

        A failure stopping one server is logged and does not prevent the
        others from being stopped.
        """
        with self._mutex:
            if self._shut_down:
                return
            self._shut_down = True

        def stop_quietly(server: LocalServer):
            try:
                server.stop()
            except Exception:
                logger.exception(f"Failed to stop server on port {server.port}")

        self.each(stop_quietly)

    def __contains__(self, port: int) -> bool:
        with self._mutex:
            return port in self._servers

    def __len__(self) -> int:
        with self._mutex:
            return len(self._servers)
