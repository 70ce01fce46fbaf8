"""
RestSpy Servers

Handles for spy servers under test.

- LocalServer: owns a `restspy -p <port>` process, registers itself in a
  ServerRegistry and waits until the server answers before returning
  from start().
- ExternalServer: a shared instance whose lifecycle is managed elsewhere;
  stop() only resets its doubles and spy log.

Both expose the same HTTP helpers for driving the spy admin API.
"""

import logging
import subprocess
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urljoin

import requests

from .config import ServerConfig
from .errors import HTTPStatusError, ServerTimeoutError
from .registry import ServerRegistry

logger = logging.getLogger("restspy.server")


class ServerState(str, Enum):
    """Lifecycle state of a LocalServer."""

    STOPPED = 'stopped'
    STARTING = 'starting'
    RUNNING = 'running'


class Server:
    """
    Base class for spy server handles.

    Subclasses implement start() and stop(); the HTTP helpers act on
    base_url + endpoint.
    """

    def __init__(self, base_url: str, config: Optional[ServerConfig] = None):
        self.base_url = base_url
        self.config = config or ServerConfig()
        self.session = requests.Session()

    def start(self):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError

    def full_url(self, endpoint: str) -> str:
        return urljoin(self.base_url, endpoint)

    def get(self, endpoint: str) -> str:
        """
        GET an endpoint and return its body.

        Raises:
            HTTPStatusError: If the status code is not exactly 200
        """
        url = self.full_url(endpoint)
        response = self.session.get(url, timeout=self.config.request_timeout)
        if response.status_code != 200:
            raise HTTPStatusError(response.status_code, url)
        return response.text

    def post(self, endpoint: str, data: Any = None) -> requests.Response:
        """POST to an endpoint without checking the status code."""
        url = self.full_url(endpoint)
        if isinstance(data, (dict, list)):
            return self.session.post(url, json=data, timeout=self.config.request_timeout)
        return self.session.post(url, data=data, timeout=self.config.request_timeout)

    def delete(self, endpoint: str) -> requests.Response:
        """DELETE an endpoint without checking the status code."""
        return self.session.delete(self.full_url(endpoint), timeout=self.config.request_timeout)

    # Admin API helpers

    def create_double(
        self,
        pattern: str,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
        body: str = ''
    ) -> str:
        """Register a double on the server and return its id."""
        response = self.post('/doubles', {
            'pattern': pattern,
            'status_code': status_code,
            'headers': headers or {},
            'body': body
        })
        response.raise_for_status()
        return response.json()['id']

    def create_proxy(self, pattern: str, redirect_url: str) -> str:
        """Register a proxy on the server and return its id."""
        response = self.post('/proxies', {'pattern': pattern, 'redirect_url': redirect_url})
        response.raise_for_status()
        return response.json()['id']

    def remove_double(self, double_id: str):
        self.delete(f'/doubles/{double_id}')

    def reset(self):
        """Remove all doubles and proxies and clear the spy log."""
        for endpoint in ('/doubles', '/proxies', '/spy'):
            self.delete(endpoint)

    def spy_log(self) -> List[Dict[str, Any]]:
        """Requests served by the server since the last reset."""
        response = self.session.get(self.full_url('/spy'), timeout=self.config.request_timeout)
        response.raise_for_status()
        return response.json()['requests']


class ExternalServer(Server):
    """
    Spy server whose process is managed outside this library.

    Example:
        server = ExternalServer('http://spy.internal:8080/')
        server.create_double('/users', body='[]')
        ...
        server.stop()  # clears doubles and spy log for the next test
    """

    def start(self):
        # Lifecycle belongs to whoever runs the server
        pass

    def stop(self):
        """Reset the shared instance; failures are logged, not raised."""
        for endpoint in self.config.cleanup_endpoints:
            try:
                self.delete(endpoint)
            except requests.RequestException as e:
                logger.warning(f"Cleanup call DELETE {self.full_url(endpoint)} failed: {e}")


class LocalServer(Server):
    """
    Spy server running as a child process on a local port.

    start() registers the server, spawns the process and blocks until the
    server answers a plain GET or the start budget runs out. The whole of
    start() and stop() runs under the registry mutex.

    Example:
        server = LocalServer(8080)
        server.start()
        server.create_double('/users/.*', status_code=404)
        ...
        server.stop()
    """

    def __init__(
        self,
        port: int,
        config: Optional[ServerConfig] = None,
        registry: Optional[ServerRegistry] = None
    ):
        config = config or ServerConfig()
        super().__init__(config.base_url(port), config)
        self.port = port
        self.registry = registry if registry is not None else ServerRegistry.default()
        self.process: Optional[subprocess.Popen] = None
        self.state = ServerState.STOPPED

    def start(self):
        """
        Start the server process and wait until it is reachable.

        Raises:
            DuplicatePortError: If a server is already registered for the port
            ServerTimeoutError: If the server is not reachable in time
        """
        with self.registry.mutex:
            self.registry.register(self)
            self.state = ServerState.STARTING
            try:
                self.process = self._start_server_process()
                self._wait_until(self._reachable)
            except BaseException:
                self._abort_start()
                raise
            self.state = ServerState.RUNNING
            logger.info(f"Server on port {self.port} is running (pid {self.process.pid})")

    def stop(self):
        """Terminate the server process. Safe to call more than once."""
        with self.registry.mutex:
            if not self.registry.unregister(self):
                return
            self._stop_server_process()
            self.state = ServerState.STOPPED
            logger.info(f"Server on port {self.port} stopped")

    def _start_server_process(self) -> subprocess.Popen:
        command = [*self.config.command, '-p', str(self.port)]
        logger.debug(f"Spawning: {' '.join(command)}")
        # stdin/stdout/stderr are inherited
        return subprocess.Popen(command)

    def _stop_server_process(self):
        process = self.process
        self.process = None
        if process is None:
            return
        process.terminate()
        try:
            process.wait(timeout=self.config.stop_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Server on port {self.port} ignored terminate, killing pid {process.pid}")
            process.kill()
            process.wait()

    def _abort_start(self):
        self.registry.unregister(self)
        self._stop_server_process()
        self.state = ServerState.STOPPED

    def _wait_until(self, condition: Callable[[], bool]):
        elapsed = 0.0
        while not condition():
            time.sleep(self.config.poll_interval)
            elapsed += self.config.poll_interval
            if elapsed > self.config.start_timeout:
                raise ServerTimeoutError(self.port, self.config.start_timeout)

    def _reachable(self) -> bool:
        try:
            self.session.get(self.base_url, timeout=self.config.request_timeout)
            return True
        except requests.ConnectionError:
            return False
