"""
RestSpy Errors

Exception hierarchy raised by the server lifecycle, the HTTP helpers and
content decoding.
"""

from typing import Optional


class RestSpyError(Exception):
    """Base class for all RestSpy errors."""


class DuplicatePortError(RestSpyError):
    """A server is already registered for this port."""

    def __init__(self, port: int):
        self.port = port
        super().__init__(f"Server for port {port} is already registered")


class ServerTimeoutError(RestSpyError, TimeoutError):
    """A local server did not become reachable within its start budget."""

    def __init__(self, port: int, timeout: float):
        self.port = port
        self.timeout = timeout
        super().__init__(f"Server on port {port} not reachable after {timeout}s")


class HTTPStatusError(RestSpyError):
    """A GET returned something other than 200."""

    def __init__(self, status_code: int, url: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        message = f"Status Code ({status_code}) is not 200"
        if url:
            message += f" for {url}"
        super().__init__(message)


class DecodingError(RestSpyError):
    """A body could not be decoded with its declared Content-Encoding."""

    def __init__(self, content_encoding: str, reason: str):
        self.content_encoding = content_encoding
        super().__init__(f"Cannot decode body with '{content_encoding}': {reason}")
