"""
RestSpy

Control library for HTTP test doubles in integration tests.

This package provides:
- Per-port registries of doubles and proxies with last-registered-wins lookup
- Local spy servers with a readiness-polled lifecycle
- Handles for shared external spy servers
- A uniform response model for proxied, doubled and unmatched requests
"""

from .errors import (
    RestSpyError,
    DuplicatePortError,
    ServerTimeoutError,
    HTTPStatusError,
    DecodingError
)
from .config import ServerConfig
from .encoding import decode
from .model import Matchable, MatchableRegistry, Double, Proxy
from .response import Response, ResponseType
from .registry import ServerRegistry
from .server import Server, LocalServer, ExternalServer, ServerState

__all__ = [
    # Errors
    'RestSpyError',
    'DuplicatePortError',
    'ServerTimeoutError',
    'HTTPStatusError',
    'DecodingError',

    # Config
    'ServerConfig',

    # Model
    'Matchable',
    'MatchableRegistry',
    'Double',
    'Proxy',
    'Response',
    'ResponseType',
    'decode',

    # Servers
    'ServerRegistry',
    'Server',
    'LocalServer',
    'ExternalServer',
    'ServerState',
]

__version__ = '1.0.0'
