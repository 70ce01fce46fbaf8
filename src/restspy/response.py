"""
RestSpy Response Model

Uniform representation of the outcome of serving one request: a proxied
upstream response, a canned double, or a not-found fallback.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Union

from requests.structures import CaseInsensitiveDict

from .encoding import decode
from .model import Double

Body = Union[str, bytes]


class ResponseType(str, Enum):
    """Where a response came from."""

    PROXY = 'proxy'
    DOUBLE = 'double'
    NOT_FOUND = 'not_found'


@dataclass(frozen=True)
class Response:
    """
    Immutable outcome of one request.

    The body is decoded once at construction using the Content-Encoding
    header, so `decoded_body` is always available and never recomputed.

    Example:
        response = Response.double(Double('/users', body='[]'))
        response.to_dict()
        # {'type': 'double', 'status_code': 200, 'body': '[]'}
    """

    type: ResponseType
    status_code: int
    headers: Mapping[str, str]
    body: Body
    decoded_body: Body = field(init=False, repr=False)

    def __post_init__(self):
        headers = CaseInsensitiveDict(self.headers or {})
        object.__setattr__(self, 'headers', headers)
        if headers:
            decoded = decode(self.body, headers.get('Content-Encoding'))
        else:
            decoded = self.body
        object.__setattr__(self, 'decoded_body', decoded)

    @classmethod
    def proxy(cls, status_code: int, headers: Mapping[str, str], body: Body) -> 'Response':
        """Wrap a response received from an upstream server."""
        return cls(ResponseType.PROXY, status_code, headers, body)

    @classmethod
    def double(cls, double: Double) -> 'Response':
        """Wrap the canned response of a double."""
        return cls(ResponseType.DOUBLE, double.status_code, double.headers, double.body)

    @classmethod
    def not_found(cls) -> 'Response':
        """Fallback when nothing matches the request path."""
        return cls(ResponseType.NOT_FOUND, 404, {}, '')

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        body = self.decoded_body
        if isinstance(body, bytes):
            body = body.decode('utf-8', errors='replace')
        return {
            'type': self.type.value,
            'status_code': self.status_code,
            'body': body
        }
