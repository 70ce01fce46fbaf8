"""
RestSpy Doubles and Proxies

The two concrete matchable kinds served by the spy application.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Union

from .matchable import Matchable


@dataclass(frozen=True, eq=False)
class Double(Matchable):
    """A canned response served for every path matching the pattern."""

    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: Union[str, bytes] = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Double':
        """Create a Double from an admin API payload."""
        if not data.get('pattern'):
            raise ValueError("Double requires a 'pattern'")
        body = data.get('body', '')
        if body is None:
            body = ''
        elif not isinstance(body, str):
            # JSON values given as body are served as their JSON text
            body = json.dumps(body)
        try:
            return cls(
                pattern=data['pattern'],
                status_code=int(data.get('status_code', 200)),
                headers=dict(data.get('headers') or {}),
                body=body
            )
        except re.error as e:
            raise ValueError(f"Invalid pattern '{data['pattern']}': {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        body = self.body
        if isinstance(body, bytes):
            body = body.decode('utf-8', errors='replace')
        return {
            'id': self.id,
            'pattern': self.pattern,
            'status_code': self.status_code,
            'headers': dict(self.headers),
            'body': body
        }


@dataclass(frozen=True, eq=False)
class Proxy(Matchable):
    """Forwards every path matching the pattern to an upstream base URL."""

    redirect_url: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Proxy':
        """Create a Proxy from an admin API payload."""
        if not data.get('pattern'):
            raise ValueError("Proxy requires a 'pattern'")
        if not data.get('redirect_url'):
            raise ValueError("Proxy requires a 'redirect_url'")
        try:
            return cls(pattern=data['pattern'], redirect_url=data['redirect_url'])
        except re.error as e:
            raise ValueError(f"Invalid pattern '{data['pattern']}': {e}") from e

    def upstream_url(self, path: str, query: str = '') -> str:
        """Build the upstream URL for a request path."""
        url = self.redirect_url.rstrip('/') + path
        if query:
            url += f"?{query}"
        return url

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'pattern': self.pattern,
            'redirect_url': self.redirect_url
        }
