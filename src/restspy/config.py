"""
RestSpy Configuration

Settings shared by local and external servers: where servers live, how a
local server process is launched, and how long to wait for it.
"""

import shlex
import sys
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List

import yaml


def _default_command() -> List[str]:
    return [sys.executable, '-m', 'restspy']


@dataclass
class ServerConfig:
    """Configuration for server lifecycle and HTTP calls."""

    # Where servers live
    host: str = "localhost"

    # Local server process; "-p <port>" is appended
    command: List[str] = field(default_factory=_default_command)

    # Readiness polling
    poll_interval: float = 0.1  # Seconds between readiness attempts
    start_timeout: float = 3.0  # Seconds before start() gives up

    # Shutdown
    stop_timeout: float = 5.0  # Seconds to wait after terminate before kill

    # HTTP calls against the server
    request_timeout: float = 5.0

    # Endpoints cleared when an external server is stopped
    cleanup_endpoints: List[str] = field(default_factory=lambda: ['/doubles', '/spy'])

    # Spy application
    log_level: str = "info"

    def __post_init__(self):
        if isinstance(self.command, str):
            self.command = shlex.split(self.command)
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.start_timeout < 0:
            raise ValueError("start_timeout must not be negative")

    def base_url(self, port: int) -> str:
        """Base URL of a server on this host."""
        return f"http://{self.host}:{port}/"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ServerConfig':
        """Create config from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'ServerConfig':
        """Load config from a YAML file."""
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})
