"""
Tests for RestSpy Configuration and Command Line
"""

import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from restspy.cli import build_parser, main
from restspy.config import ServerConfig


@pytest.fixture
def temp_config_file():
    """Create temporary YAML config file."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        yaml.safe_dump({
            'host': '127.0.0.1',
            'command': 'rest-spy --quiet',
            'start_timeout': 10,
            'cleanup_endpoints': ['/doubles'],
            'unknown_key': True
        }, f)
        temp_path = f.name

    yield temp_path

    Path(temp_path).unlink()


class TestServerConfig:
    """Test ServerConfig dataclass."""

    def test_defaults(self):
        """Test default configuration values."""
        config = ServerConfig()

        assert config.host == 'localhost'
        assert config.command == [sys.executable, '-m', 'restspy']
        assert config.poll_interval == 0.1
        assert config.start_timeout == 3.0
        assert config.cleanup_endpoints == ['/doubles', '/spy']

    def test_base_url(self):
        """Test building a base URL."""
        assert ServerConfig().base_url(8080) == 'http://localhost:8080/'

    def test_command_string_is_split(self):
        """Test that a command string becomes an argument list."""
        config = ServerConfig(command='rest-spy --verbose')

        assert config.command == ['rest-spy', '--verbose']

    def test_invalid_poll_interval(self):
        """Test that a non-positive poll interval is rejected."""
        with pytest.raises(ValueError):
            ServerConfig(poll_interval=0)

    def test_from_dict_ignores_unknown_keys(self):
        """Test loading from a dictionary."""
        config = ServerConfig.from_dict({'host': 'spy', 'other': 1})

        assert config.host == 'spy'

    def test_from_yaml(self, temp_config_file):
        """Test loading from a YAML file."""
        config = ServerConfig.from_yaml(temp_config_file)

        assert config.host == '127.0.0.1'
        assert config.command == ['rest-spy', '--quiet']
        assert config.start_timeout == 10
        assert config.cleanup_endpoints == ['/doubles']


class TestCommandLine:
    """Test the restspy command."""

    def test_parse_port(self):
        """Test that the port flag is parsed."""
        args = build_parser().parse_args(['-p', '8080'])

        assert args.port == 8080

    def test_port_required(self):
        """Test that the port is mandatory."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_main_runs_uvicorn(self):
        """Test that main serves the spy app on the port."""
        with patch('restspy.cli.uvicorn.run') as run, \
                patch('restspy.cli.logging.basicConfig'):
            main(['-p', '9000', '--host', '0.0.0.0', '--log-level', 'debug'])

        app = run.call_args.args[0]
        assert run.call_args.kwargs == {'host': '0.0.0.0', 'port': 9000, 'log_level': 'debug'}
        assert any(getattr(route, 'path', None) == '/spy' for route in app.routes)

    def test_main_with_config(self, temp_config_file):
        """Test that a config file sets the host."""
        with patch('restspy.cli.uvicorn.run') as run, \
                patch('restspy.cli.logging.basicConfig'):
            main(['-p', '9000', '--config', temp_config_file])

        assert run.call_args.kwargs['host'] == '127.0.0.1'

    def test_main_missing_config(self):
        """Test that an unreadable config exits."""
        with pytest.raises(SystemExit):
            main(['-p', '9000', '--config', '/nonexistent/restspy.yaml'])
