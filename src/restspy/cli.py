"""
RestSpy Command Line

Runs a spy server on one port.

Examples:
    # Start a spy server on port 8080
    restspy -p 8080

    # Same, through the module
    python -m restspy -p 8080 --log-level debug
"""

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn

from .app import SpyApp
from .config import ServerConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='restspy',
        description='Test double and spy HTTP server'
    )
    parser.add_argument('-p', '--port', type=int, required=True, help='Port to listen on')
    parser.add_argument('--host', default=None, help='Host to bind to (default: from config, else localhost)')
    parser.add_argument('--log-level', default=None,
                        choices=['critical', 'error', 'warning', 'info', 'debug'],
                        help='Log level (default: info)')
    parser.add_argument('--config', default=None, help='YAML config file')
    return parser


def main(argv: Optional[List[str]] = None):
    """Entry point for the restspy command."""
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig.from_yaml(args.config) if args.config else ServerConfig()
    except (OSError, ValueError) as e:
        print(f"❌ Failed to load config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.host:
        config.host = args.host
    if args.log_level:
        config.log_level = args.log_level

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    spy = SpyApp(args.port, config=config)
    print(f"🕵️  RestSpy listening on http://{config.host}:{args.port}/")

    uvicorn.run(
        spy.app,
        host=config.host,
        port=args.port,
        log_level=config.log_level
    )


if __name__ == '__main__':
    main()
