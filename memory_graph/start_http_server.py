#!/usr/bin/env python3
"""
Launcher for the knowledge graph HTTP API.

Usage:
    memory-graph-http [--port PORT] [--host HOST] [--workspace PATH] [--transport cli|http]

Flags override the environment (KG_HTTP_PORT, KG_HTTP_HOST, KG_LOG_LEVEL,
KG_TRANSPORT, OPENCLAW_WORKSPACE); see GraphConfig.from_env for the rest.
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

import uvicorn

from .api import app as app_module
from .api.service import GraphService
from .config import GraphConfig, configure_logging

logger = logging.getLogger(__name__)


def build_config(argv: list[str] | None = None) -> GraphConfig:
    """Environment configuration with command-line overrides applied."""
    parser = argparse.ArgumentParser(description="OpenClaw memory knowledge graph HTTP API")
    parser.add_argument("--port", type=int, default=None, help="Server port (default: 8765)")
    parser.add_argument("--host", default=None, help="Server host (default: 127.0.0.1)")
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")
    parser.add_argument("--workspace", default=None, help="OpenClaw workspace directory")
    parser.add_argument("--transport", choices=["cli", "http"], default=None, help="OpenClaw transport (default: cli)")
    args = parser.parse_args(argv)

    overrides = {}
    if args.port:
        overrides["http_port"] = args.port
    if args.host:
        overrides["http_host"] = args.host
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    if args.workspace:
        overrides["workspace"] = Path(args.workspace).expanduser()
    if args.transport:
        overrides["transport"] = args.transport
    return dataclasses.replace(GraphConfig.from_env(), **overrides)


def main(argv: list[str] | None = None):
    """Start the HTTP server."""
    config = build_config(argv)
    configure_logging(config.log_level)

    # The app's lifespan keeps a service that is already set
    app_module.service = GraphService(config)

    print(f"Serving {config.workspace} on http://{config.http_host}:{config.http_port}")
    print(f"Transport: {config.transport}, log level: {config.log_level}")
    print("Press Ctrl+C to stop")

    try:
        uvicorn.run(
            app_module.app,
            host=config.http_host,
            port=config.http_port,
            log_level=config.log_level.lower(),
        )
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except Exception as e:
        logger.error(f"Error starting server: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
