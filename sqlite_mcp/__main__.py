#!/usr/bin/env python3
"""
SQLite MCP Server entry point.

Usage (local - stdio):
    DB_PATH=/path/to/database.db python -m sqlite_mcp

Usage (remote - stdio):
    DB_URL=libsql://db-name.turso.io DB_AUTH_TOKEN=xxx python -m sqlite_mcp

Usage (HTTP - streamable HTTP transport):
    DB_URL=libsql://... DB_AUTH_TOKEN=xxx python -m sqlite_mcp --http
"""

import argparse
import asyncio
import logging
from typing import List, Optional

from .config import Settings, configure_logging

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="sqlite-mcp", description="SQLite MCP server (stdio or HTTP)")
    parser.add_argument("--http", action="store_true", help="Serve streamable HTTP instead of stdio")
    parser.add_argument("--host", default=None, help="HTTP bind address (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="HTTP port (default: PORT or 3000)")
    parser.add_argument("--env-file", default=None, help="Path to a .env file to load")
    args = parser.parse_args(argv)

    settings = Settings.from_env(env_file=args.env_file)
    configure_logging(settings.log_level)

    if args.http:
        import uvicorn

        from .server import create_app

        host = args.host or settings.host
        port = args.port or settings.port
        logger.info(f"MCP endpoint: http://localhost:{port}/mcp")
        uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())
    else:
        from .stdio import serve_stdio

        asyncio.run(serve_stdio(settings))


if __name__ == "__main__":
    main()
