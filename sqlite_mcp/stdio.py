"""Line-oriented stdio transport: one JSON-RPC message per line."""

import asyncio
import json
import logging
import sys
from typing import Callable

from .config import Settings
from .protocol import PARSE_ERROR, McpProtocol, build_protocol, error_response
from .resolver import ResolverPool
from .tools_manifest import TOOLSET

logger = logging.getLogger(__name__)


async def run_line_channel(protocol: McpProtocol, reader: asyncio.StreamReader, write: Callable[[str], None]) -> None:
    """Feed each line from ``reader`` to ``protocol`` until EOF, writing replies with ``write``."""
    while True:
        line = await reader.readline()
        if not line:
            break
        line = line.strip()
        if not line:
            continue
        try:
            message = json.loads(line)
        except ValueError:
            write(json.dumps(error_response(None, PARSE_ERROR, "Parse error")))
            continue
        response = await protocol.handle(message)
        if response is not None:
            write(json.dumps(response))


def _write_stdout(data: str) -> None:
    sys.stdout.write(data + "\n")
    sys.stdout.flush()


async def _stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=2 ** 24)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def serve_stdio(settings: Settings) -> None:
    pool = ResolverPool()
    protocol = build_protocol(settings, pool)
    logger.info("SQLite MCP Server running on stdio")
    logger.info(f"Database: {settings.describe_target()}")
    logger.info(f"Tools available: {len(TOOLSET)}")
    try:
        await run_line_channel(protocol, await _stdin_reader(), _write_stdout)
    finally:
        await pool.close_all()
