# sqlite_mcp/server.py

"""
Streamable HTTP transport for the SQLite MCP server (FastAPI).

POST /mcp carries JSON-RPC messages. A POST without a session header whose
body is an initialize request opens a session; every other call must carry
the ``mcp-session-id`` header returned then.
"""

import functools
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from . import __version__
from .config import SESSION_OVERRIDE_KEYS, Settings
from .dispatcher import Dispatcher
from .errors import SessionNotFoundError
from .protocol import (
    LATEST_PROTOCOL_VERSION,
    PARSE_ERROR,
    SERVER_ERROR,
    SERVER_NAME,
    McpProtocol,
    error_response,
    is_initialize_request,
)
from .resolver import ResolverPool
from .sessions import Session, SessionManager
from .tools_manifest import TOOLSET, list_tools

logger = logging.getLogger(__name__)

SESSION_HEADER = "mcp-session-id"


def _jsonrpc_error(status_code: int, code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response(None, code, message))


def _session_overrides(request: Request) -> Dict[str, str]:
    overrides = {}
    for key in SESSION_OVERRIDE_KEYS:
        value = request.query_params.get(key)
        if value:
            overrides[key] = value
    return overrides


def create_app(settings: Settings, pool: Optional[ResolverPool] = None) -> FastAPI:
    pool = pool if pool is not None else ResolverPool()
    pool.pin(settings)
    sessions = SessionManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"SQLite MCP Server (HTTP) starting; database: {settings.describe_target()}")
        logger.info(f"Tools available: {len(TOOLSET)}")
        yield
        logger.info("Shutting down...")
        await sessions.close_all()
        await pool.close_all()

    app = FastAPI(title="SQLite MCP Server", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", SESSION_HEADER, "Accept", "mcp-protocol-version", "x-api-key"],
        expose_headers=[SESSION_HEADER],
    )
    app.state.settings = settings
    app.state.pool = pool
    app.state.sessions = sessions

    def _require_api_key(request: Request):
        if not settings.api_key:
            return  # no auth configured
        header = request.headers.get("x-api-key")
        if not header or header != settings.api_key:
            raise HTTPException(status_code=401, detail="Invalid API Key")

    def _existing_session(request: Request) -> Session:
        return sessions.require(request.headers.get(SESSION_HEADER))

    def _open_session(request: Request) -> Session:
        session_settings = settings.with_overrides(_session_overrides(request))
        resolver = pool.acquire(session_settings)
        protocol = McpProtocol(Dispatcher(resolver), session_settings)
        return sessions.create(protocol, release=functools.partial(pool.release, resolver))

    @app.get("/")
    async def health():
        return {
            "name": SERVER_NAME,
            "version": __version__,
            "status": "ok",
            "protocolVersion": LATEST_PROTOCOL_VERSION,
            "tools": len(TOOLSET),
            "transport": "streamable-http",
            "sessions": len(sessions),
            "endpoints": {"mcp": "/mcp"},
        }

    @app.get("/api/toolset")
    async def api_toolset():
        return JSONResponse(content={"tools": list_tools()})

    @app.post("/mcp")
    async def mcp_post(request: Request):
        _require_api_key(request)
        try:
            body: Any = json.loads(await request.body())
        except ValueError:
            return _jsonrpc_error(400, PARSE_ERROR, "Parse error")

        session_id = request.headers.get(SESSION_HEADER)
        session = sessions.get(session_id)
        created = False
        if session is None:
            if session_id or not is_initialize_request(body):
                return _jsonrpc_error(400, SERVER_ERROR, str(SessionNotFoundError(session_id)))
            session = _open_session(request)
            created = True

        response = await session.transport.handle_post(body)
        if created and response is not None and "error" in response:
            # a rejected initialize leaves no session behind
            await session.transport.close()
            return JSONResponse(content=response)
        headers = {SESSION_HEADER: session.session_id}
        if response is None:
            return Response(status_code=202, headers=headers)
        return JSONResponse(content=response, headers=headers)

    @app.get("/mcp")
    async def mcp_get(request: Request):
        _require_api_key(request)
        try:
            session = _existing_session(request)
        except SessionNotFoundError:
            return Response(status_code=400, content="Invalid or missing session ID")
        # no server-initiated messages, so no SSE stream to offer
        return Response(
            status_code=405,
            headers={"Allow": "POST, DELETE", SESSION_HEADER: session.session_id},
        )

    @app.delete("/mcp")
    async def mcp_delete(request: Request):
        _require_api_key(request)
        try:
            session = _existing_session(request)
        except SessionNotFoundError:
            return Response(status_code=400, content="Invalid or missing session ID")
        await session.transport.close()
        return Response(status_code=200)

    return app
