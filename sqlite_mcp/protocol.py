"""
MCP message handling (JSON-RPC 2.0).

One :class:`McpProtocol` serves one logical client: the stdio process, or a
single HTTP session. Transports hand it decoded JSON messages and send back
whatever it returns; ``None`` means there is nothing to send.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from . import __version__
from .config import RemoteTarget, Settings
from .dispatcher import Dispatcher
from .prompts import PROMPTS, list_prompts, render_prompt
from .resolver import ResolverPool
from .tools_manifest import TOOLSET, category_counts, list_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "sqlite-mcp"
LATEST_PROTOCOL_VERSION = "2025-06-18"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")
SERVER_INFO_URI = "sqlite://server-info"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000


class JsonRpcError(Exception):
    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class JsonRpcMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    jsonrpc: Literal["2.0"]
    id: Optional[Union[int, str]] = None
    method: Optional[str] = None
    params: Optional[Dict[str, Any]] = None


class InitializeParams(BaseModel):
    protocolVersion: Optional[str] = None
    capabilities: Dict[str, Any] = {}
    clientInfo: Optional[Dict[str, Any]] = None


class ToolCallParams(BaseModel):
    name: str
    arguments: Any = None


class PromptGetParams(BaseModel):
    name: str
    arguments: Optional[Dict[str, Any]] = None


class ResourceReadParams(BaseModel):
    uri: str


def error_response(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def is_initialize_request(body: Any) -> bool:
    return (
        isinstance(body, dict)
        and body.get("jsonrpc") == "2.0"
        and body.get("method") == "initialize"
        and "id" in body
    )


def is_request(body: Any) -> bool:
    """True when the message expects a response (has both a method and an id)."""
    return isinstance(body, dict) and "method" in body and "id" in body


class McpProtocol:
    def __init__(self, dispatcher: Dispatcher, settings: Settings):
        self.dispatcher = dispatcher
        self.settings = settings
        self.protocol_version: Optional[str] = None
        self.client_info: Optional[Dict[str, Any]] = None
        self._methods: Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
            "prompts/list": self._prompts_list,
            "prompts/get": self._prompts_get,
            "resources/list": self._resources_list,
            "resources/read": self._resources_read,
        }

    async def handle(self, message: Any) -> Optional[Dict[str, Any]]:
        """Handle one decoded JSON-RPC message and return the response, if any."""
        if not isinstance(message, dict):
            return error_response(None, INVALID_REQUEST, "Invalid Request")
        try:
            msg = JsonRpcMessage.model_validate(message)
        except ValidationError:
            request_id = message.get("id")
            if not isinstance(request_id, (int, str)):
                request_id = None
            return error_response(request_id, INVALID_REQUEST, "Invalid Request")

        if msg.method is None:
            # A response to a server-initiated request; this server sends none
            return None
        if "id" not in msg.model_fields_set:
            logger.debug(f"Notification: {msg.method}")
            return None

        handler = self._methods.get(msg.method)
        if handler is None:
            return error_response(msg.id, METHOD_NOT_FOUND, f"Method not found: {msg.method}")
        try:
            result = await handler(msg.params or {})
        except JsonRpcError as e:
            return error_response(msg.id, e.code, e.message)
        except ValidationError as e:
            return error_response(msg.id, INVALID_PARAMS, f"Invalid params: {e.errors()[0]['msg']}")
        except Exception:
            logger.exception(f"Error handling {msg.method}")
            return error_response(msg.id, INTERNAL_ERROR, "Internal error")
        return {"jsonrpc": "2.0", "id": msg.id, "result": result}

    async def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        init = InitializeParams.model_validate(params)
        if init.protocolVersion in SUPPORTED_PROTOCOL_VERSIONS:
            self.protocol_version = init.protocolVersion
        else:
            self.protocol_version = LATEST_PROTOCOL_VERSION
        self.client_info = init.clientInfo
        logger.info(f"Initialized client {(init.clientInfo or {}).get('name', 'unknown')} (protocol {self.protocol_version})")
        return {
            "protocolVersion": self.protocol_version,
            "capabilities": {
                "tools": {"listChanged": False},
                "prompts": {"listChanged": False},
                "resources": {"subscribe": False, "listChanged": False},
            },
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    async def _ping(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    async def _tools_list(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"tools": list_tools()}

    async def _tools_call(self, params: Dict[str, Any]) -> Dict[str, Any]:
        call = ToolCallParams.model_validate(params)
        envelope = await self.dispatcher.dispatch(call.name, call.arguments)
        return envelope.to_dict()

    async def _prompts_list(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"prompts": list_prompts()}

    async def _prompts_get(self, params: Dict[str, Any]) -> Dict[str, Any]:
        request = PromptGetParams.model_validate(params)
        prompt = PROMPTS.get(request.name)
        if prompt is None:
            raise JsonRpcError(INVALID_PARAMS, f"Unknown prompt: {request.name}")
        return render_prompt(prompt)

    async def _resources_list(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "resources": [{
                "uri": SERVER_INFO_URI,
                "name": "server-info",
                "description": "Connection status and available tools for this SQLite MCP server",
                "mimeType": "application/json",
            }]
        }

    async def _resources_read(self, params: Dict[str, Any]) -> Dict[str, Any]:
        request = ResourceReadParams.model_validate(params)
        if request.uri != SERVER_INFO_URI:
            raise JsonRpcError(INVALID_PARAMS, f"Unknown resource: {request.uri}")
        return {
            "contents": [{
                "uri": SERVER_INFO_URI,
                "mimeType": "application/json",
                "text": json.dumps(self.server_info(), indent=2),
            }]
        }

    def server_info(self) -> Dict[str, Any]:
        """Connection summary. Never includes the auth token."""
        if self.settings.is_configured:
            target = self.settings.target
            connection_type = target.kind
            database = target.url if isinstance(target, RemoteTarget) else target.path
        else:
            connection_type = "not configured"
            database = "(not configured)"
        return {
            "name": SERVER_NAME,
            "version": __version__,
            "connected": self.settings.is_configured,
            "connection_type": connection_type,
            "database": database,
            "tools_available": len(TOOLSET),
            "tool_categories": category_counts(),
        }


def build_protocol(settings: Settings, pool: ResolverPool) -> McpProtocol:
    """Protocol handler whose dispatcher draws its client from ``pool``."""
    return McpProtocol(Dispatcher(pool.resolver_for(settings)), settings)
