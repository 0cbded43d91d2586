import httpx
import json
import logging
from typing import Dict, List, Any, Optional

from .protocol import LATEST_PROTOCOL_VERSION

logger = logging.getLogger(__name__)

SESSION_HEADER = "mcp-session-id"


class MCPClient:
    """Async client for the SQLite MCP server's streamable HTTP transport"""

    def __init__(
        self,
        base_url: str,
        name: str = "sqlite_mcp_client",
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip('/')
        self.name = name
        self.api_key = api_key
        self.tools: Dict[str, Dict[str, Any]] = {}
        self.session_id: Optional[str] = None
        self.server_info: Dict[str, Any] = {}
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._next_id = 0

    @property
    def is_connected(self) -> bool:
        return self.session_id is not None

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json, text/event-stream"}
        if self.session_id:
            headers[SESSION_HEADER] = self.session_id
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        resp = await self._http.post(f"{self.base_url}/mcp", json=payload, headers=self._headers())
        resp.raise_for_status()
        return resp

    async def _request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        self._next_id += 1
        payload = {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params or {}}
        resp = await self._post(payload)
        data = resp.json()
        if "error" in data:
            error = data["error"]
            raise RuntimeError(f"MCP error {error.get('code')}: {error.get('message')}")
        return data.get("result")

    async def connect(self, db_params: Optional[Dict[str, str]] = None) -> bool:
        """Open a session. ``db_params`` (DB_URL, DB_PATH, ...) select the database for this session only."""
        payload = {
            "jsonrpc": "2.0",
            "id": 0,
            "method": "initialize",
            "params": {
                "protocolVersion": LATEST_PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": self.name, "version": "1.0.0"},
            },
        }
        try:
            resp = await self._http.post(
                f"{self.base_url}/mcp", json=payload, headers=self._headers(), params=db_params or None
            )
            resp.raise_for_status()
            self.session_id = resp.headers.get(SESSION_HEADER)
            self.server_info = resp.json().get("result", {}).get("serverInfo", {})
            await self._post({"jsonrpc": "2.0", "method": "notifications/initialized"})
            logger.info(f"[{self.name}] Session {self.session_id} opened with {self.server_info}")
            return True
        except httpx.HTTPError as e:
            logger.error(f"[{self.name}] Error connecting: {e}")
            self.session_id = None
            return False

    async def load_tools(self) -> bool:
        """Load available tools from the MCP server"""
        try:
            result = await self._request("tools/list")
        except (httpx.HTTPError, RuntimeError) as e:
            logger.error(f"[{self.name}] Error loading tools: {e}")
            return False
        for tool in result.get("tools", []):
            if isinstance(tool, dict) and 'name' in tool:
                self.tools[tool['name']] = tool
        logger.info(f"[{self.name}] Loaded {len(self.tools)} tools: {list(self.tools.keys())}")
        return True

    async def invoke_tool(self, tool_name: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Invoke a tool and parse the JSON text content of its result"""
        try:
            result = await self._request("tools/call", {"name": tool_name, "arguments": params or {}})
        except (httpx.HTTPError, RuntimeError) as e:
            error_msg = f"Tool invocation error: {e}"
            logger.error(f"[{self.name}] {error_msg}")
            return {"error": error_msg, "status": "error"}

        parsed_results = []
        for item in result.get("content", []):
            if isinstance(item, dict) and item.get("type") == "text" and "text" in item:
                try:
                    parsed_results.append(json.loads(item["text"]))
                except json.JSONDecodeError:
                    parsed_results.append(item["text"])
            else:
                parsed_results.append(item)

        if result.get("isError"):
            message = parsed_results[0] if parsed_results else "unknown error"
            return {"error": message, "status": "error"}
        return {"results": parsed_results, "status": "success"}

    async def close(self) -> None:
        """Terminate the session and release the HTTP client if we created it"""
        try:
            if self.session_id:
                await self._http.delete(f"{self.base_url}/mcp", headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning(f"[{self.name}] Error terminating session: {e}")
        finally:
            self.session_id = None
            if self._owns_http:
                await self._http.aclose()

    def get_tool_info(self, tool_name: str) -> Optional[Dict[str, Any]]:
        """Get tool information including its input schema"""
        return self.tools.get(tool_name)

    def get_available_tools(self) -> List[str]:
        """Get list of available tool names"""
        return list(self.tools.keys())

    def is_tool_available(self, tool_name: str) -> bool:
        return tool_name in self.tools

    async def health_check(self) -> bool:
        """Check if the MCP server is healthy"""
        try:
            resp = await self._http.get(f"{self.base_url}/")
            return resp.status_code == 200 and resp.json().get("status") == "ok"
        except httpx.HTTPError:
            return False
