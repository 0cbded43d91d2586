import httpx
import pytest

from sqlite_mcp.config import Settings
from sqlite_mcp.mcp_client import MCPClient
from sqlite_mcp.server import create_app


@pytest.fixture
async def mcp(local_settings):
    app = create_app(local_settings)
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
    client = MCPClient("http://testserver", http_client=http)
    yield client
    await client.close()
    await http.aclose()


async def test_connect_and_load_tools(mcp):
    assert await mcp.health_check()
    assert await mcp.connect()
    assert mcp.is_connected
    assert mcp.server_info["name"] == "sqlite-mcp"

    assert await mcp.load_tools()
    assert len(mcp.get_available_tools()) == 15
    assert mcp.is_tool_available("sqlite_run_script")
    assert mcp.get_tool_info("sqlite_query")["inputSchema"]["required"] == ["sql"]


async def test_invoke_tool(mcp):
    await mcp.connect()
    await mcp.invoke_tool("sqlite_run_script", {"sql": "CREATE TABLE t (a); INSERT INTO t VALUES ('x')"})
    result = await mcp.invoke_tool("sqlite_query", {"sql": "SELECT a FROM t"})
    assert result["status"] == "success"
    assert result["results"][0]["rows"] == [{"a": "x"}]


async def test_invoke_tool_error(mcp):
    await mcp.connect()
    result = await mcp.invoke_tool("sqlite_describe_table", {})
    assert result["status"] == "error"
    assert "table" in result["error"]


async def test_calls_without_session_fail(mcp):
    assert not await mcp.load_tools()
    result = await mcp.invoke_tool("sqlite_list_tables")
    assert result["status"] == "error"


async def test_close_ends_session(mcp):
    await mcp.connect()
    await mcp.close()
    assert not mcp.is_connected


async def test_api_key_is_sent(db_path):
    app = create_app(Settings(db_path=db_path, api_key="k3y"))
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
    try:
        assert not await MCPClient("http://testserver", http_client=http).connect()
        keyed = MCPClient("http://testserver", api_key="k3y", http_client=http)
        assert await keyed.connect()
        await keyed.close()
    finally:
        await http.aclose()
