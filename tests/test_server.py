import json

import pytest
from fastapi.testclient import TestClient

from sqlite_mcp.clients import open_client
from sqlite_mcp.config import Settings
from sqlite_mcp.protocol import INVALID_PARAMS, PARSE_ERROR, SERVER_ERROR
from sqlite_mcp.resolver import ResolverPool
from sqlite_mcp.server import SESSION_HEADER, create_app

INITIALIZE = {
    "jsonrpc": "2.0",
    "id": 0,
    "method": "initialize",
    "params": {"protocolVersion": "2025-06-18", "capabilities": {}, "clientInfo": {"name": "pytest", "version": "1"}},
}


class RecordingFactory:
    def __init__(self):
        self.targets = []

    async def __call__(self, target):
        self.targets.append(target)
        return await open_client(target)


@pytest.fixture
def factory():
    return RecordingFactory()


@pytest.fixture
def client(local_settings, factory):
    app = create_app(local_settings, pool=ResolverPool(factory))
    with TestClient(app) as test_client:
        yield test_client


def open_session(client, **params):
    resp = client.post("/mcp", json=INITIALIZE, params=params)
    assert resp.status_code == 200
    return resp.headers[SESSION_HEADER]


def call_tool(client, session_id, name, arguments=None, request_id=1):
    return client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": request_id, "method": "tools/call",
              "params": {"name": name, "arguments": arguments or {}}},
        headers={SESSION_HEADER: session_id},
    )


def test_health(client):
    body = client.get("/").json()
    assert body["status"] == "ok"
    assert body["name"] == "sqlite-mcp"
    assert body["tools"] == 15
    assert body["transport"] == "streamable-http"
    assert body["sessions"] == 0


def test_toolset(client):
    tools = client.get("/api/toolset").json()["tools"]
    assert len(tools) == 15
    assert tools[0]["name"] == "sqlite_query"


def test_initialize_opens_session(client):
    resp = client.post("/mcp", json=INITIALIZE)
    assert resp.status_code == 200
    assert resp.headers[SESSION_HEADER]
    assert resp.json()["result"]["serverInfo"]["name"] == "sqlite-mcp"
    assert client.get("/").json()["sessions"] == 1


def test_tool_call_in_session(client):
    session_id = open_session(client)
    resp = call_tool(client, session_id, "sqlite_execute", {"sql": "CREATE TABLE t (a)"})
    assert resp.status_code == 200
    assert resp.headers[SESSION_HEADER] == session_id
    result = resp.json()["result"]
    assert result["isError"] is False
    assert json.loads(result["content"][0]["text"])["changes"] == 0


def test_notification_returns_202(client):
    session_id = open_session(client)
    resp = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "method": "notifications/initialized"},
        headers={SESSION_HEADER: session_id},
    )
    assert resp.status_code == 202
    assert resp.content == b""


def test_unknown_session_is_rejected_before_any_tool_runs(client, factory):
    resp = call_tool(client, "no-such-session", "sqlite_drop_table", {"table": "t"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == SERVER_ERROR
    assert resp.json()["error"]["message"] == "Bad Request: No valid session ID provided"
    assert factory.targets == []


def test_missing_header_on_non_initialize(client):
    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == SERVER_ERROR


def test_parse_error(client):
    resp = client.post("/mcp", content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == PARSE_ERROR


def test_get_mcp(client):
    assert client.get("/mcp").status_code == 400
    session_id = open_session(client)
    resp = client.get("/mcp", headers={SESSION_HEADER: session_id})
    assert resp.status_code == 405
    assert resp.headers["allow"] == "POST, DELETE"


def test_delete_ends_session(client):
    session_id = open_session(client)
    assert client.delete("/mcp", headers={SESSION_HEADER: session_id}).status_code == 200
    assert client.get("/").json()["sessions"] == 0
    assert call_tool(client, session_id, "sqlite_list_tables").status_code == 400
    assert client.delete("/mcp", headers={SESSION_HEADER: session_id}).status_code == 400


def test_sessions_on_same_target_share_a_client(client, factory):
    first = open_session(client)
    second = open_session(client)
    assert first != second
    call_tool(client, first, "sqlite_list_tables")
    call_tool(client, second, "sqlite_list_tables")
    assert len(factory.targets) == 1


def test_query_params_override_database_per_session(client, factory, tmp_path):
    other = str(tmp_path / "other.db")
    session_id = open_session(client, DB_PATH=other)
    resp = call_tool(client, session_id, "sqlite_get_info")
    info = json.loads(resp.json()["result"]["content"][0]["text"])
    assert info["filePath"] == other
    assert [t.path for t in factory.targets] == [other]


def test_unconfigured_server_reports_in_envelope():
    app = create_app(Settings())
    with TestClient(app) as client:
        session_id = open_session(client)
        result = call_tool(client, session_id, "sqlite_list_tables").json()["result"]
    assert result["isError"] is True
    assert result["content"][0]["text"].startswith("Error: Database not configured.")


def test_api_key_required_when_configured(db_path):
    app = create_app(Settings(db_path=db_path, api_key="k3y"))
    with TestClient(app) as client:
        assert client.post("/mcp", json=INITIALIZE).status_code == 401
        assert client.post("/mcp", json=INITIALIZE, headers={"x-api-key": "wrong"}).status_code == 401
        resp = client.post("/mcp", json=INITIALIZE, headers={"x-api-key": "k3y"})
        assert resp.status_code == 200
        # health stays open
        assert client.get("/").status_code == 200


def test_cors_exposes_session_header(client):
    resp = client.options(
        "/mcp",
        headers={"Origin": "http://example.test", "Access-Control-Request-Method": "POST"},
    )
    assert resp.status_code == 200
    session_id = open_session(client)
    resp = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 2, "method": "ping"},
        headers={SESSION_HEADER: session_id, "Origin": "http://example.test"},
    )
    assert SESSION_HEADER in resp.headers["access-control-expose-headers"]


def test_rejected_initialize_creates_no_session(client):
    resp = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 0, "method": "initialize", "params": {"capabilities": "nope"}},
    )
    assert resp.status_code == 200
    assert resp.json()["error"]["code"] == INVALID_PARAMS
    assert SESSION_HEADER not in resp.headers
    assert client.get("/").json()["sessions"] == 0


def test_per_session_targets_are_closed_with_their_sessions(client, tmp_path):
    pool = client.app.state.pool
    for i in range(3):
        session_id = open_session(client, DB_PATH=str(tmp_path / f"tenant{i}.db"))
        call_tool(client, session_id, "sqlite_list_tables")
        assert client.delete("/mcp", headers={SESSION_HEADER: session_id}).status_code == 200
    assert client.get("/").json()["sessions"] == 0
    assert len(pool) == 0


def test_server_database_stays_open_between_sessions(client, factory):
    pool = client.app.state.pool
    for _ in range(2):
        session_id = open_session(client)
        call_tool(client, session_id, "sqlite_list_tables")
        client.delete("/mcp", headers={SESSION_HEADER: session_id})
    assert len(pool) == 1
    assert len(factory.targets) == 1
