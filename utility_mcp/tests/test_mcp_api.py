import json

import pytest
from fastapi.testclient import TestClient

from utility_mcp.core.config import settings
from utility_mcp.core.database import get_db, mongo
from utility_mcp.main import app
from utility_mcp.tests.conftest import UTILITY_ID


@pytest.fixture
def client(fake_db):
    # No context manager: startup (and the real Mongo connection) never runs.
    app.dependency_overrides[get_db] = lambda: fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _rpc(client, method, params=None, request_id=1):
    body = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        body["params"] = params
    return client.post("/mcp", json=body)


def test_initialize_reports_server_and_tools_capability(client):
    r = _rpc(client, "initialize", {"protocolVersion": "2025-06-18", "capabilities": {}})
    assert r.status_code == 200
    result = r.json()["result"]
    assert result["protocolVersion"] == "2025-06-18"
    assert result["capabilities"] == {"tools": {}}
    assert result["serverInfo"] == {"name": settings.SERVER_NAME, "version": settings.SERVER_VERSION}


def test_tools_list(client):
    r = _rpc(client, "tools/list", request_id="abc")
    body = r.json()
    assert body["id"] == "abc"
    assert len(body["result"]["tools"]) == 7


def test_tools_call_returns_tool_result(client, fake_db):
    fake_db["customers"].aggregate_rows = [{"customer_type": "Residential", "count": 2}]

    r = _rpc(client, "tools/call", {"name": "getCustomersCount", "arguments": {"utilityId": UTILITY_ID}})

    assert r.status_code == 200
    result = r.json()["result"]
    payload = json.loads(result["content"][0]["text"])
    assert payload["totalCustomers"] == 2
    assert "isError" not in result


def test_tools_call_validation_failure_is_not_a_transport_error(client):
    r = _rpc(client, "tools/call", {"name": "getCustomersCount", "arguments": {"utilityId": "x"}})

    assert r.status_code == 200
    body = r.json()
    assert "error" not in body
    assert body["result"]["isError"] is True


def test_tools_call_without_name(client):
    r = _rpc(client, "tools/call", {"arguments": {}})
    assert r.json()["error"]["code"] == -32602


def test_unknown_method(client):
    r = _rpc(client, "resources/list")
    assert r.json()["error"]["code"] == -32601


def test_ping(client):
    assert _rpc(client, "ping").json()["result"] == {}


def test_notification_is_accepted_without_body(client):
    r = client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})
    assert r.status_code == 202
    assert r.content == b""


def test_parse_error(client):
    r = client.post("/mcp", content=b"{not json", headers={"content-type": "application/json"})
    assert r.json()["error"]["code"] == -32700


def test_invalid_envelope(client):
    r = client.post("/mcp", json={"jsonrpc": "2.0", "id": 9})
    body = r.json()
    assert body["error"]["code"] == -32600
    assert body["id"] == 9


def test_health_reports_disconnected_database(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {
        "status": "healthy",
        "database": "disconnected",
        "server": settings.SERVER_NAME,
        "version": settings.SERVER_VERSION,
    }


def test_health_reports_connected_database(client, monkeypatch):
    monkeypatch.setattr(mongo, "_client", object())
    monkeypatch.setattr(mongo, "_connected", True)
    assert client.get("/health").json()["database"] == "connected"


def test_root_banner(client):
    body = client.get("/").json()
    assert body["version"] == settings.SERVER_VERSION
    assert body["mcp"] == "/mcp"


def test_unhandled_error_answers_with_jsonrpc_internal_error():
    def broken_db():
        raise RuntimeError("boom")

    app.dependency_overrides[get_db] = broken_db
    try:
        r = TestClient(app, raise_server_exceptions=False).post(
            "/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"}
        )
    finally:
        app.dependency_overrides.clear()

    assert r.status_code == 500
    body = r.json()
    assert body["jsonrpc"] == "2.0"
    assert body["id"] is None
    assert body["error"]["code"] == -32603
    assert body["error"]["message"] == "Internal server error"
