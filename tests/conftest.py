"""Pytest configuration and shared fixtures"""

import json
import os

import httpx
import pytest

from mcp_bridge.client import MCPClient
from mcp_bridge.config import Config
from mcp_bridge.models import EndpointConfig

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)

MCP_URL = "https://mcp.example.com/mcp"
OAUTH_TOKEN = "oauth-" + "x" * 100
INTEGRATION_TOKEN = "ntn_" + "y" * 46
SERVER_TOKEN = "server-token-123"


def rpc_result(result, id="1") -> dict:
    """JSON-RPC success payload"""
    return {"jsonrpc": "2.0", "id": id, "result": result}


def rpc_error(code: int, message: str, id="1") -> dict:
    """JSON-RPC error payload"""
    return {"jsonrpc": "2.0", "id": id, "error": {"code": code, "message": message}}


def sse_body(payload: dict, frame_id: str | None = None) -> str:
    """Encode a payload as event-stream framing"""
    lines = ["event: message"]
    if frame_id is not None:
        lines.append(f"id: {frame_id}")
    lines.append(f"data: {json.dumps(payload)}")
    return "\n".join(lines) + "\n\n"


def json_response(payload: dict, status_code: int = 200, headers=None) -> httpx.Response:
    return httpx.Response(status_code, json=payload, headers=headers)


def sse_response(payload: dict, frame_id: str | None = None, headers=None) -> httpx.Response:
    return httpx.Response(
        200,
        text=sse_body(payload, frame_id),
        headers=[("content-type", "text/event-stream"), *(headers or [])],
    )


INIT_RESULT = rpc_result(
    {
        "protocolVersion": "2024-11-05",
        "capabilities": {"tools": {}},
        "serverInfo": {"name": "test-server", "version": "0.1"},
    },
    id="init",
)


class RecordingTransport:
    """Replays canned responses in order and records every request.

    Each canned entry is an httpx.Response or a callable taking the request.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request):
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        response = self.responses.pop(0)
        return response(request) if callable(response) else response

    @property
    def bodies(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]

    @property
    def methods(self) -> list[str]:
        return [body["method"] for body in self.bodies]


class FakeClock:
    """Monotonic clock advanced only by its own sleep"""

    def __init__(self, now: float = 1000.0):
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


@pytest.fixture
def config():
    """Config fixture for client tests"""
    return Config(log_level="DEBUG", timeout_seconds=5)


@pytest.fixture
def endpoint():
    """Generic endpoint with a bearer credential"""
    return EndpointConfig(url=MCP_URL, headers={"Authorization": f"Bearer {OAUTH_TOKEN}"})


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_client(config):
    """Factory for MCPClient instances talking to a RecordingTransport"""

    def _make(recorder: RecordingTransport, **kwargs) -> MCPClient:
        http_client = httpx.AsyncClient(transport=recorder.transport)
        return MCPClient(config, http_client=http_client, **kwargs)

    return _make


@pytest.fixture
def clean_env():
    """Fixture that temporarily clears MCPBRIDGE_* environment variables.

    This ensures Config tests see the true defaults without interference
    from environment variables that might be set in the user's shell.
    """
    bridge_vars = {
        key: value for key, value in os.environ.items() if key.startswith("MCPBRIDGE_")
    }

    for key in bridge_vars:
        os.environ.pop(key, None)

    try:
        yield
    finally:
        for key in list(os.environ):
            if key.startswith("MCPBRIDGE_"):
                os.environ.pop(key)
        for key, value in bridge_vars.items():
            os.environ[key] = value


@pytest.fixture
def clean_config(clean_env):
    """Fixture that provides a Config instance with clean environment."""
    return Config()
