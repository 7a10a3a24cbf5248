"""Tests for models"""

import httpx
import pytest
from pydantic import ValidationError

from conftest import OAUTH_TOKEN
from mcp_bridge.exceptions import CapabilityMismatch
from mcp_bridge.models import (
    Credential,
    CredentialSource,
    CredentialType,
    EndpointConfig,
    Response,
    RPCRequest,
    Session,
    ToolDescriptor,
)


class TestResponseFromError:
    """Response.from_error keeps what callers need to recover"""

    def test_bridge_error(self):
        error = CapabilityMismatch(
            "Integration credential detected",
            errors=["wrong class"],
            suggestions=["Authenticate via OAuth"],
            context={"provider": "notion"},
        )

        response = Response.from_error(error)

        assert response.status == "error"
        assert response.message == "Integration credential detected"
        assert response.suggestions == ["Authenticate via OAuth"]
        assert response.metadata == {
            "provider": "notion",
            "exception_type": "CapabilityMismatch",
        }

    def test_network_error(self):
        request = httpx.Request("POST", "https://mcp.example.com/mcp")
        error = httpx.ConnectError("connection refused", request=request)

        response = Response.from_error(error)

        assert response.message.startswith("Network error")
        assert response.metadata["url"] == "https://mcp.example.com/mcp"

    def test_network_error_without_request(self):
        response = Response.from_error(httpx.ConnectError("connection refused"))

        assert "url" not in response.metadata

    def test_unexpected_error(self):
        response = Response.from_error(KeyError("x"))

        assert response.message.startswith("Unexpected error")
        assert response.metadata["exception_type"] == "KeyError"


class TestWireModels:
    def test_request_dump(self):
        request = RPCRequest(id="init-1", method="initialize")

        assert request.model_dump() == {
            "jsonrpc": "2.0",
            "id": "init-1",
            "method": "initialize",
            "params": {},
        }

    def test_empty_method_rejected(self):
        with pytest.raises(ValidationError):
            RPCRequest(id=1, method="")


class TestSession:
    """Session threading headers"""

    @pytest.mark.parametrize(
        "session,expected",
        [
            (Session(), {}),
            (Session(session_id="S1"), {"Mcp-Session-Id": "S1"}),
            (Session(cookies=["a=1", "b=2"]), {"Cookie": "a=1; b=2"}),
            (
                Session(session_id="S1", cookies=["a=1"]),
                {"Mcp-Session-Id": "S1", "Cookie": "a=1"},
            ),
        ],
    )
    def test_headers(self, session, expected):
        assert session.headers() == expected


class TestToolDescriptor:
    def test_alias_and_extras(self):
        tool = ToolDescriptor.model_validate(
            {
                "name": "search",
                "inputSchema": {"type": "object"},
                "annotations": {"readOnlyHint": True},
            }
        )

        assert tool.input_schema == {"type": "object"}
        dumped = tool.model_dump(by_alias=True, exclude_none=True)
        assert dumped["inputSchema"] == {"type": "object"}
        assert dumped["annotations"] == {"readOnlyHint": True}


class TestCredential:
    """Credentials never leak through repr or masking"""

    @pytest.fixture
    def credential(self):
        return Credential(
            value=OAUTH_TOKEN, type=CredentialType.OAUTH, source=CredentialSource.OAUTH
        )

    def test_masked(self, credential):
        assert credential.masked == f"oaut...({len(OAUTH_TOKEN)} chars)"

    def test_repr_hides_token(self, credential):
        assert OAUTH_TOKEN not in repr(credential)
        assert OAUTH_TOKEN not in str(credential.model_dump())

    def test_authorization(self, credential):
        assert credential.authorization == f"Bearer {OAUTH_TOKEN}"

    def test_frozen(self, credential):
        with pytest.raises(ValidationError):
            credential.type = CredentialType.INTEGRATION


class TestEndpointConfig:
    def test_defaults(self):
        endpoint = EndpointConfig(url="https://mcp.example.com/mcp")

        assert endpoint.provider == "generic"
        assert endpoint.headers == {}
