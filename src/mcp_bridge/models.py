from enum import StrEnum
from typing import Any, Literal

import httpx
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    model_validator,
)

from .consts import BEARER_PREFIX, JSONRPC_VERSION, SESSION_HEADER
from .exceptions import MCPBridgeError

# =============================================================================
# UNIFIED RESPONSE MODEL
# =============================================================================
# Single response type for all bridge tools exposed over MCP


class Response(BaseModel):
    """Unified response type for all bridge operations and MCP tools."""

    status: Literal["success", "error"] = Field(
        ..., description="Response status indicating outcome"
    )
    message: str = Field(..., description="Human-readable summary of the response")
    data: Any | None = Field(
        None,
        description="Response payload - can be dict, pydantic model, or any serializable type",
    )
    errors: list[str] = Field(
        default_factory=list, description="List of error messages"
    )
    suggestions: list[str] = Field(
        default_factory=list, description="Actionable suggestions for the user"
    )
    metadata: dict[str, Any] | None = Field(
        None, description="Additional context and domain-specific information"
    )

    @classmethod
    def from_error(cls, error: Exception) -> "Response":
        """Create Response from any Exception, with potentially helpful info for recovery.

        Args:
            error: Any Exception instance

        Returns:
            Response object with error details
        """
        if isinstance(error, MCPBridgeError):
            # Use rich context from MCPBridgeError
            return cls(
                status="error",
                message=error.message,
                errors=error.errors,
                suggestions=error.suggestions,
                metadata={**error.context, "exception_type": type(error).__name__},
            )
        elif isinstance(error, httpx.RequestError):
            # Network/connection errors
            metadata = {"exception_type": type(error).__name__}
            try:
                metadata["url"] = str(error.request.url)
            except RuntimeError:
                pass  # request was never attached

            return cls(
                status="error",
                message=f"Network error: {str(error)}",
                errors=[str(error)],
                suggestions=[
                    "Check your internet connection",
                    "Verify the MCP server URL is correct",
                    "Try again - this may be a temporary network issue",
                ],
                metadata=metadata,
            )
        else:
            # Generic exception handling
            return cls(
                status="error",
                message=f"Unexpected error: {str(error)}",
                errors=[str(error)],
                suggestions=[
                    "Check server logs for detailed information",
                    "Try again - this may be a temporary issue",
                ],
                metadata={"exception_type": type(error).__name__},
            )


# =============================================================================
# JSON-RPC WIRE MODELS
# =============================================================================
# One request per HTTP exchange. Responses must carry exactly one of
# result/error; anything else is rejected rather than guessed at.


class RPCRequest(BaseModel):
    """JSON-RPC 2.0 request."""

    jsonrpc: str = Field(default=JSONRPC_VERSION, description="Protocol marker")
    id: str | int = Field(..., description="Caller-generated correlation id")
    method: str = Field(..., min_length=1, description="Method name")
    params: dict[str, Any] = Field(default_factory=dict, description="Parameters")


class RPCError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    data: Any | None = Field(None, description="Additional error data")


class RPCResponse(BaseModel):
    """JSON-RPC 2.0 response carrying a result or an error, never both."""

    jsonrpc: str = Field(default=JSONRPC_VERSION, description="Protocol marker")
    id: str | int | None = Field(None, description="Echoed correlation id")
    result: Any | None = Field(None, description="Method result (present on success)")
    error: RPCError | None = Field(None, description="Error object (present on error)")

    @model_validator(mode="before")
    @classmethod
    def _exactly_one_outcome(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError("response must be a JSON object")
        # a null result is still a result; a null error is no error
        has_result = "result" in data
        has_error = data.get("error") is not None
        if has_result and has_error:
            raise ValueError("response carries both result and error")
        if not has_result and not has_error:
            raise ValueError("response carries neither result nor error")
        return data

    @property
    def is_error(self) -> bool:
        return self.error is not None


# =============================================================================
# ENDPOINT AND SESSION MODELS
# =============================================================================


class ProviderKind(StrEnum):
    """Provider strategies, selected by explicit configuration."""

    GENERIC = "generic"
    NOTION = "notion"
    NOTION_LOCAL = "notion_local"
    N8N = "n8n"


class EndpointConfig(BaseModel):
    """Where to send a call and which headers to start from."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="JSON-RPC endpoint URL")
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Caller headers; augmented by the client, never removed",
    )
    provider: ProviderKind = Field(
        default=ProviderKind.GENERIC, description="Provider strategy"
    )


class Session(BaseModel):
    """Affinity produced by a successful initialize exchange."""

    session_id: str | None = Field(None, description="Server-issued session id")
    cookies: list[str] = Field(
        default_factory=list, description="name=value pairs from Set-Cookie"
    )

    def headers(self) -> dict[str, str]:
        """Headers that thread this session into a follow-up request."""
        headers = {}
        if self.session_id:
            headers[SESSION_HEADER] = self.session_id
        if self.cookies:
            headers["Cookie"] = "; ".join(self.cookies)
        return headers


class ToolDescriptor(BaseModel):
    """A tool as advertised by tools/list."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field(..., description="Tool name")
    description: str | None = Field(None, description="Human-readable description")
    input_schema: dict[str, Any] | None = Field(
        None, alias="inputSchema", description="JSON schema for arguments"
    )


# =============================================================================
# CREDENTIAL MODELS
# =============================================================================


class CredentialType(StrEnum):
    """Credential classes; only some are accepted by each provider."""

    SERVER = "server"
    OAUTH = "oauth"
    INTEGRATION = "integration"
    UNKNOWN = "unknown"


class CredentialSource(StrEnum):
    """Which store a credential came from."""

    SERVER = "server"
    OAUTH = "oauth"
    INTEGRATION = "integration"


class CredentialSources(BaseModel):
    """Everything a credential store knows for one user and server."""

    server_token: str | None = None
    oauth_token: str | None = None
    encrypted_integration_token: str | None = None


class Credential(BaseModel):
    """One selected credential; lives for a single call."""

    model_config = ConfigDict(frozen=True)

    value: SecretStr = Field(..., description="Token without any Bearer prefix")
    type: CredentialType = Field(..., description="Classified credential class")
    source: CredentialSource = Field(..., description="Store it came from")
    preformatted_bearer: bool = Field(
        False, description="Whether the stored value carried a Bearer prefix"
    )

    @property
    def token(self) -> str:
        return self.value.get_secret_value()

    @property
    def authorization(self) -> str:
        return f"{BEARER_PREFIX}{self.token}"

    @property
    def masked(self) -> str:
        """Log-safe preview of the token."""
        token = self.token
        return f"{token[:4]}...({len(token)} chars)"
