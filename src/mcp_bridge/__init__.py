"""MCP Bridge Package

A client for MCP servers reached over JSON-RPC/HTTP, with credential
selection, provider-specific headers, and pacing for rate-limited upstreams.
"""

from .client import MCPClient
from .codec import decode_response
from .config import Config, ServerSettings, get_config
from .consts import PACKAGE_VERSION
from .credentials import CredentialResolver, classify_token
from .exceptions import (
    AuthError,
    CapabilityMismatch,
    ConfigError,
    ConnectError,
    CredentialError,
    DeadlineExceeded,
    DecryptionFailed,
    MCPBridgeError,
    NoCredentialFound,
    ParseError,
    ProtocolError,
    RateLimitExceeded,
    ValidationFailed,
)
from .models import (
    Credential,
    CredentialSources,
    CredentialType,
    EndpointConfig,
    ProviderKind,
    Session,
    ToolDescriptor,
)
from .pacer import Pacer, get_pacer
from .providers import get_provider
from .service import BridgeService, create_service, get_service

__version__ = PACKAGE_VERSION

__all__ = [
    "__version__",
    "get_config",
    "get_pacer",
    "get_provider",
    "get_service",
    "create_service",
    "decode_response",
    "classify_token",
    "Config",
    "ServerSettings",
    "MCPClient",
    "CredentialResolver",
    "Pacer",
    "BridgeService",
    "EndpointConfig",
    "Session",
    "ToolDescriptor",
    "Credential",
    "CredentialSources",
    "CredentialType",
    "ProviderKind",
    "MCPBridgeError",
    "ConnectError",
    "AuthError",
    "ProtocolError",
    "ParseError",
    "CredentialError",
    "NoCredentialFound",
    "DecryptionFailed",
    "CapabilityMismatch",
    "ValidationFailed",
    "RateLimitExceeded",
    "DeadlineExceeded",
    "ConfigError",
]
