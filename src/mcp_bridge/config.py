"""Configuration management."""

import logging
from functools import cache

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings

from .consts import (
    MAX_ATTEMPTS,
    MIN_REQUEST_INTERVAL_SECONDS,
    PACKAGE_VERSION,
    PROTOCOL_VERSION,
    RETRY_BASE_DELAY_SECONDS,
    RETRY_MAX_DELAY_SECONDS,
    SERVER_NAME,
)
from .models import ProviderKind


class ServerSettings(BaseModel):
    """One remote MCP server the bridge can talk to."""

    url: str = Field(..., description="JSON-RPC endpoint of the MCP server")
    provider: ProviderKind = Field(
        default=ProviderKind.GENERIC,
        description="Provider strategy deciding headers and accepted credentials",
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra headers sent on every request"
    )
    server_token: SecretStr | None = Field(
        default=None,
        description="Server-scoped credential; wins over any user credential",
    )
    requires_auth: bool = Field(
        default=True,
        description="Whether calls without any credential should be refused",
    )
    validate_credentials: bool = Field(
        default=False,
        description="Probe the provider's who-am-I endpoint before calling",
    )


class Config(BaseSettings):
    """Bridge configuration, overridable through MCPBRIDGE_* variables."""

    model_config = ConfigDict(
        env_prefix="MCPBRIDGE_",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )
    log_level: str = Field(
        default="INFO",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
        description="Logging level",
    )
    timeout_seconds: int = Field(
        default=30, gt=0, le=300, description="HTTP request timeout in seconds"
    )

    # Handshake identity
    protocol_version: str = Field(
        default=PROTOCOL_VERSION, description="Protocol version sent on initialize"
    )
    client_name: str = Field(default=SERVER_NAME, description="clientInfo.name")
    client_version: str = Field(
        default=PACKAGE_VERSION, description="clientInfo.version"
    )

    # Pacing and retry
    min_request_interval: float = Field(
        default=MIN_REQUEST_INTERVAL_SECONDS,
        ge=0,
        le=60,
        description="Minimum seconds between paced outbound calls",
    )
    max_attempts: int = Field(
        default=MAX_ATTEMPTS, ge=1, le=20, description="Attempts per paced call"
    )
    retry_base_delay: float = Field(
        default=RETRY_BASE_DELAY_SECONDS,
        gt=0,
        description="First backoff delay in seconds, doubled per attempt",
    )
    retry_max_delay: float = Field(
        default=RETRY_MAX_DELAY_SECONDS, gt=0, description="Backoff delay cap"
    )

    # 0 disables reuse: every public operation performs its own handshake
    session_ttl_seconds: int = Field(
        default=0, ge=0, le=3600, description="Session reuse TTL in seconds"
    )

    servers: dict[str, ServerSettings] = Field(
        default_factory=dict, description="Named remote MCP servers"
    )

    # Single-user credentials for the stdio bridge server
    oauth_token: SecretStr | None = Field(
        default=None, description="OAuth-class user credential"
    )
    integration_token: SecretStr | None = Field(
        default=None, description="Integration-class user credential"
    )


@cache
def get_config() -> Config:
    """Get a cached Config instance."""
    return Config()


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """Configure logging for the entire application"""
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,  # Override any existing configuration
    )
    return logging.getLogger(SERVER_NAME)
