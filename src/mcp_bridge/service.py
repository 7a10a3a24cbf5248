"""Bridge service: credential resolution plus client calls for named servers."""

import logging
from functools import cache
from typing import Any

import httpx
from pydantic import SecretStr

from .client import MCPClient
from .config import Config, ServerSettings, get_config
from .credentials import CredentialResolver
from .exceptions import ConfigError, MCPBridgeError, NoCredentialFound
from .models import CredentialSources, EndpointConfig, ToolDescriptor
from .pacer import Pacer, get_pacer
from .protocols import CredentialStore
from .providers import get_provider
from .utils import suggest_similar_strings

logger = logging.getLogger("mcp-bridge.service")


class BridgeService:
    """Calls configured MCP servers with one consistently resolved credential."""

    def __init__(
        self,
        client: MCPClient,
        resolver: CredentialResolver,
        config: Config | None = None,
    ):
        """Initialize BridgeService.

        Args:
            client: MCPClient used for every call.
            resolver: CredentialResolver shared by every call.
            config: Config holding the named servers. If None, uses client.config.
        """
        self.client = client
        self.resolver = resolver
        self.config = config or client.config

    def server_settings(self, server_name: str) -> ServerSettings:
        """Look up a configured server.

        Raises:
            ConfigError: If no server has that name.
        """
        try:
            return self.config.servers[server_name]
        except KeyError:
            known = sorted(self.config.servers)
            similar = suggest_similar_strings(server_name, known)
            suggestions = [f"Did you mean '{name}'?" for name in similar]
            suggestions.append(
                "Configure servers with MCPBRIDGE_SERVERS" if not known
                else f"Configured servers: {', '.join(known)}"
            )
            raise ConfigError(
                f"Unknown MCP server: {server_name}",
                suggestions=suggestions,
                context={"server_name": server_name},
            ) from None

    async def endpoint_for(
        self,
        server_name: str,
        *,
        user_id: str | None = None,
        sources: CredentialSources | None = None,
    ) -> EndpointConfig:
        """Resolve a credential for a server and build its endpoint config.

        Args:
            server_name: Configured server name.
            user_id: User whose stored credentials to use.
            sources: Explicit credential sources, bypassing the store.

        Raises:
            ConfigError: If the server is unknown.
            CredentialError: If no acceptable credential can be resolved.
        """
        settings = self.server_settings(server_name)
        provider = get_provider(settings.provider)
        server_token = _secret(settings.server_token)

        try:
            if sources is not None:
                if server_token:
                    sources = sources.model_copy(update={"server_token": server_token})
                credential = await self.resolver.resolve(
                    sources,
                    provider,
                    validate=settings.validate_credentials,
                    user_id=user_id,
                )
            else:
                credential = await self.resolver.resolve_for_user(
                    user_id,
                    provider,
                    server_token=server_token,
                    validate=settings.validate_credentials,
                )
        except NoCredentialFound:
            if settings.requires_auth:
                raise
            logger.debug(f"{server_name} needs no credential, calling unauthenticated")
            auth_headers = {}
        else:
            auth_headers = provider.auth_headers(credential)
            logger.debug(
                f"Using {credential.type} credential {credential.masked} for {server_name}"
            )

        return EndpointConfig(
            url=settings.url,
            headers={**settings.headers, **auth_headers},
            provider=settings.provider,
        )

    async def list_tools(
        self,
        server_name: str,
        *,
        user_id: str | None = None,
        sources: CredentialSources | None = None,
        timeout: float | None = None,
    ) -> list[ToolDescriptor]:
        """List the tools of a configured server."""
        endpoint = await self.endpoint_for(server_name, user_id=user_id, sources=sources)
        return await self.client.list_tools(endpoint, timeout=timeout)

    async def call_tool(
        self,
        server_name: str,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        *,
        user_id: str | None = None,
        sources: CredentialSources | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Call one tool on a configured server and return its raw result."""
        endpoint = await self.endpoint_for(server_name, user_id=user_id, sources=sources)
        return await self.client.call_tool(
            endpoint, tool_name, arguments, timeout=timeout
        )

    async def check_servers(self, *, user_id: str | None = None) -> dict[str, dict]:
        """List tools on every configured server and report the outcome of each.

        Failures are reported per server rather than raised.
        """
        report = {}
        for name, settings in self.config.servers.items():
            try:
                tools = await self.list_tools(name, user_id=user_id)
            except (MCPBridgeError, httpx.RequestError) as e:
                logger.warning(f"Server check failed for {name}: {e}")
                report[name] = {
                    "url": settings.url,
                    "connected": False,
                    "tool_count": 0,
                    "error": str(e),
                    "exception_type": type(e).__name__,
                }
            else:
                report[name] = {
                    "url": settings.url,
                    "connected": True,
                    "tool_count": len(tools),
                    "tools": [tool.name for tool in tools],
                }
        return report


class SettingsCredentialStore:
    """Credential store backed by the bridge's own settings (single user)."""

    def __init__(self, config: Config):
        self.config = config

    async def get_sources(self, user_id: str | None) -> CredentialSources:
        return CredentialSources(
            oauth_token=_secret(self.config.oauth_token),
            encrypted_integration_token=_secret(self.config.integration_token),
        )


class PlaintextDecryptor:
    """Decryptor for settings that hold the integration token in the clear."""

    async def decrypt(self, ciphertext: str) -> str:
        return ciphertext


def _secret(value: SecretStr | None) -> str | None:
    return value.get_secret_value() if value is not None else None


def create_service(
    config: Config | None = None, store: CredentialStore | None = None
) -> BridgeService:
    """Build a BridgeService with a paced client and a settings-backed resolver."""
    pacer = get_pacer() if config is None else Pacer.from_config(config)
    config = config or get_config()
    client = MCPClient(config, pacer=pacer)
    resolver = CredentialResolver(
        decryptor=PlaintextDecryptor(),
        store=store or SettingsCredentialStore(config),
        config=config,
    )
    return BridgeService(client, resolver, config)


@cache
def get_service() -> BridgeService:
    """Get a cached BridgeService instance with default configuration."""
    return create_service()
