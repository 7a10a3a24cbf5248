"""Provider strategies: per-provider headers and accepted credential classes.

Providers are chosen by explicit configuration (``ProviderKind``), never by
matching URLs or header contents.
"""

from .consts import N8N_API_KEY_HEADER, NOTION_VERSION, NOTION_WHOAMI_URL
from .models import Credential, CredentialType, ProviderKind


class Provider:
    """Generic MCP server: bearer auth, any credential class."""

    kind = ProviderKind.GENERIC
    display_name = "MCP server"
    accepted_types: frozenset[CredentialType] = frozenset(CredentialType)
    probe_url: str | None = None

    def extra_headers(self) -> dict[str, str]:
        """Headers this provider requires on every request."""
        return {}

    def auth_headers(self, credential: Credential) -> dict[str, str]:
        return {"Authorization": credential.authorization}

    def probe_headers(self, credential: Credential) -> dict[str, str]:
        return {**self.auth_headers(credential), **self.extra_headers()}

    def accepts(self, credential_type: CredentialType) -> bool:
        return credential_type in self.accepted_types

    def required_type(self) -> CredentialType | None:
        """The user-credential class this provider insists on, if any."""
        user_types = self.accepted_types - {CredentialType.SERVER, CredentialType.UNKNOWN}
        if len(user_types) == 1:
            return next(iter(user_types))
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class GenericProvider(Provider):
    pass


class NotionProvider(Provider):
    """Notion's hosted MCP server. Needs OAuth tokens and a dated version header."""

    kind = ProviderKind.NOTION
    display_name = "Notion MCP (remote)"
    accepted_types = frozenset(
        {CredentialType.SERVER, CredentialType.OAUTH, CredentialType.UNKNOWN}
    )
    probe_url = NOTION_WHOAMI_URL

    def extra_headers(self) -> dict[str, str]:
        return {"Notion-Version": NOTION_VERSION}


class NotionLocalProvider(NotionProvider):
    """Self-hosted Notion MCP server, which works with integration tokens."""

    kind = ProviderKind.NOTION_LOCAL
    display_name = "Notion MCP (local)"
    accepted_types = frozenset(
        {CredentialType.SERVER, CredentialType.INTEGRATION, CredentialType.UNKNOWN}
    )


class N8nProvider(Provider):
    """n8n instances take the API key in their own header."""

    kind = ProviderKind.N8N
    display_name = "n8n MCP"

    def auth_headers(self, credential: Credential) -> dict[str, str]:
        return {N8N_API_KEY_HEADER: credential.token}


_PROVIDERS: dict[ProviderKind, Provider] = {
    provider.kind: provider
    for provider in (
        GenericProvider(),
        NotionProvider(),
        NotionLocalProvider(),
        N8nProvider(),
    )
}


def get_provider(kind: ProviderKind | str) -> Provider:
    """Look up the strategy for a provider kind.

    Raises:
        ValueError: If kind is not a known provider.
    """
    return _PROVIDERS[ProviderKind(kind)]
