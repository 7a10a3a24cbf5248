"""Credential selection, classification and capability checks."""

import logging

import httpx

from .config import Config, get_config
from .consts import BEARER_PREFIX, INTEGRATION_TOKEN_PREFIXES, OAUTH_TOKEN_MIN_LENGTH, USER_AGENT
from .exceptions import (
    CapabilityMismatch,
    DecryptionFailed,
    NoCredentialFound,
    ValidationFailed,
)
from .models import Credential, CredentialSource, CredentialSources, CredentialType
from .protocols import CredentialStore, SecretDecryptor, TokenRefresher
from .providers import Provider
from .utils import excerpt

logger = logging.getLogger("mcp-bridge.credentials")

_REMEDIATION = {
    CredentialType.OAUTH: [
        "Authenticate via OAuth to obtain an OAuth credential",
        "Or use a self-hosted server that accepts integration tokens",
    ],
    CredentialType.INTEGRATION: [
        "Add an integration token for this server",
        "Or use the hosted server, which accepts OAuth credentials",
    ],
}


def strip_bearer(raw: str) -> tuple[str, bool]:
    """Split off a literal ``Bearer `` prefix.

    Returns:
        The bare token and whether the prefix was present.
    """
    raw = raw.strip()
    if raw.startswith(BEARER_PREFIX):
        return raw[len(BEARER_PREFIX) :].strip(), True
    return raw, False


def classify_token(raw: str) -> CredentialType:
    """Best-effort classification of a user token by its shape.

    Integration tokens carry a well-known prefix; OAuth tokens carry none
    but are long. Anything else is UNKNOWN, which is a valid answer.
    """
    token, _ = strip_bearer(raw)
    if token.startswith(INTEGRATION_TOKEN_PREFIXES):
        return CredentialType.INTEGRATION
    if len(token) > OAUTH_TOKEN_MIN_LENGTH:
        return CredentialType.OAUTH
    return CredentialType.UNKNOWN


def make_credential(raw: str, source: CredentialSource) -> Credential:
    """Build a Credential; server-scoped tokens are typed by source, not shape."""
    token, preformatted = strip_bearer(raw)
    if source == CredentialSource.SERVER:
        credential_type = CredentialType.SERVER
    else:
        credential_type = classify_token(token)
    return Credential(
        value=token,
        type=credential_type,
        source=source,
        preformatted_bearer=preformatted,
    )


class CredentialResolver:
    """Picks exactly one usable credential per call.

    Responsibilities:
    - Select in priority order: server-scoped, OAuth, integration
    - Decrypt the integration credential only when it is needed
    - Refuse credentials whose class the target provider does not accept
    - Optionally probe the provider to catch expired credentials early
    """

    def __init__(
        self,
        decryptor: SecretDecryptor | None = None,
        store: CredentialStore | None = None,
        refresher: TokenRefresher | None = None,
        http_client: httpx.AsyncClient | None = None,
        config: Config | None = None,
    ):
        """Initialize CredentialResolver.

        Args:
            decryptor: Decrypts stored integration tokens.
            store: Source of per-user credentials for resolve_for_user().
            refresher: Supplies a fresh OAuth token when a probe fails.
            http_client: HTTP client for probes. If None, one is created per probe.
            config: Config instance. If None, uses get_config().
        """
        self.decryptor = decryptor
        self.store = store
        self.refresher = refresher
        self.http_client = http_client
        self.config = config or get_config()

    async def resolve(
        self,
        sources: CredentialSources,
        provider: Provider,
        *,
        validate: bool = False,
        user_id: str | None = None,
    ) -> Credential:
        """Select, gate and optionally probe a credential.

        Args:
            sources: Available credential sources.
            provider: Target provider strategy.
            validate: Probe the provider's who-am-I endpoint first.
            user_id: Passed to the refresher if a probe fails.

        Returns:
            The credential to use for this call.

        Raises:
            NoCredentialFound: If every source is empty.
            DecryptionFailed: If the integration token cannot be decrypted.
            CapabilityMismatch: If the provider does not accept the class.
            ValidationFailed: If the probe rejects the credential.
        """
        credential = await self.select(sources)
        logger.debug(
            f"Selected {credential.type} credential from {credential.source} "
            f"source: {credential.masked}"
        )
        self.check_capability(credential, provider)

        if validate:
            try:
                await self.validate(credential, provider)
            except ValidationFailed:
                if credential.source != CredentialSource.OAUTH or self.refresher is None:
                    raise
                credential = await self._refreshed(credential, provider, user_id)

        return credential

    async def resolve_for_user(
        self,
        user_id: str | None,
        provider: Provider,
        *,
        server_token: str | None = None,
        validate: bool = False,
    ) -> Credential:
        """Resolve using the credential store's sources for a user.

        A server-scoped token supplied here overrides whatever the store holds.
        """
        if self.store is None:
            sources = CredentialSources()
        else:
            sources = await self.store.get_sources(user_id)
        if server_token:
            sources = sources.model_copy(update={"server_token": server_token})
        return await self.resolve(
            sources, provider, validate=validate, user_id=user_id
        )

    async def select(self, sources: CredentialSources) -> Credential:
        """Pick the first present credential in priority order."""
        if sources.server_token:
            return make_credential(sources.server_token, CredentialSource.SERVER)
        if sources.oauth_token:
            return make_credential(sources.oauth_token, CredentialSource.OAUTH)
        if sources.encrypted_integration_token:
            token = await self._decrypt(sources.encrypted_integration_token)
            return make_credential(token, CredentialSource.INTEGRATION)

        raise NoCredentialFound(
            "No credential found in any source",
            suggestions=[
                "Authenticate via OAuth or add an integration token",
                "Or configure a server token for this server",
            ],
        )

    def check_capability(self, credential: Credential, provider: Provider) -> None:
        """Refuse a credential the provider is known not to accept.

        Raises:
            CapabilityMismatch: If the credential's class is not accepted.
        """
        if provider.accepts(credential.type):
            if credential.type == CredentialType.UNKNOWN:
                logger.warning(
                    f"Unrecognised credential shape for {provider.display_name}: "
                    f"{credential.masked}"
                )
            return

        required = provider.required_type()
        needed = f"an {required} credential" if required else "a different credential class"
        raise CapabilityMismatch(
            f"{credential.type.capitalize()} credential detected; "
            f"{provider.display_name} requires {needed}",
            errors=[f"Credential {credential.masked} is {credential.type}-class"],
            suggestions=_REMEDIATION.get(
                required, ["Use a credential class this server accepts"]
            ),
            context={
                "provider": str(provider.kind),
                "credential_type": str(credential.type),
                "credential_source": str(credential.source),
            },
        )

    async def validate(self, credential: Credential, provider: Provider) -> None:
        """Probe the provider's who-am-I endpoint with the credential.

        Providers without a probe endpoint are not checked.

        Raises:
            ValidationFailed: If the provider answers with a non-success status.
            httpx.RequestError: For network errors, timeouts, DNS failures.
        """
        if not provider.probe_url:
            return

        logger.debug(f"Probing {provider.probe_url} with {credential.masked}")
        headers = provider.probe_headers(credential)
        if self.http_client is not None:
            response = await self.http_client.get(provider.probe_url, headers=headers)
        else:
            async with httpx.AsyncClient(
                headers={"User-Agent": USER_AGENT},
                timeout=self.config.timeout_seconds,
            ) as client:
                response = await client.get(provider.probe_url, headers=headers)

        if response.is_success:
            logger.debug(f"{provider.display_name} accepted {credential.masked}")
            return

        raise ValidationFailed(
            f"{provider.display_name} rejected the {credential.type} credential "
            f"({response.status_code})",
            status_code=response.status_code,
            errors=[excerpt(response.text)],
            suggestions=[
                "The credential may be expired or revoked - re-authenticate",
            ],
            context={
                "provider": str(provider.kind),
                "credential_source": str(credential.source),
                "status_code": response.status_code,
            },
        )

    async def _decrypt(self, ciphertext: str) -> str:
        if self.decryptor is None:
            raise DecryptionFailed(
                "Integration credential is stored encrypted but no decryptor is configured"
            )
        try:
            token = await self.decryptor.decrypt(ciphertext)
        except Exception as e:
            logger.error(f"Failed to decrypt integration credential: {e}")
            raise DecryptionFailed(
                "Stored integration credential could not be decrypted",
                errors=[str(e)],
                suggestions=["Re-enter the integration token in settings"],
            ) from e
        if not token:
            raise DecryptionFailed(
                "Stored integration credential decrypted to an empty value",
                suggestions=["Re-enter the integration token in settings"],
            )
        return token

    async def _refreshed(
        self, stale: Credential, provider: Provider, user_id: str | None
    ) -> Credential:
        logger.info(f"OAuth credential {stale.masked} failed its probe, refreshing")
        token = await self.refresher.refresh(user_id)
        if not token:
            raise ValidationFailed(
                "OAuth credential is expired and could not be refreshed",
                suggestions=["Re-authenticate via OAuth"],
                context={"provider": str(provider.kind)},
            )
        credential = make_credential(token, CredentialSource.OAUTH)
        self.check_capability(credential, provider)
        await self.validate(credential, provider)
        logger.info(f"Refreshed OAuth credential accepted: {credential.masked}")
        return credential
