"""Protocol definitions for dependency injection and interface contracts.

The credential store, secret decryption and OAuth refresh live outside this
package; these are the only parts of them the bridge relies on.
"""

from typing import Protocol

from .models import CredentialSources


class CredentialStore(Protocol):
    """Protocol for the persistent store holding user credentials."""

    async def get_sources(self, user_id: str | None) -> CredentialSources:
        """Get every credential the store holds for a user.

        Returns:
            Sources with absent entries left as None.
        """
        ...


class SecretDecryptor(Protocol):
    """Protocol for decrypting stored integration credentials."""

    async def decrypt(self, ciphertext: str) -> str:
        """Decrypt a stored secret.

        Raises:
            Exception: Any failure; the resolver reports it as DecryptionFailed.
        """
        ...


class TokenRefresher(Protocol):
    """Protocol for obtaining a fresh OAuth credential."""

    async def refresh(self, user_id: str | None) -> str | None:
        """Get a refreshed OAuth token, or None if the user must log in again."""
        ...
