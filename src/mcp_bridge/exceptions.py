"""MCP bridge custom exceptions.

Exception Design Principles:
1. Every error carries enough context (phase, status, body excerpt) to be
   diagnosed without re-running with extra instrumentation
2. Handle exceptions as late as possible (preserve details until domain context is available)
3. Split on domain of actionable information:
   - Transport and wire failures (ConnectError, AuthError, ProtocolError, ParseError)
   - Credential selection failures, raised before any network call where possible
     (NoCredentialFound, DecryptionFailed, CapabilityMismatch, ValidationFailed)
   - Recoverable locally by bounded retry (RateLimitExceeded once retries run out)
   - Recoverable by user reconfiguration outside session (ConfigError)
"""

from typing import Any


class MCPBridgeError(Exception):
    """Base exception for all MCP bridge errors.

    Provides rich context and actionable suggestions beyond standard exceptions.
    All MCP bridge custom exceptions inherit from this base class.
    """

    def __init__(
        self,
        message: str,  # the error message
        *,
        errors: list[str] = None,  # detailed list of errors (if available)
        suggestions: list[str] = None,  # remedial actions
        context: dict = None,  # additional detailed context
    ):
        """Initialize MCPBridgeError.

        Args:
            message: Primary error message for users
            errors: List of specific error details
            suggestions: List of actionable suggestions for resolution
            context: Additional context information as key-value pairs
        """
        super().__init__(message)
        self.message = message
        self.errors = errors or []
        self.suggestions = suggestions or []
        self.context = context or {}

    @property
    def phase(self) -> str | None:
        """Protocol phase the error happened in, if known."""
        return self.context.get("phase")


class ConnectError(MCPBridgeError):
    """Server answered with a non-success HTTP status.

    Carries the status code and an excerpt of the raw body. A 429 stays a
    ConnectError so the pacer can classify it by its status code.
    """

    def __init__(self, message: str, *, status_code: int, body: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body = body
        self.context.setdefault("status_code", status_code)


class AuthError(ConnectError):
    """Server rejected the credential (HTTP 401/403).

    The most common failure an end user sees: the credential is missing,
    expired or revoked and the fix is to authenticate again.
    """

    pass


class ProtocolError(MCPBridgeError):
    """Decoded response carried a JSON-RPC error object."""

    def __init__(self, message: str, *, code: int, data: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.code = code
        self.data = data
        self.context.setdefault("code", code)


class ParseError(MCPBridgeError):
    """Body is neither a JSON-RPC payload nor usable event-stream framing.

    Also raised for payloads that carry both a result and an error, or
    neither. These indicate a misbehaving server, not a user problem.
    """

    pass


class CredentialError(MCPBridgeError):
    """Base for failures choosing or checking a credential."""

    pass


class NoCredentialFound(CredentialError):
    """No credential source held a token."""

    pass


class DecryptionFailed(CredentialError):
    """Stored integration credential could not be decrypted."""

    pass


class CapabilityMismatch(CredentialError):
    """Credential class is not accepted by the target provider.

    Raised before any network call, instead of letting the server answer
    with an opaque rejection.
    """

    pass


class ValidationFailed(CredentialError):
    """Upstream who-am-I probe rejected the credential."""

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class RateLimitExceeded(MCPBridgeError):
    """Pacer ran out of attempts (or time) while the upstream kept rate limiting."""

    def __init__(self, message: str, *, cause: BaseException | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.cause = cause


class DeadlineExceeded(MCPBridgeError):
    """Caller's overall deadline elapsed before the operation finished."""

    pass


class ConfigError(MCPBridgeError):
    """Application configuration errors - recoverable by user reconfiguration.

    Covers setup issues that can be resolved by user action outside the
    current session, such as an unknown server name or a server entry with
    no usable URL.
    """

    pass
