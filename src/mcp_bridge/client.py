"""MCP client: handshake, tool listing and tool calls over HTTP POST."""

import asyncio
import logging
from typing import Any
from uuid import uuid4

import httpx
from pydantic import ValidationError

from .codec import decode_response
from .config import Config, get_config
from .consts import (
    ACCEPT,
    CONTENT_TYPE,
    METHOD_CALL_TOOL,
    METHOD_INITIALIZE,
    METHOD_LIST_TOOLS,
    SESSION_HEADER_VARIANTS,
    USER_AGENT,
)
from .exceptions import (
    AuthError,
    ConnectError,
    DeadlineExceeded,
    ParseError,
    ProtocolError,
)
from .models import EndpointConfig, RPCRequest, RPCResponse, Session, ToolDescriptor
from .pacer import Pacer
from .providers import get_provider
from .sessions import SessionCache
from .utils import excerpt

logger = logging.getLogger("mcp-bridge.client")

AUTH_FAILURE_STATUSES = (401, 403)
SESSION_EXPIRED_STATUS = 404


class MCPClient:
    """MCP client over JSON-RPC/HTTP.

    Responsibilities:
    - Perform the initialize handshake and thread its session into follow-ups
    - Build headers: both encodings accepted, provider headers, caller headers
    - Decode plain JSON and event-stream responses into one shape
    - Map HTTP and JSON-RPC failures to typed errors carrying their phase
    """

    def __init__(
        self,
        config: Config | None = None,
        http_client: httpx.AsyncClient | None = None,
        pacer: Pacer | None = None,
        session_cache: SessionCache | None = None,
    ):
        """Initialize MCPClient.

        Args:
            config: Config instance. If None, uses get_config().
            http_client: HTTP client. If None, creates a new one.
            pacer: Pacer every HTTP exchange runs through. If None, calls are unpaced.
            session_cache: Session reuse. If None, built from config.session_ttl_seconds
                (disabled when that is 0).
        """
        self.config = config or get_config()

        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            timeout=self.config.timeout_seconds,
            follow_redirects=True,
        )
        self.pacer = pacer

        if session_cache is None and self.config.session_ttl_seconds:
            session_cache = SessionCache(self.config.session_ttl_seconds)
        self.session_cache = session_cache

        logger.info("MCP client created")

    async def __aenter__(self) -> "MCPClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http_client:
            await self.http_client.aclose()

    # ===== PUBLIC OPERATIONS =====

    async def initialize(
        self, endpoint: EndpointConfig, *, timeout: float | None = None
    ) -> Session:
        """Perform the initialize handshake.

        Args:
            endpoint: Target endpoint.
            timeout: Overall deadline in seconds.

        Returns:
            Session with the server-issued id and cookies, if any.

        Raises:
            AuthError: If the server rejects the credential (401/403).
            ConnectError: For any other non-success HTTP status.
            ProtocolError: If the response carries a JSON-RPC error.
            ParseError: If the response cannot be decoded.
            DeadlineExceeded: If timeout elapses first.
            httpx.RequestError: For network errors, timeouts, DNS failures.
        """
        return await self._with_deadline(
            self._initialize, endpoint, phase=METHOD_INITIALIZE, timeout=timeout
        )

    async def list_tools(
        self, endpoint: EndpointConfig, *, timeout: float | None = None
    ) -> list[ToolDescriptor]:
        """Handshake, then list the server's tools.

        Returns:
            Tool descriptors; empty if the server reports none.

        Raises:
            Same as initialize(), for either exchange.
        """
        rpc = await self._with_deadline(
            self._operate,
            endpoint,
            METHOD_LIST_TOOLS,
            {},
            phase=METHOD_LIST_TOOLS,
            timeout=timeout,
        )
        result = rpc.result if isinstance(rpc.result, dict) else {}
        tools = result.get("tools") or []
        try:
            descriptors = [ToolDescriptor.model_validate(tool) for tool in tools]
        except ValidationError as e:
            raise ParseError(
                "Malformed tool descriptor in tools/list result",
                errors=[err["msg"] for err in e.errors()],
                context={"phase": METHOD_LIST_TOOLS, "url": endpoint.url},
            ) from e

        logger.info(f"Listed {len(descriptors)} tools from {endpoint.url}")
        return descriptors

    async def call_tool(
        self,
        endpoint: EndpointConfig,
        name: str,
        arguments: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Handshake, then call one tool.

        Returns:
            The raw ``result`` of the tools/call response.

        Raises:
            Same as initialize(), for either exchange.
        """
        rpc = await self._with_deadline(
            self._operate,
            endpoint,
            METHOD_CALL_TOOL,
            {"name": name, "arguments": arguments or {}},
            phase=METHOD_CALL_TOOL,
            timeout=timeout,
        )
        logger.info(f"Called tool {name} on {endpoint.url}")
        return rpc.result

    # ===== HEADERS =====

    def build_headers(
        self, endpoint: EndpointConfig, session: Session | None = None
    ) -> httpx.Headers:
        """Request headers: base, then provider, then caller, then session.

        Later layers replace earlier ones name-insensitively, so caller
        headers are kept as given.
        """
        headers = httpx.Headers({"Content-Type": CONTENT_TYPE, "Accept": ACCEPT})
        headers.update(get_provider(endpoint.provider).extra_headers())
        headers.update(endpoint.headers)
        if session is not None:
            headers.update(session.headers())
        return headers

    # ===== INTERNALS =====

    async def _with_deadline(self, fn, *args, phase: str, timeout: float | None):
        try:
            async with asyncio.timeout(timeout) as deadline:
                return await fn(*args, deadline=deadline)
        except TimeoutError as e:
            logger.error(f"{phase} did not finish within {timeout}s")
            raise DeadlineExceeded(
                f"{phase} did not finish within {timeout}s",
                suggestions=["Allow a longer timeout or retry later"],
                context={"phase": phase, "timeout": timeout},
            ) from e

    async def _initialize(
        self, endpoint: EndpointConfig, *, deadline: asyncio.Timeout
    ) -> Session:
        request = RPCRequest(
            id=f"init-{uuid4().hex}",
            method=METHOD_INITIALIZE,
            params={
                "protocolVersion": self.config.protocol_version,
                "capabilities": {"tools": {}},
                "clientInfo": {
                    "name": self.config.client_name,
                    "version": self.config.client_version,
                },
            },
        )
        logger.debug(f"Initializing connection to {endpoint.url}")
        response, rpc = await self._exchange(
            endpoint, request, METHOD_INITIALIZE, deadline=deadline
        )
        session = self.extract_session(response, rpc)
        logger.debug(
            f"Initialized {endpoint.url} "
            f"(session id: {'yes' if session.session_id else 'no'}, "
            f"cookies: {len(session.cookies)})"
        )
        return session

    async def _operate(
        self,
        endpoint: EndpointConfig,
        method: str,
        params: dict[str, Any],
        *,
        deadline: asyncio.Timeout,
    ) -> RPCResponse:
        """Handshake (or reuse a cached session), then send one request."""
        prefix = "tools" if method == METHOD_LIST_TOOLS else "call"
        key = SessionCache.key(endpoint) if self.session_cache is not None else None

        session = await self.session_cache.get(key) if key is not None else None
        reused = session is not None
        if session is None:
            session = await self._initialize(endpoint, deadline=deadline)
            if key is not None:
                await self.session_cache.put(key, session)

        request = RPCRequest(id=f"{prefix}-{uuid4().hex}", method=method, params=params)
        try:
            _, rpc = await self._exchange(
                endpoint, request, method, session, deadline=deadline
            )
        except ConnectError as e:
            stale = isinstance(e, AuthError) or e.status_code == SESSION_EXPIRED_STATUS
            if key is None or not stale:
                raise
            await self.session_cache.invalidate(key)
            if not reused or isinstance(e, AuthError):
                raise
            logger.info(f"Cached session for {endpoint.url} expired, re-initializing")
            session = await self._initialize(endpoint, deadline=deadline)
            await self.session_cache.put(key, session)
            _, rpc = await self._exchange(
                endpoint, request, method, session, deadline=deadline
            )
        return rpc

    async def _exchange(
        self,
        endpoint: EndpointConfig,
        request: RPCRequest,
        phase: str,
        session: Session | None = None,
        *,
        deadline: asyncio.Timeout,
    ) -> tuple[httpx.Response, RPCResponse]:
        """One POST, paced when a pacer is configured, decoded and checked."""
        headers = self.build_headers(endpoint, session)
        payload = request.model_dump()

        if self.pacer is None:
            return await self._send(endpoint.url, payload, headers, phase)

        remaining = None
        when = deadline.when()
        if when is not None:
            remaining = max(when - asyncio.get_running_loop().time(), 0)
        return await self.pacer.run(
            self._send,
            endpoint.url,
            payload,
            headers,
            phase,
            operation=f"{phase} {endpoint.url}",
            timeout=remaining,
        )

    async def _send(
        self,
        url: str,
        payload: dict[str, Any],
        headers: httpx.Headers,
        phase: str,
    ) -> tuple[httpx.Response, RPCResponse]:
        logger.debug(f"POST {url} ({phase})")
        response = await self.http_client.post(url, json=payload, headers=headers)
        context = {"phase": phase, "url": url}

        if not response.is_success:
            status = response.status_code
            body = excerpt(response.text)
            logger.error(f"{phase} failed: {status} {response.reason_phrase}")
            if status in AUTH_FAILURE_STATUSES:
                raise AuthError(
                    f"{phase} failed: credential rejected ({status})",
                    status_code=status,
                    body=body,
                    errors=[body] if body else [],
                    suggestions=[
                        "Re-authenticate: the credential is missing, expired or revoked",
                        "Check that this server accepts the credential type in use",
                    ],
                    context=context,
                )
            raise ConnectError(
                f"{phase} failed: {status} {response.reason_phrase}",
                status_code=status,
                body=body,
                errors=[body] if body else [],
                context=context,
            )

        try:
            rpc = decode_response(response.text)
        except ParseError as e:
            e.context.update(context)
            raise

        if rpc.is_error:
            logger.error(
                f"{phase} error: {rpc.error.message} (code: {rpc.error.code})"
            )
            raise ProtocolError(
                rpc.error.message,
                code=rpc.error.code,
                data=rpc.error.data,
                errors=[f"{phase} error: {rpc.error.message} (code: {rpc.error.code})"],
                context=context,
            )

        logger.debug(f"POST {url} ({phase}) successful")
        return response, rpc

    @staticmethod
    def extract_session(response: httpx.Response, rpc: RPCResponse) -> Session:
        """Session id from headers (every case variant), then from the body."""
        session_id = None
        for name in SESSION_HEADER_VARIANTS:
            session_id = response.headers.get(name)
            if session_id:
                break

        if not session_id and isinstance(rpc.result, dict):
            server_info = rpc.result.get("serverInfo")
            session_id = rpc.result.get("sessionId") or (
                server_info.get("sessionId") if isinstance(server_info, dict) else None
            )

        if not isinstance(session_id, str):
            session_id = None

        cookies = [
            cookie.split(";", 1)[0].strip()
            for cookie in response.headers.get_list("set-cookie")
            if cookie.strip()
        ]
        return Session(session_id=session_id or None, cookies=cookies)
