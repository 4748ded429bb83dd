"""
Base client interface for MCP servers.

This module defines the abstract base class every protocol client
implements, together with the pieces they share: auth header
construction, the aiohttp request plumbing, the request wrapper that
turns any failure into an OperationResult, and lazy initialization.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, TYPE_CHECKING

import aiohttp

from .errors import HTTPStatusError, parse_error
from .models import (
    ClientInfo,
    ContextRequest,
    MCPError,
    OperationResult,
    PromptsRequest,
    ToolExecutionRequest,
    ToolsRequest,
)
from ..config.models import AuthConfig, AuthType, ClientProtocol, DEFAULT_AUTH_HEADER

if TYPE_CHECKING:
    from ..config.models import ServerConfig

logger = logging.getLogger(__name__)

# Fixed per-request timeout at the transport boundary
DEFAULT_TIMEOUT_SECONDS = 10

CONTENT_TYPE = "Content-Type"
ACCEPT = "Accept"
AUTHORIZATION = "Authorization"
JSON_CONTENT_TYPE = "application/json"


def build_headers(auth_type: AuthType | str, auth_config: AuthConfig | None) -> dict[str, str]:
    """
    Build request headers for a server's auth settings.

    Args:
        auth_type: One of none, apiKey, basic, bearer
        auth_config: Credentials for the auth type

    Returns:
        Headers with Content-Type/Accept plus the auth header, if any
    """
    headers = {
        CONTENT_TYPE: JSON_CONTENT_TYPE,
        ACCEPT: JSON_CONTENT_TYPE,
    }
    auth_config = auth_config or AuthConfig()
    auth_type = AuthType(auth_type)

    if auth_type == AuthType.API_KEY:
        key = auth_config.api_key
        header_name = auth_config.header_name or DEFAULT_AUTH_HEADER
        if key:
            headers[header_name] = key
            logger.debug(f"Applied API key auth header: {header_name}")

    elif auth_type == AuthType.BEARER:
        token = auth_config.token
        if token:
            headers[AUTHORIZATION] = f"Bearer {token}"
            logger.debug("Applied bearer auth header")

    elif auth_type == AuthType.BASIC:
        username = auth_config.username
        password = auth_config.password or ""
        if username:
            credentials = base64.b64encode(
                f"{username}:{password}".encode()
            ).decode("ascii")
            headers[AUTHORIZATION] = f"Basic {credentials}"
            logger.debug("Applied basic auth header")

    return headers


class BaseClient(ABC):
    """
    Abstract base class for MCP server clients.

    A client mirrors the ServerConfig it was created from (later edits to
    the config are not picked up; re-register the server instead) and owns
    one aiohttp session.

    Every public operation returns an OperationResult and never raises.
    Operations other than initialize, check_health and get_capabilities
    first make sure the handshake has succeeded.
    """

    protocol: ClientProtocol = ClientProtocol.AUTO

    def __init__(self, config: ServerConfig, client_info: ClientInfo | None = None):
        if not config.url:
            raise ValueError(f"Server '{config.id}' requires a 'url'")

        self.id = config.id
        self.name = config.name
        self.url = config.url.rstrip("/")
        self.enabled = config.enabled
        self.auth_type = config.auth_type
        self.auth_config = config.auth_config
        self.client_info = client_info or ClientInfo()

        self.initialized = False
        self.server_capabilities: dict[str, Any] | None = None

        self.headers = build_headers(self.auth_type, self.auth_config)
        self._timeout = aiohttp.ClientTimeout(total=DEFAULT_TIMEOUT_SECONDS)
        self._session: aiohttp.ClientSession | None = None
        self._closed = False
        self._init_lock = asyncio.Lock()

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    def _get_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise MCPError.internal(f"MCP client {self.name} is closed")
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _url_for(self, path: str = "") -> str:
        return f"{self.url}{path}"

    async def _http(
        self,
        method: str,
        path: str = "",
        *,
        json: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """
        Perform one HTTP call against the server.

        Returns:
            The decoded JSON body (or raw text if the body is not JSON)

        Raises:
            HTTPStatusError: If the server answers with a non-2xx status
            aiohttp.ClientError / asyncio.TimeoutError: On transport failure
        """
        url = self._url_for(path)
        logger.debug(f"{method} {url} ({self.name})")
        session = self._get_session()
        async with session.request(
            method,
            url,
            json=json,
            params=params,
            headers=self.headers,
            timeout=self._timeout,
        ) as resp:
            body = await self._read_body(resp)
            if not 200 <= resp.status < 300:
                raise HTTPStatusError(resp.status, resp.reason, body)
            return body

    @staticmethod
    async def _read_body(resp: aiohttp.ClientResponse) -> Any:
        try:
            return await resp.json(content_type=None)
        except ValueError:
            return await resp.text()

    async def close(self) -> None:
        """
        Close the HTTP session. Safe to call multiple times.

        A closed client does not open a new session; later requests fail.
        """
        self._closed = True
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> BaseClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Shared request handling
    # ------------------------------------------------------------------ #

    async def handle_request(
        self,
        operation: str,
        fn: Callable[[], Awaitable[Any]],
    ) -> OperationResult:
        """
        Run ``fn`` and wrap its outcome in an OperationResult.

        Any exception is logged and converted with parse_error; this
        method never raises.
        """
        try:
            data = await fn()
        except Exception as e:
            logger.error(f"MCP {operation} failed for {self.name}: {e}")
            return OperationResult.fail(parse_error(e, operation))
        return OperationResult.ok(data)

    async def ensure_initialized(self) -> bool:
        """Initialize on first use. Returns whether the client is ready."""
        if not self.initialized:
            return await self.initialize()
        return True

    async def _require_initialized(self) -> None:
        if not await self.ensure_initialized():
            raise MCPError.not_initialized(self.name)

    async def _require_capability(self, capability: str) -> None:
        await self._require_initialized()
        if not self.has_capability(capability):
            raise MCPError.capability_missing(self.name, capability)

    def has_capability(self, capability: str) -> bool:
        return bool(self.server_capabilities and self.server_capabilities.get(capability))

    @staticmethod
    def _healthy(details: Any) -> dict[str, Any]:
        return {
            "status": "healthy",
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def initialize(self) -> bool:
        """
        Perform the protocol handshake and discover server capabilities.

        Concurrent callers share one handshake. Once it has succeeded
        further calls return True without touching the network; after a
        failure the next call retries.

        Returns:
            True if the client is initialized
        """
        if self.initialized:
            return True

        async with self._init_lock:
            if self.initialized:
                return True

            logger.debug(f"Initializing {self.protocol.value} MCP client for {self.name}...")
            try:
                capabilities = await self._handshake()
            except Exception as e:
                logger.error(f"MCP initialize failed for {self.name}: {e}")
                return False

            if capabilities is None:
                return False

            self.server_capabilities = capabilities
            self.initialized = True
            logger.info(f"MCP client {self.name} initialized with capabilities: {capabilities}")
            return True

    @abstractmethod
    async def _handshake(self) -> dict[str, Any] | None:
        """
        Protocol-specific initialization.

        Returns:
            The server capabilities, or None if the server could not be
            initialized
        """
        pass

    # ------------------------------------------------------------------ #
    # Operations (every protocol client implements all of them)
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def get_context(self, request: ContextRequest | None = None) -> OperationResult:
        """Fetch conversational context for the given messages."""
        pass

    @abstractmethod
    async def get_prompts(self, request: PromptsRequest | None = None) -> OperationResult:
        """Fetch prompt suggestions. Requires the ``prompts`` capability."""
        pass

    @abstractmethod
    async def execute_tool(self, request: ToolExecutionRequest | None = None) -> OperationResult:
        """Run a tool. Requires the ``tools`` capability and a tool id."""
        pass

    @abstractmethod
    async def get_tools(self, request: ToolsRequest | None = None) -> OperationResult:
        """List available tools. Requires the ``tools`` capability."""
        pass

    @abstractmethod
    async def check_health(self) -> OperationResult:
        """Probe the server; data is ``{status, details, timestamp}``."""
        pass

    @abstractmethod
    async def get_capabilities(self) -> OperationResult:
        """Ask the server which capabilities it supports."""
        pass

    def __repr__(self) -> str:
        status = "initialized" if self.initialized else "uninitialized"
        return f"{type(self).__name__}(id={self.id!r}, url={self.url!r}, status={status})"
