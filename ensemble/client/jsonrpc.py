"""
JSON-RPC 2.0 client for MCP servers.

This module implements the MCP client over JSON-RPC 2.0:
- Every request is POSTed as an envelope to the server base URL
- initialize + initialized handshake, falling back to capability
  discovery for legacy servers that do not speak it
- health and capabilities fall back to REST-style GET endpoints
"""

from __future__ import annotations

import logging
from typing import Any

from .base import BaseClient
from .models import (
    CLIENT_CAPABILITIES,
    ContextRequest,
    MCPError,
    MCPErrorCode,
    OperationResult,
    PromptsRequest,
    ToolExecutionRequest,
    ToolsRequest,
    create_notification,
    create_request,
)
from ..config.models import ClientProtocol

logger = logging.getLogger(__name__)


class JsonRpcClient(BaseClient):
    """
    MCP client speaking JSON-RPC 2.0 over HTTP POST.

    This is the default client: for health and capability checks it falls
    back to the REST endpoints, so it also works against servers that only
    partly implement JSON-RPC.
    """

    protocol = ClientProtocol.JSON_RPC

    async def _send_request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """
        Send a JSON-RPC request and return its ``result``.

        Raises:
            MCPError: If the response carries a JSON-RPC error object or is
                not a JSON-RPC response at all
        """
        body = await self._http("POST", json=create_request(method, params))

        if not isinstance(body, dict):
            raise MCPError(
                MCPErrorCode.PARSE_ERROR,
                f"Invalid JSON-RPC response to {method}",
                {"body": str(body)[:500]},
            )

        error = body.get("error")
        if error:
            if isinstance(error, dict):
                raise MCPError.from_dict(error, default_message=f"Error in {method}")
            raise MCPError.internal(f"Error in {method}: {error}")

        return body.get("result")

    async def _send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a JSON-RPC notification; any response body is ignored."""
        await self._http("POST", json=create_notification(method, params))

    async def _handshake(self) -> dict[str, Any] | None:
        params = {
            "clientInfo": self.client_info.to_dict(),
            "capabilities": dict(CLIENT_CAPABILITIES),
        }

        try:
            result = await self._send_request("initialize", params)
        except Exception as e:
            logger.warning(f"JSON-RPC initialization failed for {self.name}, assuming legacy server: {e}")
            return await self._legacy_handshake()

        capabilities = result.get("capabilities") if isinstance(result, dict) else None

        # No response is expected, so a failed notification does not undo the handshake
        try:
            await self._send_notification("initialized")
        except Exception as e:
            logger.warning(f"'initialized' notification to {self.name} failed: {e}")

        return capabilities or {}

    async def _legacy_handshake(self) -> dict[str, Any] | None:
        result = await self.get_capabilities()
        if not result.success:
            logger.error(f"Legacy initialization failed for {self.name}: {result.error}")
            return None
        logger.info(f"MCP client {self.name} initialized through legacy capability discovery")
        return result.data if isinstance(result.data, dict) else {}

    async def get_context(self, request: ContextRequest | None = None) -> OperationResult:
        request = request or ContextRequest()

        async def call() -> Any:
            await self._require_initialized()
            return await self._send_request("getContext", request.to_params())

        return await self.handle_request("getContext", call)

    async def get_prompts(self, request: PromptsRequest | None = None) -> OperationResult:
        request = request or PromptsRequest()

        async def call() -> Any:
            await self._require_capability("prompts")
            return await self._send_request("getPrompts", request.to_params())

        return await self.handle_request("getPrompts", call)

    async def execute_tool(self, request: ToolExecutionRequest | None = None) -> OperationResult:
        request = request or ToolExecutionRequest()

        async def call() -> Any:
            await self._require_capability("tools")
            if not request.tool_id:
                raise MCPError(MCPErrorCode.INVALID_PARAMS, "Tool ID is required for executeTool")
            return await self._send_request("executeTool", request.to_params())

        return await self.handle_request("executeTool", call)

    async def get_tools(self, request: ToolsRequest | None = None) -> OperationResult:
        request = request or ToolsRequest()

        async def call() -> Any:
            await self._require_capability("tools")
            return await self._send_request("getTools", request.to_params())

        return await self.handle_request("getTools", call)

    async def check_health(self) -> OperationResult:
        async def call() -> dict[str, Any]:
            try:
                details = await self._send_request("health")
            except Exception as e:
                logger.warning(f"JSON-RPC health check failed for {self.name}, trying GET /health: {e}")
                details = await self._http("GET", "/health")
            return self._healthy(details)

        return await self.handle_request("health", call)

    async def get_capabilities(self) -> OperationResult:
        async def call() -> Any:
            try:
                return await self._send_request("getCapabilities")
            except Exception as e:
                logger.warning(f"JSON-RPC getCapabilities failed for {self.name}, trying GET /capabilities: {e}")
                return await self._http("GET", "/capabilities")

        return await self.handle_request("getCapabilities", call)
