"""
REST client for MCP servers.

This module implements the MCP client against plain REST endpoints:
    GET  /health
    GET  /capabilities
    POST /context
    POST /prompts
    GET  /tools[?params]
    POST /tools/{toolId}/execute
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from .base import BaseClient
from .models import (
    ContextRequest,
    MCPError,
    MCPErrorCode,
    OperationResult,
    PromptsRequest,
    ToolExecutionRequest,
    ToolsRequest,
)
from ..config.models import ClientProtocol

logger = logging.getLogger(__name__)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_query_value(v) for v in value)
    return str(value)


def query_params(parameters: dict[str, Any]) -> dict[str, str]:
    """Flatten tool-listing parameters into query string values (None is dropped)."""
    return {
        str(key): _query_value(value)
        for key, value in parameters.items()
        if value is not None
    }


class RestClient(BaseClient):
    """MCP client for servers exposing the REST sub-paths."""

    protocol = ClientProtocol.REST

    async def _handshake(self) -> dict[str, Any] | None:
        result = await self.get_capabilities()
        if not result.success:
            logger.error(f"Failed to initialize REST MCP client {self.name}: {result.error}")
            return None
        return result.data if isinstance(result.data, dict) else {}

    async def get_context(self, request: ContextRequest | None = None) -> OperationResult:
        request = request or ContextRequest()

        async def call() -> Any:
            await self._require_initialized()
            return await self._http("POST", "/context", json=request.to_params())

        return await self.handle_request("getContext", call)

    async def get_prompts(self, request: PromptsRequest | None = None) -> OperationResult:
        request = request or PromptsRequest()

        async def call() -> Any:
            await self._require_capability("prompts")
            return await self._http("POST", "/prompts", json=request.to_params())

        return await self.handle_request("getPrompts", call)

    async def execute_tool(self, request: ToolExecutionRequest | None = None) -> OperationResult:
        request = request or ToolExecutionRequest()

        async def call() -> Any:
            await self._require_capability("tools")
            if not request.tool_id:
                raise MCPError(MCPErrorCode.INVALID_PARAMS, "Tool ID is required for executeTool")
            path = f"/tools/{quote(request.tool_id, safe='')}/execute"
            return await self._http(
                "POST",
                path,
                json={"parameters": request.parameters, "context": request.context},
            )

        return await self.handle_request("executeTool", call)

    async def get_tools(self, request: ToolsRequest | None = None) -> OperationResult:
        request = request or ToolsRequest()

        async def call() -> Any:
            await self._require_capability("tools")
            params = query_params(request.parameters)
            return await self._http("GET", "/tools", params=params or None)

        return await self.handle_request("getTools", call)

    async def check_health(self) -> OperationResult:
        async def call() -> dict[str, Any]:
            details = await self._http("GET", "/health")
            return self._healthy(details)

        return await self.handle_request("health", call)

    async def get_capabilities(self) -> OperationResult:
        async def call() -> Any:
            return await self._http("GET", "/capabilities")

        return await self.handle_request("getCapabilities", call)
