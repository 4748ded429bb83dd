"""
MCP Client Layer

This package provides the per-server clients that talk to MCP servers
over JSON-RPC 2.0 or REST and report every outcome as an
OperationResult.

Usage:
    from ensemble.client import create_client, ToolsRequest
    from ensemble.config import ServerConfig

    client = create_client(ServerConfig(id="docs", url="http://localhost:8000"))

    async with client:
        result = await client.get_tools(ToolsRequest())

        if result.success:
            print(result.data)
        else:
            print(result.error)
"""

# Factory
from .factory import create_client

# Client implementations
from .base import BaseClient, build_headers
from .jsonrpc import JsonRpcClient
from .rest import RestClient

# Errors
from .errors import HTTPStatusError, parse_error

# Models
from .models import (
    ClientInfo,
    ContextRequest,
    MCPError,
    MCPErrorCode,
    OperationResult,
    PromptsRequest,
    ToolExecutionRequest,
    ToolsRequest,
    create_notification,
    create_request,
    generate_request_id,
)

__all__ = [
    # Factory
    "create_client",
    # Base
    "BaseClient",
    "build_headers",
    # Implementations
    "JsonRpcClient",
    "RestClient",
    # Errors
    "HTTPStatusError",
    "parse_error",
    # Models
    "ClientInfo",
    "ContextRequest",
    "MCPError",
    "MCPErrorCode",
    "OperationResult",
    "PromptsRequest",
    "ToolExecutionRequest",
    "ToolsRequest",
    "create_notification",
    "create_request",
    "generate_request_id",
]
