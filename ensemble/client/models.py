"""
Client layer models for MCP communication.

This module defines the error codes, the MCPError exception, the
JSON-RPC 2.0 envelope builders, the uniform OperationResult envelope
and the request option objects accepted by every client.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

JSONRPC_VERSION = "2.0"
DEFAULT_RESOURCE_URI = "chat://conversation"


class MCPErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 and MCP error codes."""
    # JSON-RPC 2.0 standard errors
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # MCP-specific errors (reserved range -32000 to -32099)
    SERVER_NOT_INITIALIZED = -32002
    RESOURCE_NOT_FOUND = -32003
    AUTHENTICATION_FAILED = -32010
    AUTHORIZATION_FAILED = -32011
    RATE_LIMIT_EXCEEDED = -32020
    CONTEXT_UNAVAILABLE = -32030
    INVALID_CONTENT = -32040


class MCPError(Exception):
    """An MCP/JSON-RPC error with a stable numeric code."""

    def __init__(self, code: int, message: str, details: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "code": int(self.code),
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_message: str = "Unknown error") -> MCPError:
        """Build from a JSON-RPC error object (``data`` becomes ``details``)."""
        return cls(
            code=data.get("code") or MCPErrorCode.INTERNAL_ERROR,
            message=data.get("message") or default_message,
            details=data.get("data", data.get("details")),
        )

    @classmethod
    def not_initialized(cls, server_name: str) -> MCPError:
        return cls(
            MCPErrorCode.SERVER_NOT_INITIALIZED,
            f"MCP client {server_name} not initialized",
        )

    @classmethod
    def capability_missing(cls, server_name: str, capability: str) -> MCPError:
        return cls(
            MCPErrorCode.METHOD_NOT_FOUND,
            f"MCP server {server_name} does not support {capability} capability",
        )

    @classmethod
    def internal(cls, message: str, details: Any = None) -> MCPError:
        return cls(MCPErrorCode.INTERNAL_ERROR, message, details)

    def __repr__(self) -> str:
        return f"MCPError(code={int(self.code)}, message={self.message!r})"

    def __str__(self) -> str:
        return f"{int(self.code)}: {self.message}"


# ─────────────────────────────────────────────────────────────────────────────
# JSON-RPC envelopes
# ─────────────────────────────────────────────────────────────────────────────

def generate_request_id() -> str:
    """Generate a request id unique within this process: ``<ms>-<rand>``."""
    return f"{int(time.time() * 1000)}-{random.randint(0, 999999)}"


@dataclass
class JsonRpcRequest:
    """Represents a JSON-RPC 2.0 request or, with ``id=None``, a notification."""
    method: str
    params: dict[str, Any] = field(default_factory=dict)
    id: str | None = None

    @property
    def is_notification(self) -> bool:
        return self.id is None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION}
        if not self.is_notification:
            payload["id"] = self.id
        payload["method"] = self.method
        payload["params"] = self.params
        return payload


def create_request(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create a JSON-RPC 2.0 request object with a fresh correlation id."""
    return JsonRpcRequest(method, params or {}, id=generate_request_id()).to_dict()


def create_notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create a JSON-RPC 2.0 notification object (no id, no response expected)."""
    return JsonRpcRequest(method, params or {}).to_dict()


# ─────────────────────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class OperationResult:
    """Uniform envelope returned by every client operation."""
    success: bool
    data: Any = None
    error: MCPError | None = None

    @classmethod
    def ok(cls, data: Any) -> OperationResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: MCPError) -> OperationResult:
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass
class ClientInfo:
    """Client identity sent in the ``initialize`` handshake."""
    name: str = "ensemble MCP client"
    version: str = "0.1.0"

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "version": self.version}


# Capabilities advertised by this client during initialize
CLIENT_CAPABILITIES = {
    "resources": True,
    "prompts": True,
    "tools": True,
}


# ─────────────────────────────────────────────────────────────────────────────
# Request options
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ContextRequest:
    """Options for a context request."""
    messages: list[dict[str, Any]] = field(default_factory=list)
    parameters: dict[str, Any] = field(default_factory=dict)
    resource_uri: str | None = None

    def to_params(self) -> dict[str, Any]:
        return {
            "resource": {"uri": self.resource_uri or DEFAULT_RESOURCE_URI},
            "messages": self.messages,
            "parameters": self.parameters,
        }


@dataclass
class PromptsRequest:
    """Options for a prompt suggestion request."""
    messages: list[dict[str, Any]] = field(default_factory=list)
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_params(self) -> dict[str, Any]:
        return {"messages": self.messages, "parameters": self.parameters}


@dataclass
class ToolsRequest:
    """Options for listing tools."""
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_params(self) -> dict[str, Any]:
        return {"parameters": self.parameters}


@dataclass
class ToolExecutionRequest:
    """A request to run one tool on one server."""
    tool_id: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)

    def to_params(self) -> dict[str, Any]:
        return {
            "toolId": self.tool_id,
            "parameters": self.parameters,
            "context": self.context,
        }
