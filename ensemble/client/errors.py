"""
Error normalization for MCP clients.

Every failure a client can hit (JSON-RPC error objects, HTTP status
codes, connection failures, timeouts, bugs) is mapped to exactly one
MCPError so callers only ever see typed errors.
"""

from __future__ import annotations

from typing import Any

import aiohttp

from .models import MCPError, MCPErrorCode


class HTTPStatusError(Exception):
    """Raised by the transport when a server answers with a non-2xx status."""

    def __init__(self, status: int, reason: str | None = None, body: Any = None):
        self.status = status
        self.reason = reason or ""
        self.body = body
        super().__init__(f"HTTP {status}: {self.reason}" if self.reason else f"HTTP {status}")


_STATUS_CODES: dict[int, tuple[MCPErrorCode, str]] = {
    400: (MCPErrorCode.INVALID_REQUEST, "Invalid request to {operation}: {reason}"),
    401: (MCPErrorCode.AUTHENTICATION_FAILED, "Authentication failed: {reason}"),
    403: (MCPErrorCode.AUTHORIZATION_FAILED, "Authorization failed: {reason}"),
    404: (MCPErrorCode.RESOURCE_NOT_FOUND, "Resource not found: {reason}"),
    429: (MCPErrorCode.RATE_LIMIT_EXCEEDED, "Rate limit exceeded: {reason}"),
}


def parse_error(error: BaseException, operation: str) -> MCPError:
    """
    Convert any caught failure into an MCPError.

    Resolution order:
        1. Already an MCPError: returned unchanged
        2. Response body carrying a JSON-RPC error object: its code,
           message and data are passed through
        3. HTTP status: 400/401/403/404/429 map to their MCP codes,
           anything else (including 5xx) to INTERNAL_ERROR
        4. No response at all (network failure, timeout, bug):
           INTERNAL_ERROR with the original message embedded

    Args:
        error: The exception that was raised
        operation: Name of the operation that failed (e.g. "getTools")
    """
    if isinstance(error, MCPError):
        return error

    status, body = _response_info(error)

    embedded = _embedded_jsonrpc_error(body)
    if embedded is not None:
        return MCPError.from_dict(embedded, default_message=f"Error in {operation}")

    reason = _describe(error)

    if status is not None:
        if status in _STATUS_CODES:
            code, template = _STATUS_CODES[status]
            return MCPError(code, template.format(operation=operation, reason=reason), body)
        if 500 <= status < 600:
            return MCPError.internal(f"Server error during {operation}: {reason}", body)
        return MCPError.internal(f"Error in {operation}: {reason}", body)

    return MCPError.internal(f"Error in {operation}: {reason}")


def _response_info(error: BaseException) -> tuple[int | None, Any]:
    """Extract (status, body) from a transport error, if it carries a response."""
    if isinstance(error, HTTPStatusError):
        return error.status, error.body
    if isinstance(error, aiohttp.ClientResponseError):
        return error.status, None
    return None, None


def _embedded_jsonrpc_error(body: Any) -> dict[str, Any] | None:
    if not isinstance(body, dict):
        return None
    err = body.get("error")
    if isinstance(err, dict) and err.get("code"):
        return err
    return None


def _describe(error: BaseException) -> str:
    message = str(error)
    return message if message else type(error).__name__
