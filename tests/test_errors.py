"""Tests for error normalization."""

import asyncio
from unittest.mock import MagicMock

import aiohttp
import pytest

from ensemble.client.errors import HTTPStatusError, parse_error
from ensemble.client.models import MCPError, MCPErrorCode


class TestHTTPStatusError:

    def test_message_with_reason(self):
        assert str(HTTPStatusError(404, "Not Found")) == "HTTP 404: Not Found"

    def test_message_without_reason(self):
        assert str(HTTPStatusError(500)) == "HTTP 500"


class TestParseError:
    """Every failure maps to exactly one MCPError."""

    def test_mcp_error_passes_through(self):
        original = MCPError(MCPErrorCode.INVALID_PARAMS, "bad")
        assert parse_error(original, "executeTool") is original

    @pytest.mark.parametrize("status,code", [
        (400, MCPErrorCode.INVALID_REQUEST),
        (401, MCPErrorCode.AUTHENTICATION_FAILED),
        (403, MCPErrorCode.AUTHORIZATION_FAILED),
        (404, MCPErrorCode.RESOURCE_NOT_FOUND),
        (429, MCPErrorCode.RATE_LIMIT_EXCEEDED),
    ])
    def test_status_mapping(self, status, code):
        error = parse_error(HTTPStatusError(status, "Reason"), "getTools")
        assert error.code == code

    def test_404_message_and_details(self):
        """The response body is kept as error details."""
        error = parse_error(HTTPStatusError(404, "Not Found", {"message": "nope"}), "getTools")
        assert error.code == MCPErrorCode.RESOURCE_NOT_FOUND
        assert error.message == "Resource not found: HTTP 404: Not Found"
        assert error.details == {"message": "nope"}

    def test_400_names_operation(self):
        error = parse_error(HTTPStatusError(400, "Bad Request"), "getContext")
        assert error.message.startswith("Invalid request to getContext")

    def test_server_error(self):
        error = parse_error(HTTPStatusError(503, "Service Unavailable"), "health")
        assert error.code == MCPErrorCode.INTERNAL_ERROR
        assert error.message.startswith("Server error during health")

    def test_other_status(self):
        error = parse_error(HTTPStatusError(418, "I'm a teapot"), "health")
        assert error.code == MCPErrorCode.INTERNAL_ERROR
        assert error.message.startswith("Error in health")

    def test_embedded_jsonrpc_error_wins_over_status(self):
        """A JSON-RPC error object in the body passes its own code through."""
        body = {"jsonrpc": "2.0", "id": "1", "error": {"code": -32030, "message": "no context", "data": "x"}}
        error = parse_error(HTTPStatusError(500, "Internal Server Error", body), "getContext")
        assert error.code == MCPErrorCode.CONTEXT_UNAVAILABLE
        assert error.message == "no context"
        assert error.details == "x"

    def test_client_response_error(self):
        exc = aiohttp.ClientResponseError(
            request_info=MagicMock(), history=(), status=429, message="Too Many Requests"
        )
        assert parse_error(exc, "getTools").code == MCPErrorCode.RATE_LIMIT_EXCEEDED

    def test_network_failure(self):
        """No response at all maps to INTERNAL_ERROR with the cause embedded."""
        error = parse_error(aiohttp.ClientConnectionError("Connection refused"), "getTools")
        assert error.code == MCPErrorCode.INTERNAL_ERROR
        assert error.message == "Error in getTools: Connection refused"
        assert error.details is None

    def test_timeout_without_message_uses_type_name(self):
        error = parse_error(asyncio.TimeoutError(), "health")
        assert error.code == MCPErrorCode.INTERNAL_ERROR
        assert error.message == "Error in health: TimeoutError"

    def test_unexpected_exception(self):
        error = parse_error(KeyError("capabilities"), "initialize")
        assert error.code == MCPErrorCode.INTERNAL_ERROR
        assert "initialize" in error.message
