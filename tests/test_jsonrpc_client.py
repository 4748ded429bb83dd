"""Tests for the JSON-RPC client against a fake MCP server."""

import re

import pytest

from ensemble.client import JsonRpcClient
from ensemble.client.models import (
    ContextRequest,
    MCPErrorCode,
    PromptsRequest,
    ToolExecutionRequest,
    ToolsRequest,
)
from ensemble.config import AuthConfig, AuthType, ServerConfig

from conftest import HttpReply, RpcError


def make_client(fake_server, **overrides) -> JsonRpcClient:
    values = {"id": "docs", "url": fake_server.url, "name": "Docs"}
    values.update(overrides)
    return JsonRpcClient(ServerConfig(**values))


class TestHandshake:

    @pytest.mark.asyncio
    async def test_initialize_then_initialized(self, fake_server):
        """Handshake sends initialize, then the initialized notification."""
        fake_server.speaks_mcp({"tools": True, "prompts": True})

        async with make_client(fake_server) as client:
            assert await client.initialize() is True

        assert client.initialized
        assert client.server_capabilities == {"tools": True, "prompts": True}
        assert fake_server.rpc_methods() == ["initialize", "initialized"]

        initialize, initialized = fake_server.calls
        assert initialize.body["params"]["clientInfo"] == {"name": "ensemble MCP client", "version": "0.1.0"}
        assert initialize.body["params"]["capabilities"] == {"resources": True, "prompts": True, "tools": True}
        assert re.fullmatch(r"\d+-\d+", initialize.body["id"])
        assert "id" not in initialized.body

    @pytest.mark.asyncio
    async def test_second_initialize_makes_no_request(self, fake_server):
        fake_server.speaks_mcp({"tools": True})

        async with make_client(fake_server) as client:
            await client.initialize()
            before = len(fake_server.calls)
            assert await client.initialize() is True

        assert len(fake_server.calls) == before

    @pytest.mark.asyncio
    async def test_missing_capabilities_become_empty(self, fake_server):
        fake_server.rpc["initialize"] = {"serverInfo": {"name": "bare"}}

        async with make_client(fake_server) as client:
            assert await client.initialize() is True

        assert client.server_capabilities == {}

    @pytest.mark.asyncio
    async def test_failed_notification_does_not_undo_handshake(self, fake_server):
        fake_server.speaks_mcp({"tools": True})
        original = fake_server._answer_rpc

        def answer(envelope):
            if envelope.get("method") == "initialized":
                return fake_server._reply(HttpReply(500, {"message": "boom"}))
            return original(envelope)

        fake_server._answer_rpc = answer

        async with make_client(fake_server) as client:
            assert await client.initialize() is True
        assert client.server_capabilities == {"tools": True}

    @pytest.mark.asyncio
    async def test_legacy_fallback(self, fake_server):
        """A server rejecting initialize falls back to GET /capabilities."""
        fake_server.rpc["initialize"] = RpcError(-32601, "Method not found")
        fake_server.rest[("GET", "/capabilities")] = {"resources": True}

        async with make_client(fake_server) as client:
            assert await client.initialize() is True

        assert client.initialized
        assert client.server_capabilities == {"resources": True}
        assert ("GET", "/capabilities") in fake_server.rest_calls()

    @pytest.mark.asyncio
    async def test_legacy_fallback_failure(self, fake_server):
        fake_server.rpc["initialize"] = HttpReply(500, {"message": "down"})

        async with make_client(fake_server) as client:
            assert await client.initialize() is False

        assert not client.initialized

    @pytest.mark.asyncio
    async def test_unreachable_server(self):
        client = JsonRpcClient(ServerConfig(id="gone", url="http://127.0.0.1:1/mcp"))
        async with client:
            assert await client.initialize() is False


class TestOperations:

    @pytest.mark.asyncio
    async def test_get_tools(self, fake_server):
        fake_server.speaks_mcp({"tools": True})
        fake_server.rpc["getTools"] = lambda params: {"tools": [{"id": "search"}], "echo": params}

        async with make_client(fake_server) as client:
            result = await client.get_tools(ToolsRequest(parameters={"category": "web"}))

        assert result.success
        assert result.data["tools"] == [{"id": "search"}]
        assert result.data["echo"] == {"parameters": {"category": "web"}}

    @pytest.mark.asyncio
    async def test_get_tools_initializes_lazily(self, fake_server):
        fake_server.speaks_mcp({"tools": True})
        fake_server.rpc["getTools"] = {"tools": []}

        async with make_client(fake_server) as client:
            await client.get_tools()

        assert fake_server.rpc_methods() == ["initialize", "initialized", "getTools"]

    @pytest.mark.asyncio
    async def test_get_tools_without_capability(self, fake_server):
        fake_server.speaks_mcp({"prompts": True})

        async with make_client(fake_server) as client:
            result = await client.get_tools()

        assert not result.success
        assert result.error.code == MCPErrorCode.METHOD_NOT_FOUND
        assert "getTools" not in fake_server.rpc_methods()

    @pytest.mark.asyncio
    async def test_get_context(self, fake_server):
        fake_server.speaks_mcp({})
        fake_server.rpc["getContext"] = lambda params: {"context": "notes", "params": params}
        messages = [{"role": "user", "content": "hello"}]

        async with make_client(fake_server) as client:
            result = await client.get_context(ContextRequest(messages=messages))

        assert result.success
        assert result.data["params"] == {
            "resource": {"uri": "chat://conversation"},
            "messages": messages,
            "parameters": {},
        }

    @pytest.mark.asyncio
    async def test_get_context_not_initialized(self, fake_server):
        fake_server.rpc["initialize"] = HttpReply(500, {"message": "down"})

        async with make_client(fake_server) as client:
            result = await client.get_context()

        assert not result.success
        assert result.error.code == MCPErrorCode.SERVER_NOT_INITIALIZED

    @pytest.mark.asyncio
    async def test_get_prompts(self, fake_server):
        fake_server.speaks_mcp({"prompts": True})
        fake_server.rpc["getPrompts"] = {"prompts": ["Summarize"]}

        async with make_client(fake_server) as client:
            result = await client.get_prompts(PromptsRequest())

        assert result.success
        assert result.data == {"prompts": ["Summarize"]}

    @pytest.mark.asyncio
    async def test_execute_tool(self, fake_server):
        fake_server.speaks_mcp({"tools": True})
        fake_server.rpc["executeTool"] = lambda params: {"ran": params["toolId"], "with": params["parameters"]}

        async with make_client(fake_server) as client:
            result = await client.execute_tool(ToolExecutionRequest(tool_id="search", parameters={"q": "x"}))

        assert result.success
        assert result.data == {"ran": "search", "with": {"q": "x"}}

    @pytest.mark.asyncio
    async def test_execute_tool_requires_tool_id(self, fake_server):
        fake_server.speaks_mcp({"tools": True})

        async with make_client(fake_server) as client:
            result = await client.execute_tool(ToolExecutionRequest())

        assert not result.success
        assert result.error.code == MCPErrorCode.INVALID_PARAMS
        assert "executeTool" not in fake_server.rpc_methods()

    @pytest.mark.asyncio
    async def test_jsonrpc_error_passes_through(self, fake_server):
        fake_server.speaks_mcp({"tools": True})
        fake_server.rpc["getTools"] = RpcError(-32020, "slow down", {"retryAfter": 5})

        async with make_client(fake_server) as client:
            result = await client.get_tools()

        assert result.error.code == MCPErrorCode.RATE_LIMIT_EXCEEDED
        assert result.error.message == "slow down"
        assert result.error.details == {"retryAfter": 5}

    @pytest.mark.asyncio
    async def test_http_status_mapping(self, fake_server):
        fake_server.speaks_mcp({"tools": True})
        fake_server.rpc["getTools"] = HttpReply(404, {"message": "Not Found"})

        async with make_client(fake_server) as client:
            result = await client.get_tools()

        assert result.error.code == MCPErrorCode.RESOURCE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_non_jsonrpc_body(self, fake_server):
        fake_server.speaks_mcp({"tools": True})
        fake_server.rpc["getTools"] = HttpReply(200, "plain text")

        async with make_client(fake_server) as client:
            result = await client.get_tools()

        assert result.error.code == MCPErrorCode.PARSE_ERROR


class TestDiagnostics:

    @pytest.mark.asyncio
    async def test_health_over_jsonrpc(self, fake_server):
        fake_server.rpc["health"] = {"uptime": 12}

        async with make_client(fake_server) as client:
            result = await client.check_health()

        assert result.success
        assert result.data["status"] == "healthy"
        assert result.data["details"] == {"uptime": 12}
        assert result.data["timestamp"]
        assert fake_server.rest_calls() == []

    @pytest.mark.asyncio
    async def test_health_falls_back_to_rest(self, fake_server):
        fake_server.rest[("GET", "/health")] = {"ok": True}

        async with make_client(fake_server) as client:
            result = await client.check_health()

        assert result.success
        assert result.data["details"] == {"ok": True}
        assert ("GET", "/health") in fake_server.rest_calls()

    @pytest.mark.asyncio
    async def test_health_failure_is_unsuccessful(self, fake_server):
        """When both paths fail the result is a failure, not an 'unhealthy' success."""
        async with make_client(fake_server) as client:
            result = await client.check_health()

        assert not result.success
        assert result.error.code == MCPErrorCode.RESOURCE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_health_does_not_initialize(self, fake_server):
        fake_server.rpc["health"] = {}

        async with make_client(fake_server) as client:
            await client.check_health()

        assert "initialize" not in fake_server.rpc_methods()

    @pytest.mark.asyncio
    async def test_capabilities_over_jsonrpc(self, fake_server):
        fake_server.rpc["getCapabilities"] = {"tools": True}

        async with make_client(fake_server) as client:
            result = await client.get_capabilities()

        assert result.data == {"tools": True}

    @pytest.mark.asyncio
    async def test_capabilities_fall_back_to_rest(self, fake_server):
        fake_server.rest[("GET", "/capabilities")] = {"prompts": True}

        async with make_client(fake_server) as client:
            result = await client.get_capabilities()

        assert result.data == {"prompts": True}


class TestAuth:

    @pytest.mark.asyncio
    async def test_bearer_header_sent(self, fake_server):
        fake_server.rpc["health"] = {}
        client = make_client(
            fake_server,
            auth_type=AuthType.BEARER,
            auth_config=AuthConfig(token="secret"),
        )

        async with client:
            await client.check_health()

        assert fake_server.calls[0].headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_api_key_header_sent(self, fake_server):
        fake_server.rpc["health"] = {}
        client = make_client(
            fake_server,
            auth_type=AuthType.API_KEY,
            auth_config=AuthConfig(api_key="k", header_name="X-API-Key"),
        )

        async with client:
            await client.check_health()

        assert fake_server.calls[0].headers["X-API-Key"] == "k"
