"""Shared fixtures: an in-process fake MCP server and stub clients."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from ensemble.client import BaseClient, OperationResult
from ensemble.config import ServerConfig

BASE_PATH = "/mcp"


@dataclass
class RpcError:
    """JSON-RPC error object the fake server answers with."""
    code: int
    message: str
    data: Any = None


@dataclass
class HttpReply:
    """Raw HTTP answer (status + JSON or text body)."""
    status: int
    body: Any = None


@dataclass
class RecordedCall:
    method: str  # HTTP method
    path: str  # path below the base path ("" for JSON-RPC posts)
    body: Any
    headers: dict[str, str]
    query: dict[str, str]

    @property
    def rpc_method(self) -> str | None:
        if isinstance(self.body, dict):
            return self.body.get("method")
        return None


@dataclass
class FakeMCPServer:
    """
    aiohttp application answering JSON-RPC on the base path and REST
    requests on sub-paths. Every request is recorded in ``calls``.

    ``rpc`` maps JSON-RPC method names to a result value, an RpcError,
    an HttpReply, or a callable taking the params and returning one of
    those. ``rest`` maps ("GET", "/health")-style keys the same way.
    ``delays`` holds seconds to wait before answering a JSON-RPC method.
    """
    rpc: dict[str, Any] = field(default_factory=dict)
    rest: dict[tuple[str, str], Any] = field(default_factory=dict)
    delays: dict[str, float] = field(default_factory=dict)
    calls: list[RecordedCall] = field(default_factory=list)
    server: TestServer | None = None

    async def start(self) -> None:
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self._handle)
        self.server = TestServer(app)
        await self.server.start_server()

    async def close(self) -> None:
        if self.server is not None:
            await self.server.close()

    @property
    def url(self) -> str:
        return str(self.server.make_url(BASE_PATH))

    def rpc_methods(self) -> list[str]:
        return [call.rpc_method for call in self.calls if call.rpc_method]

    def rest_calls(self) -> list[tuple[str, str]]:
        return [(call.method, call.path) for call in self.calls if call.path]

    def speaks_mcp(self, capabilities: dict[str, Any]) -> None:
        """Answer the initialize handshake with the given capabilities."""
        self.rpc["initialize"] = {
            "protocolVersion": "2024-11-05",
            "serverInfo": {"name": "fake", "version": "1.0"},
            "capabilities": capabilities,
        }

    async def _handle(self, request: web.Request) -> web.StreamResponse:
        body = None
        if request.can_read_body:
            text = await request.text()
            try:
                body = await request.json()
            except ValueError:
                body = text

        path = request.path
        sub_path = path[len(BASE_PATH):] if path.startswith(BASE_PATH) else path
        self.calls.append(RecordedCall(
            method=request.method,
            path=sub_path,
            body=body,
            headers=dict(request.headers),
            query=dict(request.query),
        ))

        if request.method == "POST" and sub_path == "" and isinstance(body, dict) and "jsonrpc" in body:
            await asyncio.sleep(self.delays.get(body.get("method"), 0))
            return self._answer_rpc(body)

        handler = self.rest.get((request.method, sub_path))
        if handler is None:
            return web.json_response({"message": "Not Found"}, status=404)
        if callable(handler):
            handler = handler(body)
        return self._reply(handler)

    def _answer_rpc(self, envelope: dict[str, Any]) -> web.StreamResponse:
        if "id" not in envelope:
            return web.Response(status=204)

        method = envelope.get("method")
        if method not in self.rpc:
            handler: Any = RpcError(-32601, f"Method not found: {method}")
        else:
            handler = self.rpc[method]
            if callable(handler):
                handler = handler(envelope.get("params"))

        if isinstance(handler, HttpReply):
            return self._reply(handler)

        payload: dict[str, Any] = {"jsonrpc": "2.0", "id": envelope["id"]}
        if isinstance(handler, RpcError):
            error: dict[str, Any] = {"code": handler.code, "message": handler.message}
            if handler.data is not None:
                error["data"] = handler.data
            payload["error"] = error
        else:
            payload["result"] = handler
        return web.json_response(payload)

    @staticmethod
    def _reply(handler: Any) -> web.StreamResponse:
        if isinstance(handler, HttpReply):
            if isinstance(handler.body, str):
                return web.Response(status=handler.status, text=handler.body)
            return web.json_response(handler.body, status=handler.status)
        return web.json_response(handler)


@pytest_asyncio.fixture
async def fake_server():
    """A running fake MCP server; stopped after the test."""
    fake = FakeMCPServer()
    await fake.start()
    yield fake
    await fake.close()


# ---------------------------------------------------------------------------
# Stub clients for manager tests
# ---------------------------------------------------------------------------

DEFAULT_STUB_CAPABILITIES = {"resources": True, "prompts": True, "tools": True}


class StubClient(BaseClient):
    """BaseClient that never touches the network and records every call."""

    def __init__(self, config: ServerConfig, capabilities: dict | None = None, fail_init: bool = False):
        super().__init__(config)
        self.capabilities = DEFAULT_STUB_CAPABILITIES if capabilities is None else capabilities
        self.fail_init = fail_init
        self.calls: list[str] = []
        self.responses: dict[str, Any] = {}
        self.closed = False

    async def _handshake(self):
        self.calls.append("initialize")
        if self.fail_init:
            return None
        return dict(self.capabilities)

    async def _respond(self, operation: str, payload: Any = None) -> OperationResult:
        self.calls.append(operation)
        response = self.responses.get(operation)
        if isinstance(response, Exception):
            raise response
        if operation in self.responses:
            return response
        return OperationResult.ok({"server": self.id, "operation": operation, "request": payload})

    async def get_context(self, request=None):
        return await self._respond("getContext", request)

    async def get_prompts(self, request=None):
        return await self._respond("getPrompts", request)

    async def execute_tool(self, request=None):
        return await self._respond("executeTool", request)

    async def get_tools(self, request=None):
        return await self._respond("getTools", request)

    async def check_health(self):
        return await self._respond("health")

    async def get_capabilities(self):
        return await self._respond("getCapabilities")

    async def close(self):
        self.closed = True
        await super().close()


class StubFactory:
    """Client factory handing out StubClients, configurable per server id."""

    def __init__(self):
        self.clients: dict[str, StubClient] = {}
        self.capabilities: dict[str, dict] = {}
        self.fail_init: set[str] = set()
        self.fail_create: set[str] = set()
        self.protocols: list[Any] = []

    def __call__(self, config: ServerConfig, protocol=None) -> StubClient:
        self.protocols.append(protocol)
        if config.id in self.fail_create:
            raise ValueError(f"cannot build client for {config.id}")
        client = StubClient(
            config,
            capabilities=self.capabilities.get(config.id),
            fail_init=config.id in self.fail_init,
        )
        self.clients[config.id] = client
        return client


@pytest.fixture
def stub_factory() -> StubFactory:
    return StubFactory()


def server_config(id: str, **overrides: Any) -> ServerConfig:
    values: dict[str, Any] = {"id": id, "url": f"http://{id}.invalid/mcp", "name": id.title()}
    values.update(overrides)
    return ServerConfig(**values)


@pytest.fixture
def make_config() -> Callable[..., ServerConfig]:
    return server_config
