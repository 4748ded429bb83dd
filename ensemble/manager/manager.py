"""
Client manager -- registry, background initialization and fan-out.

The ClientManager is the interface the rest of an application uses to
talk to its MCP servers. It provides:

- A registry of clients keyed by server id, built through a factory
- Background initialization of newly registered clients
- Concurrent fan-out of context, prompts, tools, health and capability
  calls, aggregated into one result per server
- Single-target tool execution with up-front validation
- Async context manager: clean shutdown of sessions and background tasks

Fan-out calls never raise. Each server's outcome is isolated, and the
result list follows the registration order of the clients that were
registered when the call started.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Awaitable, Callable, Coroutine, Iterable, Mapping, Union

from ..client.base import BaseClient
from ..client.errors import parse_error
from ..client.factory import create_client
from ..client.models import (
    ContextRequest,
    MCPError,
    MCPErrorCode,
    OperationResult,
    PromptsRequest,
    ToolExecutionRequest,
    ToolsRequest,
)
from ..config.models import ClientProtocol, ServerConfig
from .models import AggregatedResult, InitializationResult, UnavailableClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ServerConfig, Union[ClientProtocol, str, None]], BaseClient]
ConfigLike = Union[ServerConfig, Mapping[str, Any]]


class ClientManager:
    """
    Registry and fan-out coordinator for MCP clients.

    Construct one per application and pass it to whatever needs it.

    Example:
        async with ClientManager() as manager:
            manager.set_client("docs", ServerConfig(id="docs", url="http://localhost:8000"))
            await manager.initialize_all_clients()
            results = await manager.get_tools_from_all()
    """

    def __init__(self, client_factory: ClientFactory = create_client):
        self._client_factory = client_factory
        self._clients: dict[str, BaseClient] = {}
        self._tasks: set[asyncio.Task] = set()
        # Calls running per client; a retired client is closed once it is idle
        self._in_flight: dict[BaseClient, int] = {}
        self._retired: set[BaseClient] = set()
        self._closing = False

    # ------------------------------------------------------------------ #
    # Registry
    # ------------------------------------------------------------------ #

    def set_client(
        self,
        id: str,
        config: ConfigLike,
        protocol: ClientProtocol | str | None = None,
    ) -> BaseClient | UnavailableClient:
        """
        Create (or replace) the client for a server and start initializing
        it in the background.

        Args:
            id: Server id; overrides any id in ``config``
            config: ServerConfig or plain mapping
            protocol: Overrides the config's protocol

        Returns:
            The new client, or a disabled UnavailableClient (not
            registered) if the config could not be turned into a client
        """
        try:
            server_config = self._coerce_config(id, config)
            client = self._client_factory(server_config, protocol)
        except Exception as e:
            logger.error(f"Failed to set client with ID {id}: {e}")
            return UnavailableClient(
                id=id,
                name=_config_name(config) or UnavailableClient.name,
                reason=str(e),
            )

        previous = self._clients.get(id)
        self._clients[id] = client
        if previous is not None and previous is not client:
            self._retire(previous)

        task = self._spawn(self._background_initialize(client), f"initialize:{id}")
        if task is not None:
            self._track_task(client, task)
        return client

    def get_client(self, id: str) -> BaseClient | None:
        return self._clients.get(id)

    def remove_client(self, id: str) -> bool:
        """
        Unregister a client. Returns True if it was registered.

        Calls already running on the client finish normally; its session
        is closed once the last of them completes.
        """
        client = self._clients.pop(id, None)
        if client is None:
            return False
        self._retire(client)
        return True

    def get_all_clients(self) -> list[BaseClient]:
        """Snapshot of all registered clients, in registration order."""
        return list(self._clients.values())

    def get_initialized_clients(self) -> list[BaseClient]:
        return [client for client in self.get_all_clients() if client.initialized]

    def get_clients_by_capability(self, capability: str) -> list[BaseClient]:
        return [
            client for client in self.get_initialized_clients()
            if client.has_capability(capability)
        ]

    def sync(self, configs: Iterable[ConfigLike]) -> list[BaseClient | UnavailableClient]:
        """
        Replace the whole registry with a new server list.

        Every current client is removed, then each config is registered
        with set_client. Configs without an id are skipped.
        """
        for id in list(self._clients):
            self.remove_client(id)

        clients = []
        for config in configs:
            id = config.id if isinstance(config, ServerConfig) else config.get("id")
            if not id:
                logger.warning(f"Skipping server config without an id: {_config_name(config)!r}")
                continue
            clients.append(self.set_client(str(id), config))
        return clients

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def initialize_all_clients(self) -> list[InitializationResult]:
        """Initialize every registered client concurrently."""

        async def run(client: BaseClient) -> InitializationResult:
            try:
                ok = await client.initialize()
            except Exception as e:
                logger.error(f"Failed to initialize client {client.name}: {e}")
                return InitializationResult(client.id, client.name, False, parse_error(e, "initialize"))
            if ok:
                return InitializationResult(client.id, client.name, True)
            return InitializationResult(
                client.id,
                client.name,
                False,
                MCPError(
                    MCPErrorCode.SERVER_NOT_INITIALIZED,
                    f"MCP client {client.name} failed to initialize",
                ),
            )

        return list(await asyncio.gather(
            *(self._track(c, run(c)) for c in self.get_all_clients())
        ))

    async def close(self) -> None:
        """Cancel background work and close every client session."""
        self._closing = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        clients = [*self.get_all_clients(), *self._retired]
        self._retired.clear()
        for client in clients:
            try:
                await client.close()
            except Exception as e:
                logger.warning(f"Error closing client '{client.name}': {e}")

    async def __aenter__(self) -> ClientManager:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Fan-out operations
    # ------------------------------------------------------------------ #

    async def get_context_from_all(
        self,
        request: ContextRequest | None = None,
    ) -> list[AggregatedResult]:
        """Ask every enabled server for context (no capability filter)."""
        clients = [client for client in self.get_all_clients() if client.enabled]
        return await self._fan_out(clients, "getContext", lambda c: c.get_context(request))

    async def get_prompts_from_all(
        self,
        request: PromptsRequest | None = None,
    ) -> list[AggregatedResult]:
        """Ask every enabled server already known to support prompts."""
        clients = [
            client for client in self.get_all_clients()
            if client.enabled and client.has_capability("prompts")
        ]
        if not clients:
            return []
        return await self._fan_out(clients, "getPrompts", lambda c: c.get_prompts(request))

    async def get_tools_from_all(
        self,
        request: ToolsRequest | None = None,
    ) -> list[AggregatedResult]:
        """List tools on every enabled server already known to support tools."""
        clients = [
            client for client in self.get_all_clients()
            if client.enabled and client.has_capability("tools")
        ]
        if not clients:
            return []
        return await self._fan_out(clients, "getTools", lambda c: c.get_tools(request))

    async def check_health_all(self) -> list[AggregatedResult]:
        """Health-check every registered server, enabled or not."""
        return await self._fan_out(self.get_all_clients(), "health", lambda c: c.check_health())

    async def get_capabilities_all(self) -> list[AggregatedResult]:
        """Fetch capabilities from every registered server, enabled or not."""
        return await self._fan_out(
            self.get_all_clients(), "getCapabilities", lambda c: c.get_capabilities()
        )

    async def execute_tool(
        self,
        server_id: str,
        request: ToolExecutionRequest | None = None,
    ) -> AggregatedResult:
        """
        Run a tool on one server.

        Raises:
            MCPError: RESOURCE_NOT_FOUND for an unknown server id,
                SERVER_NOT_INITIALIZED for a disabled server,
                METHOD_NOT_FOUND if the server does not support tools
        """
        client = self.get_client(server_id)
        if client is None:
            raise MCPError(
                MCPErrorCode.RESOURCE_NOT_FOUND,
                f"MCP server with ID {server_id} not found",
            )
        if not client.enabled:
            raise MCPError(
                MCPErrorCode.SERVER_NOT_INITIALIZED,
                f"MCP server {client.name} is disabled",
            )
        if not client.has_capability("tools"):
            raise MCPError.capability_missing(client.name, "tools")

        return await self._track(
            client, self._call_one(client, "executeTool", lambda c: c.execute_tool(request))
        )

    # ------------------------------------------------------------------ #
    # Internal
    # ------------------------------------------------------------------ #

    async def _fan_out(
        self,
        clients: list[BaseClient],
        operation: str,
        call: Callable[[BaseClient], Awaitable[OperationResult]],
    ) -> list[AggregatedResult]:
        results = await asyncio.gather(
            *(self._track(c, self._call_one(c, operation, call)) for c in clients)
        )
        return list(results)

    async def _call_one(
        self,
        client: BaseClient,
        operation: str,
        call: Callable[[BaseClient], Awaitable[OperationResult]],
    ) -> AggregatedResult:
        try:
            result = await call(client)
        except Exception as e:
            logger.error(f"MCP {operation} raised for {client.name}: {e}")
            return AggregatedResult.failure(client, parse_error(e, operation))

        if not isinstance(result, OperationResult):
            return AggregatedResult.failure(
                client, MCPError.internal(f"No result returned from client for {operation}")
            )
        return AggregatedResult.from_result(client, result)

    async def _background_initialize(self, client: BaseClient) -> None:
        if not await client.initialize():
            logger.warning(f"Background initialization of MCP client {client.name} failed")

    def _spawn(self, coro: Coroutine[Any, Any, Any], label: str) -> asyncio.Task | None:
        """Run ``coro`` as a supervised background task; failures are only logged."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Nothing to schedule on; initialization happens lazily instead
            coro.close()
            logger.debug(f"No running event loop, skipped background {label}")
            return None

        task = loop.create_task(coro, name=label)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _track(self, client: BaseClient, coro: Coroutine[Any, Any, Any]) -> asyncio.Future:
        """Run ``coro`` as a task counted against ``client``'s in-flight calls."""
        task = asyncio.ensure_future(coro)
        self._track_task(client, task)
        return task

    def _track_task(self, client: BaseClient, task: asyncio.Future) -> None:
        self._in_flight[client] = self._in_flight.get(client, 0) + 1
        task.add_done_callback(lambda _: self._release(client))

    def _release(self, client: BaseClient) -> None:
        remaining = self._in_flight.get(client, 0) - 1
        if remaining > 0:
            self._in_flight[client] = remaining
            return
        self._in_flight.pop(client, None)
        self._close_if_idle(client)

    def _retire(self, client: BaseClient) -> None:
        self._retired.add(client)
        self._close_if_idle(client)

    def _close_if_idle(self, client: BaseClient) -> None:
        if self._closing or client not in self._retired or client in self._in_flight:
            return
        self._spawn(self._close_retired(client), f"close:{client.id}")

    async def _close_retired(self, client: BaseClient) -> None:
        await client.close()
        self._retired.discard(client)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"Background task {task.get_name()} failed: {exc}")

    @staticmethod
    def _coerce_config(id: str, config: ConfigLike) -> ServerConfig:
        if isinstance(config, ServerConfig):
            return dataclasses.replace(config, id=id)
        if isinstance(config, Mapping):
            return ServerConfig.from_dict({**config, "id": id})
        raise TypeError(f"Unsupported server config type: {type(config).__name__}")


def _config_name(config: Any) -> str:
    if isinstance(config, ServerConfig):
        return config.name
    if isinstance(config, Mapping):
        return str(config.get("name") or "")
    return ""
