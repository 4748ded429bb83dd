"""
Client factory for creating MCP clients from configuration.

This module picks the protocol implementation for a ServerConfig.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import BaseClient
from .jsonrpc import JsonRpcClient
from .rest import RestClient
from ..config.models import ClientProtocol

if TYPE_CHECKING:
    from ..config.models import ServerConfig


def create_client(
    config: ServerConfig,
    protocol: ClientProtocol | str | None = None,
) -> BaseClient:
    """
    Create a client instance from a ServerConfig.

    Args:
        config: Server registration
        protocol: Overrides ``config.protocol`` when given

    Returns:
        RestClient for the REST protocol; JsonRpcClient otherwise (AUTO
        and JSON_RPC), since it falls back to REST-style calls itself

    Raises:
        ValueError: If the config is unusable (e.g. no url) or the
            protocol is unknown

    Example:
        client = create_client(ServerConfig(id="docs", url="http://localhost:8000"))
        async with client:
            result = await client.get_tools()
    """
    protocol = ClientProtocol(protocol or config.protocol or ClientProtocol.AUTO)

    if protocol == ClientProtocol.REST:
        return RestClient(config)

    return JsonRpcClient(config)
