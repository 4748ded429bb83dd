"""
MCP Client Manager

This package keeps the registry of MCP clients and fans operations out
across them.

Usage:
    from ensemble.manager import ClientManager, build_context_messages
    from ensemble.client import ContextRequest

    async with ClientManager() as manager:
        manager.sync(catalog.servers)
        await manager.initialize_all_clients()

        results = await manager.get_context_from_all(ContextRequest(messages=messages))
        system_messages = build_context_messages(results)
"""

from .manager import ClientManager
from .models import (
    AggregatedResult,
    InitializationResult,
    UnavailableClient,
    build_context_messages,
)

__all__ = [
    "ClientManager",
    "AggregatedResult",
    "InitializationResult",
    "UnavailableClient",
    "build_context_messages",
]
