"""
Result models for multi-server operations.

Fan-out calls return one AggregatedResult per server: the client's
OperationResult decorated with the server's id, name and url so callers
can attribute results without holding the client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, TYPE_CHECKING

from ..client.models import MCPError, OperationResult

if TYPE_CHECKING:
    from ..client.base import BaseClient


@dataclass
class AggregatedResult:
    """One server's entry in a fan-out result list."""
    id: str
    source: str  # server display name
    url: str
    success: bool
    data: Any = None
    error: MCPError | None = None

    @classmethod
    def from_result(cls, client: BaseClient, result: OperationResult) -> AggregatedResult:
        return cls(
            id=client.id,
            source=client.name,
            url=client.url,
            success=result.success,
            data=result.data,
            error=result.error,
        )

    @classmethod
    def failure(cls, client: BaseClient, error: MCPError) -> AggregatedResult:
        return cls(
            id=client.id,
            source=client.name,
            url=client.url,
            success=False,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        result: dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "url": self.url,
            "success": self.success,
        }
        if self.success:
            result["data"] = self.data
        else:
            result["error"] = self.error.to_dict() if self.error else None
        return result


@dataclass
class InitializationResult:
    """Outcome of initializing one client."""
    id: str
    name: str
    success: bool
    error: MCPError | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "success": self.success,
        }
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


@dataclass
class UnavailableClient:
    """
    Stand-in returned by ClientManager.set_client when a client could not
    be built. It is disabled, never initialized and never registered.
    """
    id: str
    name: str = "Error Client"
    url: str = ""
    enabled: bool = False
    initialized: bool = False
    server_capabilities: dict[str, Any] | None = None
    reason: str = ""


def build_context_messages(results: Iterable[AggregatedResult]) -> list[dict[str, Any]]:
    """
    Turn successful context results into chat system messages.

    Only entries whose data is a mapping with a ``context`` value are used.
    """
    messages = []
    for result in results:
        if not result.success or not isinstance(result.data, dict):
            continue
        context = result.data.get("context")
        if not context:
            continue
        messages.append({
            "role": "system",
            "content": f"[MCP Context from {result.source}]: {context}",
            "source": result.source,
        })
    return messages
