"""
Report data models for fan-out runs.

This module defines the data structures for capturing one run of a
multi-server operation: which catalog it used, when it ran and what
each server answered.
"""

from __future__ import annotations

import hashlib
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class RunStatus(str, Enum):
    """Overall status of a fan-out run."""
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"      # every server succeeded
    PARTIAL = "partial"    # some servers failed
    FAILED = "failed"      # every server failed
    EMPTY = "empty"        # no server took part


@dataclass
class ServerRecord:
    """What one server answered during a run."""
    server_id: str
    name: str
    url: str
    success: bool
    data: Any = None
    error_code: int | None = None
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "server_id": self.server_id,
            "name": self.name,
            "url": self.url,
            "success": self.success,
            "data": _safe_serialize(self.data),
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


@dataclass
class FanoutReport:
    """
    Complete record of one fan-out run.

    Contains metadata about the run, the catalog it was driven by and a
    record for each server that took part.
    """
    # Run identification
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""

    # Timing
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: datetime | None = None
    duration_ms: float | None = None

    # Catalog info
    catalog_name: str = ""
    catalog_version: int = 1
    catalog_hash: str = ""

    status: RunStatus = RunStatus.PENDING
    servers: list[ServerRecord] = field(default_factory=list)

    # Summary stats
    total_servers: int = 0
    succeeded: int = 0
    failed: int = 0

    def start(self) -> None:
        """Mark the run as started."""
        self.status = RunStatus.RUNNING
        self.started_at = datetime.now(timezone.utc)

    def complete(self) -> None:
        """Mark the run as completed and calculate final status."""
        self.ended_at = datetime.now(timezone.utc)
        delta = self.ended_at - self.started_at
        self.duration_ms = delta.total_seconds() * 1000

        self.total_servers = len(self.servers)
        self.succeeded = sum(1 for s in self.servers if s.success)
        self.failed = self.total_servers - self.succeeded

        if self.total_servers == 0:
            self.status = RunStatus.EMPTY
        elif self.failed == 0:
            self.status = RunStatus.PASSED
        elif self.succeeded == 0:
            self.status = RunStatus.FAILED
        else:
            self.status = RunStatus.PARTIAL

    def add_server(self, record: ServerRecord) -> None:
        self.servers.append(record)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "run_id": self.run_id,
            "operation": self.operation,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_ms": self.duration_ms,
            "catalog_name": self.catalog_name,
            "catalog_version": self.catalog_version,
            "catalog_hash": self.catalog_hash,
            "status": self.status.value,
            "summary": {
                "total": self.total_servers,
                "succeeded": self.succeeded,
                "failed": self.failed,
            },
            "servers": [record.to_dict() for record in self.servers],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def summary(self) -> str:
        """Generate a human-readable summary."""
        lines = [
            "═══════════════════════════════════════════════════════════",
            f"  Run Report: {self.operation} on {self.catalog_name or 'catalog'}",
            "═══════════════════════════════════════════════════════════",
            f"  Run ID:     {self.run_id}",
            f"  Status:     {_status_icon(self.status)} {self.status.value.upper()}",
            f"  Duration:   {self.duration_ms:.0f}ms" if self.duration_ms else "  Duration:   N/A",
            f"  Started:    {self.started_at.strftime('%Y-%m-%d %H:%M:%S UTC') if self.started_at else 'N/A'}",
            "───────────────────────────────────────────────────────────",
            f"  Servers: {self.succeeded} succeeded, {self.failed} failed",
            "───────────────────────────────────────────────────────────",
        ]

        for record in self.servers:
            icon = "✅" if record.success else "❌"
            lines.append(f"  {icon} [{record.server_id}] {record.name} - {record.url}")
            if not record.success and record.error_message:
                lines.append(f"      └─ {record.error_code}: {record.error_message}")

        lines.append("═══════════════════════════════════════════════════════════")
        return "\n".join(lines)


def compute_catalog_hash(catalog_dict: dict[str, Any]) -> str:
    """
    Compute a hash of the catalog for tracking which server set a run used.

    Args:
        catalog_dict: The catalog data as a dict (without secrets)

    Returns:
        SHA-256 hash (first 12 chars)
    """
    serialized = json.dumps(catalog_dict, sort_keys=True, default=str)
    return hashlib.sha256(serialized.encode()).hexdigest()[:12]


def _safe_serialize(value: Any) -> Any:
    """Safely serialize a value, handling non-JSON types."""
    if value is None:
        return None
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


def _status_icon(status: RunStatus) -> str:
    return {
        RunStatus.PENDING: "⏳",
        RunStatus.RUNNING: "🔄",
        RunStatus.PASSED: "✅",
        RunStatus.PARTIAL: "⚠️",
        RunStatus.FAILED: "❌",
        RunStatus.EMPTY: "➖",
    }.get(status, "❓")
