"""
Reporter for building and saving fan-out run reports.

This module provides the Reporter class which turns the aggregated
results of a ClientManager call into a FanoutReport.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from .models import FanoutReport, ServerRecord, compute_catalog_hash

if TYPE_CHECKING:
    from ..config import ServerCatalog
    from ..manager import AggregatedResult, InitializationResult


class Reporter:
    """
    Builds and manages fan-out run reports.

    Example:
        from ensemble.config import load_catalog
        from ensemble.reporting import Reporter

        catalog, _ = load_catalog("servers.yaml")
        reporter = Reporter.from_catalog(catalog, operation="health")

        reporter.start_run()
        reporter.record_results(await manager.check_health_all())

        report = reporter.finish_run()
        print(report.summary())
    """

    def __init__(self, report: FanoutReport):
        self.report = report

    @classmethod
    def from_catalog(
        cls,
        catalog: ServerCatalog,
        operation: str,
        run_id: str | None = None,
    ) -> Reporter:
        """
        Create a Reporter for one operation over a parsed catalog.

        Args:
            catalog: The catalog the manager was populated from
            operation: Name of the fan-out operation (e.g. "getTools")
            run_id: Optional custom run ID (auto-generated if not provided)
        """
        report = FanoutReport(
            operation=operation,
            catalog_name=catalog.name,
            catalog_version=catalog.version,
            catalog_hash=compute_catalog_hash(_catalog_to_dict(catalog)),
        )
        if run_id:
            report.run_id = run_id
        return cls(report)

    def start_run(self) -> None:
        """Mark the run as started."""
        self.report.start()

    def record_results(
        self,
        results: Iterable[AggregatedResult | InitializationResult],
    ) -> None:
        """Add one ServerRecord per fan-out or initialization entry."""
        for result in results:
            error = result.error
            self.report.add_server(ServerRecord(
                server_id=result.id,
                name=getattr(result, "source", None) or getattr(result, "name", ""),
                url=getattr(result, "url", ""),
                success=result.success,
                data=getattr(result, "data", None),
                error_code=int(error.code) if error is not None else None,
                error_message=error.message if error is not None else None,
            ))

    def finish_run(self) -> FanoutReport:
        """
        Mark the run as completed and return the final report.

        Returns:
            The completed FanoutReport with summary stats
        """
        self.report.complete()
        return self.report

    def save_json(self, path: str | Path) -> None:
        """Save the report to a JSON file, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.report.to_json())

    def get_summary(self) -> str:
        """Get a human-readable summary of the run."""
        return self.report.summary()


def _catalog_to_dict(catalog: ServerCatalog) -> dict:
    """Convert a catalog to a dict for hashing; credentials are left out."""
    return {
        "version": catalog.version,
        "name": catalog.name,
        "servers": [
            {
                "id": server.id,
                "name": server.name,
                "url": server.url,
                "enabled": server.enabled,
                "protocol": server.protocol.value,
                "auth_type": server.auth_type.value,
            }
            for server in catalog.servers
        ],
    }
