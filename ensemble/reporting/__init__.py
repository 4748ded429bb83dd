"""
Reporting for Fan-out Runs

This package records what every server answered during a multi-server
operation.

Features:
    - Run metadata (ID, timestamp, catalog info)
    - One record per server with data or error code/message
    - Overall status: passed, partial, failed or empty
    - JSON serialization
    - Human-readable summaries

Usage:
    from ensemble.reporting import Reporter

    reporter = Reporter.from_catalog(catalog, operation="getTools")
    reporter.start_run()
    reporter.record_results(await manager.get_tools_from_all())

    report = reporter.finish_run()
    print(report.summary())
    reporter.save_json("reports/tools.json")
"""

from .models import (
    FanoutReport,
    RunStatus,
    ServerRecord,
    compute_catalog_hash,
)
from .reporter import Reporter

__all__ = [
    # Models
    "FanoutReport",
    "RunStatus",
    "ServerRecord",
    "compute_catalog_hash",
    # Reporter
    "Reporter",
]
