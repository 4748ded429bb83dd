#!/usr/bin/env python3
"""
Ensemble CLI - talk to every MCP server in a catalog at once

Usage:
    ensemble validate <servers.yaml>
    ensemble health <servers.yaml> [OPTIONS]
    ensemble tools <servers.yaml> [-p key=value] [OPTIONS]
    ensemble exec <servers.yaml> <server-id> <tool-id> [-p key=value]
    ensemble --version
"""

import asyncio
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .client import (
    ContextRequest,
    MCPError,
    PromptsRequest,
    ToolExecutionRequest,
    ToolsRequest,
)
from .config import ServerCatalog, load_catalog
from .manager import ClientManager, build_context_messages
from .query import QueryError, select
from .reporting import Reporter

app = typer.Typer(
    name="ensemble",
    help="🎼 Ensemble - fan requests out to a catalog of MCP servers",
    add_completion=False,
)
console = Console()


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


CatalogArgument = typer.Argument(
    ...,
    help="Path to the server catalog YAML file",
    exists=True,
    readable=True,
)
OutputOption = typer.Option(
    OutputFormat.TEXT, "--output", "-o",
    help="Output format: text or json"
)
QueryOption = typer.Option(
    None, "--query", "-q",
    help="JSONPath expression applied to the JSON result list"
)
ReportDirOption = typer.Option(
    None, "--report-dir", "-r",
    help="Directory to save a JSON run report in"
)
LogLevelOption = typer.Option(
    "WARNING", "--log-level", "-l",
    help="Logging level (DEBUG, INFO, WARNING, ERROR)"
)
ParamOption = typer.Option(
    None, "--param", "-p",
    help="Parameter as key=value (value parsed as JSON when possible); repeatable"
)
MessageOption = typer.Option(
    None, "--message", "-m",
    help="User message to send as conversation context; repeatable"
)


def version_callback(value: bool):
    if value:
        console.print(f"🎼 Ensemble v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
):
    """
    🎼 Ensemble - fan requests out to a catalog of MCP servers

    Register MCP servers in a YAML catalog and query all of them at once.
    """
    pass


def setup_logging(level: str) -> None:
    """Send library logs to stderr through Rich."""
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level: {level}", param_hint="--log-level")
    logging.basicConfig(
        level=numeric,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def parse_params(values: Optional[list[str]], params_json: Optional[str] = None) -> dict[str, Any]:
    """Build a parameter dict from ``key=value`` pairs and an optional JSON object."""
    params: dict[str, Any] = {}

    if params_json:
        try:
            loaded = json.loads(params_json)
        except json.JSONDecodeError as e:
            raise typer.BadParameter(f"Invalid JSON: {e}", param_hint="--params-json")
        if not isinstance(loaded, dict):
            raise typer.BadParameter("Expected a JSON object", param_hint="--params-json")
        params.update(loaded)

    for item in values or []:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{item}'", param_hint="--param")
        try:
            params[key] = json.loads(raw)
        except json.JSONDecodeError:
            params[key] = raw

    return params


def user_messages(values: Optional[list[str]]) -> list[dict[str, Any]]:
    return [{"role": "user", "content": text} for text in values or []]


def load_or_exit(catalog_file: Path) -> ServerCatalog:
    catalog, validation = load_catalog(str(catalog_file))
    if not validation.is_valid:
        console.print(f"\n[red]❌ Validation failed:[/red]")
        console.print(str(validation))
        raise typer.Exit(code=1)
    return catalog


async def run_with_manager(
    catalog: ServerCatalog,
    call: Callable[[ClientManager], Awaitable[Any]],
    initialize: bool = False,
) -> Any:
    """Populate a manager from the catalog, run ``call`` and shut everything down."""
    async with ClientManager() as manager:
        manager.sync(catalog.servers)
        if initialize:
            await manager.initialize_all_clients()
        return await call(manager)


def _details(entry: dict[str, Any], width: int = 80) -> str:
    if entry.get("success"):
        data = entry.get("data")
        if data is None:
            return ""
        text = json.dumps(data, default=str)
        return text if len(text) <= width else text[: width - 3] + "..."
    error = entry.get("error") or {}
    return f"{error.get('code')}: {error.get('message')}"


def render_results(title: str, entries: list[dict[str, Any]]) -> None:
    """Print one row per server entry."""
    if not entries:
        console.print(f"\n[yellow]No servers took part in {title}[/yellow]")
        return

    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Status")
    table.add_column("Details")

    for entry in entries:
        status = "[green]✅ ok[/green]" if entry.get("success") else "[red]❌ failed[/red]"
        name = entry.get("source") or entry.get("name") or ""
        table.add_row(str(entry.get("id")), name, status, escape(_details(entry)))

    console.print()
    console.print(table)


def finish(
    operation: str,
    catalog: ServerCatalog,
    results: list,
    output: OutputFormat,
    query: Optional[str],
    report_dir: Optional[Path],
    reporter: Reporter,
) -> None:
    """Print results, save the report and exit 0 only if every entry succeeded."""
    entries = [result.to_dict() for result in results]

    if query:
        try:
            console.print_json(data=select(entries, query), default=str)
        except QueryError as e:
            console.print(f"[red]❌ {escape(str(e))}[/red]")
            raise typer.Exit(code=1)
    elif output == OutputFormat.JSON:
        console.print_json(data=entries, default=str)
    else:
        render_results(f"{operation} ({catalog.name or 'catalog'})", entries)

    if report_dir is not None:
        reporter.record_results(results)
        report = reporter.finish_run()
        report_dir.mkdir(parents=True, exist_ok=True)
        report_path = report_dir / f"{report.run_id}.json"
        reporter.save_json(report_path)
        if output == OutputFormat.TEXT and not query:
            console.print("\n" + escape(reporter.get_summary()))
            console.print(f"\n📁 Report saved: {report_path}")

    raise typer.Exit(code=0 if all(entry.get("success") for entry in entries) else 1)


def fan_out_command(
    operation: str,
    catalog_file: Path,
    call: Callable[[ClientManager], Awaitable[list]],
    output: OutputFormat,
    query: Optional[str],
    report_dir: Optional[Path],
    log_level: str,
    initialize: bool = False,
) -> None:
    setup_logging(log_level)
    catalog = load_or_exit(catalog_file)

    reporter = Reporter.from_catalog(catalog, operation=operation)
    reporter.start_run()
    results = asyncio.run(run_with_manager(catalog, call, initialize=initialize))

    finish(operation, catalog, results, output, query, report_dir, reporter)


@app.command()
def validate(
    catalog_file: Path = CatalogArgument,
):
    """
    Validate a server catalog YAML file.

    Check the schema and list the servers without contacting any of them.
    """
    console.print(f"\n📄 Validating: {catalog_file}")

    catalog, validation = load_catalog(str(catalog_file))

    if not validation.is_valid:
        console.print(f"\n[red]❌ Validation failed:[/red]")
        console.print(str(validation))
        raise typer.Exit(code=1)

    console.print(f"\n[green]✅ Valid catalog:[/green] {catalog.name or catalog_file.name}")
    console.print(f"   Servers: {len(catalog.servers)}")

    table = Table(title="Servers")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("URL")
    table.add_column("Protocol")
    table.add_column("Auth")
    table.add_column("Enabled")

    for server in catalog.servers:
        table.add_row(
            server.id,
            server.name,
            server.url,
            server.protocol.value,
            server.auth_type.value,
            "yes" if server.enabled else "no",
        )

    console.print()
    console.print(table)
    raise typer.Exit(code=0)


@app.command()
def init(
    catalog_file: Path = CatalogArgument,
    output: OutputFormat = OutputOption,
    query: Optional[str] = QueryOption,
    report_dir: Optional[Path] = ReportDirOption,
    log_level: str = LogLevelOption,
):
    """Initialize every server in the catalog and show which succeeded."""
    fan_out_command(
        "initialize", catalog_file,
        lambda manager: manager.initialize_all_clients(),
        output, query, report_dir, log_level,
    )


@app.command()
def health(
    catalog_file: Path = CatalogArgument,
    output: OutputFormat = OutputOption,
    query: Optional[str] = QueryOption,
    report_dir: Optional[Path] = ReportDirOption,
    log_level: str = LogLevelOption,
):
    """Health-check every server, including disabled ones."""
    fan_out_command(
        "health", catalog_file,
        lambda manager: manager.check_health_all(),
        output, query, report_dir, log_level,
    )


@app.command()
def capabilities(
    catalog_file: Path = CatalogArgument,
    output: OutputFormat = OutputOption,
    query: Optional[str] = QueryOption,
    report_dir: Optional[Path] = ReportDirOption,
    log_level: str = LogLevelOption,
):
    """Ask every server which capabilities it supports."""
    fan_out_command(
        "getCapabilities", catalog_file,
        lambda manager: manager.get_capabilities_all(),
        output, query, report_dir, log_level,
    )


@app.command()
def tools(
    catalog_file: Path = CatalogArgument,
    param: Optional[list[str]] = ParamOption,
    output: OutputFormat = OutputOption,
    query: Optional[str] = QueryOption,
    report_dir: Optional[Path] = ReportDirOption,
    log_level: str = LogLevelOption,
):
    """List the tools of every enabled server that supports tools."""
    request = ToolsRequest(parameters=parse_params(param))
    fan_out_command(
        "getTools", catalog_file,
        lambda manager: manager.get_tools_from_all(request),
        output, query, report_dir, log_level,
        initialize=True,
    )


@app.command()
def prompts(
    catalog_file: Path = CatalogArgument,
    message: Optional[list[str]] = MessageOption,
    param: Optional[list[str]] = ParamOption,
    output: OutputFormat = OutputOption,
    query: Optional[str] = QueryOption,
    report_dir: Optional[Path] = ReportDirOption,
    log_level: str = LogLevelOption,
):
    """Collect prompt suggestions from every enabled server that supports prompts."""
    request = PromptsRequest(messages=user_messages(message), parameters=parse_params(param))
    fan_out_command(
        "getPrompts", catalog_file,
        lambda manager: manager.get_prompts_from_all(request),
        output, query, report_dir, log_level,
        initialize=True,
    )


@app.command()
def context(
    catalog_file: Path = CatalogArgument,
    message: Optional[list[str]] = MessageOption,
    resource: Optional[str] = typer.Option(
        None, "--resource",
        help="Resource URI to ask for (default chat://conversation)"
    ),
    param: Optional[list[str]] = ParamOption,
    output: OutputFormat = OutputOption,
    query: Optional[str] = QueryOption,
    report_dir: Optional[Path] = ReportDirOption,
    log_level: str = LogLevelOption,
):
    """
    Gather conversational context from every enabled server.

    In text mode the context is also shown as the system messages a chat
    application would prepend to the conversation.
    """
    request = ContextRequest(
        messages=user_messages(message),
        parameters=parse_params(param),
        resource_uri=resource,
    )

    async def call(manager: ClientManager) -> list:
        results = await manager.get_context_from_all(request)
        if output == OutputFormat.TEXT and not query:
            for msg in build_context_messages(results):
                console.print(f"[bold]{msg['role']}[/bold] {escape(msg['content'])}")
        return results

    fan_out_command(
        "getContext", catalog_file, call,
        output, query, report_dir, log_level,
    )


@app.command("exec")
def exec_tool(
    catalog_file: Path = CatalogArgument,
    server_id: str = typer.Argument(..., help="ID of the server that owns the tool"),
    tool_id: str = typer.Argument(..., help="ID of the tool to run"),
    param: Optional[list[str]] = ParamOption,
    params_json: Optional[str] = typer.Option(
        None, "--params-json",
        help="Tool parameters as a JSON object (merged before --param values)"
    ),
    output: OutputFormat = OutputOption,
    query: Optional[str] = QueryOption,
    report_dir: Optional[Path] = ReportDirOption,
    log_level: str = LogLevelOption,
):
    """Run one tool on one server."""
    setup_logging(log_level)
    request = ToolExecutionRequest(tool_id=tool_id, parameters=parse_params(param, params_json))
    catalog = load_or_exit(catalog_file)

    reporter = Reporter.from_catalog(catalog, operation="executeTool")
    reporter.start_run()

    async def call(manager: ClientManager) -> list:
        return [await manager.execute_tool(server_id, request)]

    try:
        results = asyncio.run(run_with_manager(catalog, call, initialize=True))
    except MCPError as e:
        console.print(f"[red]❌ {int(e.code)}: {e.message}[/red]")
        raise typer.Exit(code=1)

    finish("executeTool", catalog, results, output, query, report_dir, reporter)


@app.command()
def info():
    """
    Show information about Ensemble.
    """
    console.print(f"""
🎼 [bold]Ensemble[/bold] v{__version__}

Client manager for fleets of MCP servers

[bold]Features:[/bold]
  • YAML server catalogs with env templating
  • JSON-RPC 2.0 and REST clients
  • Concurrent fan-out with per-server results
  • Authentication support (API Key, Basic, Bearer)
  • JSONPath queries and JSON run reports

[bold]Quick Start:[/bold]
  ensemble validate servers.yaml
  ensemble health servers.yaml
  ensemble tools servers.yaml -o json
""")


if __name__ == "__main__":
    app()
