"""
Ensemble - Client Manager for MCP Servers

This package lets an application talk to many Model Context Protocol
servers at once through one registry.

Subpackages:
    - config: Load and validate YAML server catalogs
    - client: Per-server JSON-RPC and REST clients
    - manager: Client registry and concurrent fan-out
    - reporting: Run reports for fan-out calls

Usage:
    from ensemble import ClientManager, ToolsRequest, load_catalog

    catalog, result = load_catalog("servers.yaml")

    async with ClientManager() as manager:
        manager.sync(catalog.servers)
        await manager.initialize_all_clients()

        for entry in await manager.get_tools_from_all(ToolsRequest()):
            print(entry.source, entry.data if entry.success else entry.error)
"""

__version__ = "0.1.0"

# Re-export config for convenience
from .config import (
    # Loader functions
    load_catalog,
    validate_catalog_yaml,
    # Models
    AuthConfig,
    AuthType,
    ClientProtocol,
    ServerCatalog,
    ServerConfig,
    # Validation
    ValidationResult,
    ValidationError,
    SchemaValidator,
)

# Re-export client for convenience
from .client import (
    # Factory
    create_client,
    # Base
    BaseClient,
    # Implementations
    JsonRpcClient,
    RestClient,
    # Models
    ContextRequest,
    MCPError,
    MCPErrorCode,
    OperationResult,
    PromptsRequest,
    ToolExecutionRequest,
    ToolsRequest,
)

# Re-export manager for convenience
from .manager import (
    AggregatedResult,
    ClientManager,
    InitializationResult,
    UnavailableClient,
    build_context_messages,
)

# Re-export reporting for convenience
from .reporting import (
    FanoutReport,
    Reporter,
    RunStatus,
    ServerRecord,
)

__all__ = [
    # Package info
    "__version__",
    # Config
    "load_catalog",
    "validate_catalog_yaml",
    "AuthConfig",
    "AuthType",
    "ClientProtocol",
    "ServerCatalog",
    "ServerConfig",
    "ValidationResult",
    "ValidationError",
    "SchemaValidator",
    # Client
    "create_client",
    "BaseClient",
    "JsonRpcClient",
    "RestClient",
    "ContextRequest",
    "MCPError",
    "MCPErrorCode",
    "OperationResult",
    "PromptsRequest",
    "ToolExecutionRequest",
    "ToolsRequest",
    # Manager
    "AggregatedResult",
    "ClientManager",
    "InitializationResult",
    "UnavailableClient",
    "build_context_messages",
    # Reporting
    "FanoutReport",
    "Reporter",
    "RunStatus",
    "ServerRecord",
]
