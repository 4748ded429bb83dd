"""
Server Catalog Configuration

This package loads, validates and types the YAML catalogs that list
the MCP servers a ClientManager should talk to.

Usage:
    from ensemble.config import load_catalog, validate_catalog_yaml

    # Load from file
    catalog, result = load_catalog("servers.yaml")
    if not result.is_valid:
        print(result)

    # Or validate from string
    catalog, result = validate_catalog_yaml(yaml_string)
"""

# Public API
from .loader import load_catalog, validate_catalog_yaml

# Models (for type hints and isinstance checks)
from .models import (
    AuthConfig,
    AuthType,
    ClientProtocol,
    ServerCatalog,
    ServerConfig,
)

# Parsing helpers
from .parser import SchemaParser, interpolate_value

# Validation (for custom validation if needed)
from .validation import SchemaValidator, ValidationError, ValidationResult

__all__ = [
    # Loader functions
    "load_catalog",
    "validate_catalog_yaml",
    # Models
    "AuthConfig",
    "AuthType",
    "ClientProtocol",
    "ServerCatalog",
    "ServerConfig",
    # Parsing
    "SchemaParser",
    "interpolate_value",
    # Validation
    "ValidationResult",
    "ValidationError",
    "SchemaValidator",
]
