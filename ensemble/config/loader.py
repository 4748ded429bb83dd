"""
Catalog loader for MCP server catalogs.

This module provides the public API for loading and validating
catalog files from disk or YAML strings.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from .models import ServerCatalog
from .parser import SchemaParser
from .validation import SchemaValidator, ValidationResult


def load_catalog(path: str | Path) -> tuple[ServerCatalog | None, ValidationResult]:
    """
    Load and validate a server catalog from a YAML file.

    Args:
        path: Path to the YAML catalog file

    Returns:
        Tuple of (ServerCatalog or None, ValidationResult)
        If validation fails, ServerCatalog will be None.

    Example:
        catalog, result = load_catalog("servers.yaml")
        if not result.is_valid:
            print(result)
            sys.exit(1)
        manager.sync(catalog.servers)
    """
    path = Path(path)

    if not path.exists():
        result = ValidationResult()
        result.add_error(
            str(path),
            "File not found",
            suggestion="Check the file path is correct"
        )
        return None, result

    try:
        with open(path) as f:
            text = f.read()
    except OSError as e:
        result = ValidationResult()
        result.add_error(str(path), f"Could not read file: {e}")
        return None, result

    return _validate(text, source=str(path))


def validate_catalog_yaml(yaml_string: str) -> tuple[ServerCatalog | None, ValidationResult]:
    """
    Validate a catalog from a YAML string (useful for testing).

    Args:
        yaml_string: YAML content as a string

    Returns:
        Tuple of (ServerCatalog or None, ValidationResult)
    """
    return _validate(yaml_string, source="yaml")


def _validate(text: str, source: str) -> tuple[ServerCatalog | None, ValidationResult]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        result = ValidationResult()
        result.add_error(
            source,
            f"Invalid YAML syntax: {e}",
            suggestion="Check YAML formatting (indentation, colons, etc.)"
        )
        return None, result

    if not isinstance(data, dict):
        result = ValidationResult()
        result.add_error(
            source,
            "Content must be a YAML object (not a list or scalar)",
            value=type(data).__name__
        )
        return None, result

    validator = SchemaValidator(data)
    result = validator.validate()

    if not result.is_valid:
        return None, result

    parser = SchemaParser(data)
    return parser.parse(), result
