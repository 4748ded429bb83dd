"""
Schema validation for MCP server catalogs.

This module contains the validation logic that checks raw parsed YAML
against the catalog schema and reports errors with helpful messages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .models import AuthType, ClientProtocol


# ─────────────────────────────────────────────────────────────────────────────
# Validation Result Types
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ValidationError:
    """Represents a single validation error with context."""
    path: str  # e.g., "servers[0].auth_config.token"
    message: str
    value: Any = None
    suggestion: str | None = None

    def __str__(self) -> str:
        parts = [f"❌ {self.path}: {self.message}"]
        if self.value is not None:
            parts.append(f"   Got: {repr(self.value)}")
        if self.suggestion:
            parts.append(f"   💡 {self.suggestion}")
        return "\n".join(parts)


@dataclass
class ValidationResult:
    """Result of schema validation."""
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(
        self,
        path: str,
        message: str,
        value: Any = None,
        suggestion: str | None = None
    ) -> None:
        self.errors.append(ValidationError(path, message, value, suggestion))

    def __str__(self) -> str:
        if self.is_valid:
            return "✅ Schema validation passed"
        lines = [f"Schema validation failed with {len(self.errors)} error(s):\n"]
        lines.extend(str(e) for e in self.errors)
        return "\n".join(lines)


# ─────────────────────────────────────────────────────────────────────────────
# Schema Validator
# ─────────────────────────────────────────────────────────────────────────────

class SchemaValidator:
    """Validates raw parsed YAML against the server catalog schema."""

    REQUIRED_TOP_LEVEL = {"version", "servers"}
    OPTIONAL_TOP_LEVEL = {"name", "env"}
    SERVER_FIELDS = {"id", "name", "url", "enabled", "protocol", "auth_type", "auth_config"}
    AUTH_CONFIG_FIELDS = {"api_key", "header_name", "username", "password", "token"}
    VALID_PROTOCOLS = {p.value for p in ClientProtocol}
    VALID_AUTH_TYPES = {t.value for t in AuthType}

    # Field that must be present for each auth type
    REQUIRED_AUTH_FIELD = {
        AuthType.API_KEY.value: "api_key",
        AuthType.BASIC.value: "username",
        AuthType.BEARER.value: "token",
    }

    def __init__(self, data: dict[str, Any]):
        self.data = data
        self.result = ValidationResult()
        self.server_ids: set[str] = set()

    def validate(self) -> ValidationResult:
        """Run all validation checks and return result."""
        self._validate_top_level()
        if not self.result.is_valid:
            return self.result

        self._validate_version()
        self._validate_name()
        self._validate_env()
        self._validate_servers()

        return self.result

    def _validate_top_level(self) -> None:
        """Check required and unknown top-level keys."""
        keys = set(self.data.keys())
        missing = self.REQUIRED_TOP_LEVEL - keys
        unknown = keys - self.REQUIRED_TOP_LEVEL - self.OPTIONAL_TOP_LEVEL

        for key in sorted(missing):
            self.result.add_error(
                key,
                f"Required field '{key}' is missing",
                suggestion=f"Add '{key}:' to your catalog file"
            )

        for key in sorted(unknown):
            self.result.add_error(
                key,
                f"Unknown top-level field '{key}'",
                suggestion=f"Valid fields are: {', '.join(sorted(self.REQUIRED_TOP_LEVEL | self.OPTIONAL_TOP_LEVEL))}"
            )

    def _validate_version(self) -> None:
        version = self.data.get("version")
        if not isinstance(version, int) or isinstance(version, bool):
            self.result.add_error(
                "version",
                "Must be an integer",
                value=version,
                suggestion="Use 'version: 1'"
            )
        elif version < 1:
            self.result.add_error(
                "version",
                "Must be >= 1",
                value=version
            )

    def _validate_name(self) -> None:
        if "name" not in self.data:
            return
        name = self.data.get("name")
        if not isinstance(name, str):
            self.result.add_error(
                "name",
                "Must be a string",
                value=name
            )
        elif not name.strip():
            self.result.add_error(
                "name",
                "Cannot be empty",
                suggestion="Provide a descriptive name for your catalog or remove the field"
            )

    def _validate_env(self) -> None:
        env = self.data.get("env")
        if env is None:
            return
        if not isinstance(env, dict):
            self.result.add_error(
                "env",
                "Must be an object (key-value pairs)",
                value=env
            )

    def _validate_servers(self) -> None:
        servers = self.data.get("servers")
        if not isinstance(servers, list):
            self.result.add_error(
                "servers",
                "Must be a list",
                value=servers,
                suggestion="Use '- id: ...' entries under 'servers:'"
            )
            return

        for index, server in enumerate(servers):
            self._validate_server(f"servers[{index}]", server)

    def _validate_server(self, path: str, server: Any) -> None:
        if not isinstance(server, dict):
            self.result.add_error(
                path,
                "Server must be an object",
                value=server
            )
            return

        unknown = set(server.keys()) - self.SERVER_FIELDS
        for key in sorted(unknown):
            self.result.add_error(
                f"{path}.{key}",
                f"Unknown server field '{key}'",
                suggestion=f"Valid fields are: {', '.join(sorted(self.SERVER_FIELDS))}"
            )

        server_id = server.get("id")
        if not server_id:
            self.result.add_error(
                f"{path}.id",
                "Server must have an 'id' field",
                suggestion="Add a unique identifier like 'id: docs'"
            )
        elif not isinstance(server_id, str):
            self.result.add_error(
                f"{path}.id",
                "Server id must be a string",
                value=server_id
            )
        elif server_id in self.server_ids:
            self.result.add_error(
                f"{path}.id",
                "Duplicate server id",
                value=server_id,
                suggestion="Each server must have a unique id"
            )
        else:
            self.server_ids.add(server_id)

        name = server.get("name")
        if name is not None and (not isinstance(name, str) or not name.strip()):
            self.result.add_error(
                f"{path}.name",
                "Must be a non-empty string",
                value=name
            )

        url = server.get("url")
        if not url:
            self.result.add_error(
                f"{path}.url",
                "Server must have a 'url' field",
                suggestion="Add 'url: \"http://...\"' to the server entry"
            )
        elif not isinstance(url, str):
            self.result.add_error(
                f"{path}.url",
                "Must be a string",
                value=url
            )
        elif not (url.startswith("http://") or url.startswith("https://")):
            self.result.add_error(
                f"{path}.url",
                "Must be a valid HTTP(S) URL",
                value=url,
                suggestion="URL should start with 'http://' or 'https://'"
            )

        enabled = server.get("enabled")
        if enabled is not None and not isinstance(enabled, bool):
            self.result.add_error(
                f"{path}.enabled",
                "Must be a boolean",
                value=enabled,
                suggestion="Use 'enabled: true' or 'enabled: false'"
            )

        protocol = server.get("protocol")
        if protocol is not None and protocol not in self.VALID_PROTOCOLS:
            self.result.add_error(
                f"{path}.protocol",
                "Invalid protocol",
                value=protocol,
                suggestion=f"Valid protocols: {', '.join(sorted(self.VALID_PROTOCOLS))}"
            )

        self._validate_auth(path, server)

    def _validate_auth(self, path: str, server: dict) -> None:
        auth_type = server.get("auth_type", AuthType.NONE.value)
        if auth_type not in self.VALID_AUTH_TYPES:
            self.result.add_error(
                f"{path}.auth_type",
                "Invalid auth type",
                value=auth_type,
                suggestion=f"Valid auth types: {', '.join(sorted(self.VALID_AUTH_TYPES))}"
            )
            return

        auth_config = server.get("auth_config")
        if auth_config is None:
            auth_config = {}
        elif not isinstance(auth_config, dict):
            self.result.add_error(
                f"{path}.auth_config",
                "Must be an object",
                value=auth_config
            )
            return

        for key in sorted(set(auth_config.keys()) - self.AUTH_CONFIG_FIELDS):
            self.result.add_error(
                f"{path}.auth_config.{key}",
                f"Unknown auth_config field '{key}'",
                suggestion=f"Valid fields are: {', '.join(sorted(self.AUTH_CONFIG_FIELDS))}"
            )

        required = self.REQUIRED_AUTH_FIELD.get(auth_type)
        if required and not auth_config.get(required):
            self.result.add_error(
                f"{path}.auth_config.{required}",
                f"Required when auth_type is '{auth_type}'",
                suggestion=f"Add '{required}:' under auth_config"
            )
