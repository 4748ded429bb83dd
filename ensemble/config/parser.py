"""
Schema parser for MCP server catalogs.

This module converts validated YAML data into a typed ServerCatalog.
"""

from __future__ import annotations

import os
import re
from typing import Any, Mapping

from .models import (
    AuthConfig,
    AuthType,
    ClientProtocol,
    DEFAULT_SERVER_NAME,
    ServerCatalog,
    ServerConfig,
)

# Template interpolation: {{env.KEY}}
TEMPLATE_PATTERN = re.compile(r"\{\{\s*env\.(\w+)\s*\}\}")


def interpolate_value(value: Any, env: Mapping[str, Any]) -> Any:
    """
    Replace {{env.NAME}} templates in a value.

    Names are looked up in ``env`` first, then in the process environment.
    Unknown names are left as-is.
    """
    if isinstance(value, str):
        def replace_env(match: re.Match) -> str:
            var_name = match.group(1)
            if var_name in env:
                return str(env[var_name])
            return os.environ.get(var_name, match.group(0))
        return TEMPLATE_PATTERN.sub(replace_env, value)
    elif isinstance(value, dict):
        return {k: interpolate_value(v, env) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_value(v, env) for v in value]
    return value


class SchemaParser:
    """Parses and converts validated YAML to a typed ServerCatalog."""

    def __init__(self, data: dict[str, Any]):
        self.data = data
        self.env: dict[str, Any] = data.get("env") or {}

    def parse(self) -> ServerCatalog:
        """Convert validated data to a typed ServerCatalog."""
        return ServerCatalog(
            version=self.data["version"],
            name=self.data.get("name", ""),
            env=self.env,
            servers=[self._parse_server(server) for server in self.data.get("servers", [])],
        )

    def _parse_server(self, server: dict) -> ServerConfig:
        return ServerConfig(
            id=server["id"],
            url=interpolate_value(server["url"], self.env),
            name=server.get("name", DEFAULT_SERVER_NAME),
            enabled=server.get("enabled", True),
            protocol=ClientProtocol(server.get("protocol", ClientProtocol.AUTO.value)),
            auth_type=AuthType(server.get("auth_type", AuthType.NONE.value)),
            auth_config=self._parse_auth_config(server.get("auth_config")),
        )

    def _parse_auth_config(self, auth_data: dict | None) -> AuthConfig:
        """Parse auth configuration, resolving env templates."""
        if not auth_data:
            return AuthConfig()
        return AuthConfig.from_dict(interpolate_value(auth_data, self.env))
