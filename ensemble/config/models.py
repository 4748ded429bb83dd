"""
Typed data structures for MCP server catalogs.

This module contains the enums and dataclasses describing which MCP
servers the client manager talks to and how it authenticates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────

class ClientProtocol(str, Enum):
    """Wire protocol used to talk to an MCP server."""
    JSON_RPC = "json-rpc"
    REST = "rest"
    AUTO = "auto"  # JSON-RPC with REST fallbacks


class AuthType(str, Enum):
    """Supported authentication types."""
    NONE = "none"
    API_KEY = "apiKey"
    BASIC = "basic"
    BEARER = "bearer"


# ─────────────────────────────────────────────────────────────────────────────
# Auth Configuration
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_AUTH_HEADER = "Authorization"

# camelCase spellings accepted from programmatic callers
_AUTH_KEY_ALIASES = {
    "apiKey": "api_key",
    "headerName": "header_name",
}


@dataclass
class AuthConfig:
    """
    Authentication settings for a server.

    Which fields are read depends on the server's auth type:
    - apiKey: api_key sent in the header named header_name
    - basic: username/password sent as Authorization: Basic <base64>
    - bearer: token sent as Authorization: Bearer <token>
    """
    # For apiKey auth
    api_key: str | None = None
    header_name: str = DEFAULT_AUTH_HEADER
    # For basic auth
    username: str | None = None
    password: str | None = None
    # For bearer auth
    token: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> AuthConfig:
        if not data:
            return cls()
        values = {_AUTH_KEY_ALIASES.get(key, key): value for key, value in data.items()}
        return cls(
            api_key=values.get("api_key"),
            header_name=values.get("header_name") or DEFAULT_AUTH_HEADER,
            username=values.get("username"),
            password=values.get("password"),
            token=values.get("token"),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Servers
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_SERVER_NAME = "MCP Server"


@dataclass
class ServerConfig:
    """Registration of one MCP server."""
    id: str
    url: str
    name: str = DEFAULT_SERVER_NAME
    enabled: bool = True
    protocol: ClientProtocol = ClientProtocol.AUTO
    auth_type: AuthType = AuthType.NONE
    auth_config: AuthConfig = field(default_factory=AuthConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ServerConfig:
        """
        Build a ServerConfig from a plain mapping.

        Accepts both snake_case keys and the camelCase ``authType`` /
        ``authConfig`` spellings.

        Raises:
            ValueError: If the url is missing, ``enabled`` is not a boolean
                or an enum value is unknown
        """
        url = data.get("url")
        if not url:
            raise ValueError("Server config requires a 'url'")

        auth_type = data.get("auth_type", data.get("authType")) or AuthType.NONE
        auth_config = data.get("auth_config", data.get("authConfig"))
        enabled = data.get("enabled")
        if enabled is not None and not isinstance(enabled, bool):
            raise ValueError(f"'enabled' must be a boolean, got {type(enabled).__name__}")

        return cls(
            id=str(data.get("id") or url),
            url=url,
            name=data.get("name") or DEFAULT_SERVER_NAME,
            enabled=True if enabled is None else enabled,
            protocol=ClientProtocol(data.get("protocol") or ClientProtocol.AUTO),
            auth_type=AuthType(auth_type),
            auth_config=AuthConfig.from_dict(auth_config),
        )


@dataclass
class ServerCatalog:
    """Fully parsed and validated server catalog file."""
    version: int
    name: str = ""
    env: dict[str, Any] = field(default_factory=dict)
    servers: list[ServerConfig] = field(default_factory=list)
