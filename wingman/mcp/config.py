"""Loading of the MCP server configuration file."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ServerConfig:
    """How to reach one MCP server: by command or by URL."""

    transport: str = ""
    url: str = ""
    command: str = ""
    args: list[str] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)


def _fail(detail: str) -> ValueError:
    return ValueError(f"failed to parse mcp.json: {detail}")


def _string(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _fail(f"{name} must be a string")
    return value


def _server_from_json(name: str, value: Any) -> ServerConfig:
    if value is None:
        return ServerConfig()
    if not isinstance(value, dict):
        raise _fail(f"server {name} must be an object")

    args = value.get("args") or []
    if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
        raise _fail(f"server {name}: args must be a list of strings")

    headers = value.get("headers") or {}
    if not isinstance(headers, dict) or not all(isinstance(v, str) for v in headers.values()):
        raise _fail(f"server {name}: headers must map strings to strings")

    return ServerConfig(
        transport=_string(value.get("transport"), "transport"),
        url=_string(value.get("url"), "url"),
        command=_string(value.get("command"), "command"),
        args=list(args),
        headers=dict(headers),
    )


@dataclass
class Config:
    """The set of configured MCP servers, keyed by name."""

    servers: dict[str, ServerConfig] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: str | bytes) -> Config:
        """Parse the text of an ``mcp.json`` file."""
        try:
            document = json.loads(data)
        except (ValueError, UnicodeDecodeError) as exc:
            raise _fail(str(exc)) from exc

        if document is None:
            return cls()
        if not isinstance(document, dict):
            raise _fail("top level must be an object")

        servers = document.get("mcpServers") or {}
        if not isinstance(servers, dict):
            raise _fail("mcpServers must be an object")

        return cls(servers={name: _server_from_json(name, value) for name, value in servers.items()})


def load_config(path: str | os.PathLike[str]) -> Config:
    """Read and parse the MCP configuration at ``path``."""
    with open(path, "rb") as handle:
        data = handle.read()
    return Config.from_json(data)