"""Language-server, JSON-RPC, MCP configuration and skill tooling for coding agents."""

__version__ = "0.1.0"