"""MCP server configuration."""