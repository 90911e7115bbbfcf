"""Solax X1 RS485 protocol library and MCP server."""

__version__ = "0.1.0"
