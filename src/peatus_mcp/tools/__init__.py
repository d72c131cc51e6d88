"""MCP tool modules. Importing this package registers every tool on the app."""

from peatus_mcp.tools import arrivals_tools, live_tools, stop_tools

__all__ = ["arrivals_tools", "live_tools", "stop_tools"]
