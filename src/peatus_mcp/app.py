"""MCP application instance.

This module exists to avoid circular import issues when running with `python -m`.
All tool modules should import `mcp` from here, not from server.py.
"""

from mcp.server.fastmcp import FastMCP

mcp = FastMCP(
    "Peatus Transit",
    instructions=(
        "Estonian public transit information from the peatus.ee GTFS feed - "
        "stops by region, routes at a stop, nearest stop and upcoming arrivals"
    ),
)
