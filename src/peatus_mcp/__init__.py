"""Estonian public transit information over MCP, backed by the peatus.ee GTFS feed."""

__version__ = "0.1.0"
