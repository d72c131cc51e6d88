import argparse
import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel

from peatus_mcp.app import mcp
from peatus_mcp.data.config import get_settings


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    timezone: str


@mcp.tool()
def health() -> HealthResponse:
    """Check if the Peatus MCP server is running and healthy.

    Returns the server status, version, transit timezone and current timestamp.
    """
    from peatus_mcp import __version__

    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
        timezone=get_settings().timezone,
    )


async def run_ingest(gtfs_path: Path, db_path: Path) -> None:
    """Run GTFS ingestion."""
    from peatus_mcp.data.gtfs_loader import GTFSLoader

    loader = GTFSLoader(db_path)
    row_counts = await loader.ingest(gtfs_path)

    print("\nIngestion complete. Row counts:")
    for table, count in row_counts.items():
        print(f"  {table}: {count:,}")


async def run_download(url: str, dest: Path, db_path: Path) -> None:
    """Download the GTFS feed and ingest it."""
    from peatus_mcp.data.gtfs_loader import download_gtfs

    await download_gtfs(url, dest)
    await run_ingest(dest, db_path)


def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="peatus-mcp",
        description="Estonian transit (peatus.ee GTFS) MCP Server",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command")

    ingest_parser = subparsers.add_parser(
        "ingest",
        help="Ingest GTFS data into SQLite database",
    )
    ingest_parser.add_argument(
        "gtfs_path",
        type=Path,
        help="Path to GTFS directory or ZIP file",
    )
    ingest_parser.add_argument(
        "--db",
        type=Path,
        default=settings.db_path,
        help="SQLite database path (default: data/gtfs.db or PEATUS_DB_PATH env var)",
    )

    download_parser = subparsers.add_parser(
        "download",
        help="Download the GTFS feed and ingest it",
    )
    download_parser.add_argument(
        "--url",
        default=settings.gtfs_url,
        help="GTFS ZIP URL (default: PEATUS_GTFS_URL or https://peatus.ee/gtfs/gtfs.zip)",
    )
    download_parser.add_argument(
        "--dest",
        type=Path,
        default=Path("data/gtfs.zip"),
        help="Where to store the downloaded ZIP (default: data/gtfs.zip)",
    )
    download_parser.add_argument(
        "--db",
        type=Path,
        default=settings.db_path,
        help="SQLite database path (default: data/gtfs.db or PEATUS_DB_PATH env var)",
    )

    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "ingest":
        asyncio.run(run_ingest(args.gtfs_path, args.db))
    elif args.command == "download":
        asyncio.run(run_download(args.url, args.dest, args.db))
    else:
        # Default: run MCP server with every tool registered
        import peatus_mcp.tools  # noqa: F401

        mcp.run()


if __name__ == "__main__":
    main()
