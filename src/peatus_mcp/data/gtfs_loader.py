"""GTFS data loader for ingesting the Estonian transit feed into SQLite."""

import csv
import io
import logging
import zipfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import aiosqlite
import httpx

from peatus_mcp.data.regions import extract_region

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE stops (
    stop_id TEXT PRIMARY KEY,
    stop_code TEXT,
    stop_name TEXT NOT NULL,
    stop_desc TEXT,
    stop_lat REAL,
    stop_lon REAL,
    zone_id TEXT,
    location_type INTEGER,
    parent_station TEXT,
    region TEXT
);

CREATE TABLE routes (
    route_id TEXT PRIMARY KEY,
    agency_id TEXT,
    route_short_name TEXT,
    route_long_name TEXT,
    route_type INTEGER,
    route_color TEXT,
    route_text_color TEXT
);

CREATE TABLE trips (
    trip_id TEXT PRIMARY KEY,
    route_id TEXT NOT NULL,
    service_id TEXT NOT NULL,
    trip_headsign TEXT,
    trip_short_name TEXT,
    direction_id INTEGER,
    shape_id TEXT
);

CREATE TABLE stop_times (
    trip_id TEXT NOT NULL,
    arrival_time TEXT,
    departure_time TEXT,
    stop_id TEXT NOT NULL,
    stop_sequence INTEGER NOT NULL,
    stop_headsign TEXT,
    pickup_type INTEGER,
    drop_off_type INTEGER,
    PRIMARY KEY (trip_id, stop_sequence)
);

CREATE TABLE calendar (
    service_id TEXT PRIMARY KEY,
    monday INTEGER NOT NULL,
    tuesday INTEGER NOT NULL,
    wednesday INTEGER NOT NULL,
    thursday INTEGER NOT NULL,
    friday INTEGER NOT NULL,
    saturday INTEGER NOT NULL,
    sunday INTEGER NOT NULL,
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL
);

CREATE TABLE calendar_dates (
    service_id TEXT NOT NULL,
    date TEXT NOT NULL,
    exception_type INTEGER NOT NULL,
    PRIMARY KEY (service_id, date)
);
"""

INDEX_SQL = """
CREATE INDEX idx_stops_region ON stops(region);
CREATE INDEX idx_stops_name ON stops(stop_name);
CREATE INDEX idx_stops_lat_lon ON stops(stop_lat, stop_lon);
CREATE INDEX idx_routes_short_name ON routes(route_short_name);
CREATE INDEX idx_trips_route ON trips(route_id);
CREATE INDEX idx_trips_service ON trips(service_id);
CREATE INDEX idx_stop_times_stop ON stop_times(stop_id);
CREATE INDEX idx_stop_times_trip_stop ON stop_times(trip_id, stop_id);
CREATE INDEX idx_calendar_dates_date ON calendar_dates(date);
"""

# Table definitions: table_name -> (csv_filename, columns read from the CSV)
TABLE_DEFINITIONS: dict[str, tuple[str, list[str]]] = {
    "stops": (
        "stops.txt",
        [
            "stop_id",
            "stop_code",
            "stop_name",
            "stop_desc",
            "stop_lat",
            "stop_lon",
            "zone_id",
            "location_type",
            "parent_station",
        ],
    ),
    "routes": (
        "routes.txt",
        [
            "route_id",
            "agency_id",
            "route_short_name",
            "route_long_name",
            "route_type",
            "route_color",
            "route_text_color",
        ],
    ),
    "trips": (
        "trips.txt",
        [
            "trip_id",
            "route_id",
            "service_id",
            "trip_headsign",
            "trip_short_name",
            "direction_id",
            "shape_id",
        ],
    ),
    "calendar": (
        "calendar.txt",
        [
            "service_id",
            "monday",
            "tuesday",
            "wednesday",
            "thursday",
            "friday",
            "saturday",
            "sunday",
            "start_date",
            "end_date",
        ],
    ),
    "calendar_dates": (
        "calendar_dates.txt",
        ["service_id", "date", "exception_type"],
    ),
    "stop_times": (
        "stop_times.txt",
        [
            "trip_id",
            "arrival_time",
            "departure_time",
            "stop_id",
            "stop_sequence",
            "stop_headsign",
            "pickup_type",
            "drop_off_type",
        ],
    ),
}

# Columns that must be present in the CSV header; others are optional and stored as NULL.
REQUIRED_COLUMNS: dict[str, list[str]] = {
    "stops": ["stop_id", "stop_name"],
    "routes": ["route_id"],
    "trips": ["trip_id", "route_id", "service_id"],
    "calendar": [
        "service_id",
        "monday",
        "tuesday",
        "wednesday",
        "thursday",
        "friday",
        "saturday",
        "sunday",
        "start_date",
        "end_date",
    ],
    "calendar_dates": ["service_id", "date", "exception_type"],
    "stop_times": ["trip_id", "stop_id", "stop_sequence"],
}

# Files the feed cannot do without
REQUIRED_FILES = {"stops.txt", "routes.txt", "trips.txt", "stop_times.txt"}

# Columns added to a table after reading the CSV
DERIVED_COLUMNS: dict[str, list[str]] = {
    "stops": ["region"],
}

# Chunk size for bulk inserts
CHUNK_SIZE = 10000


async def download_gtfs(url: str, dest: Path, timeout: float = 120.0) -> Path:
    """Download a GTFS ZIP archive.

    Args:
        url: Feed URL (redirects are followed).
        dest: Destination file path.
        timeout: HTTP timeout in seconds.

    Returns:
        The destination path.

    Raises:
        httpx.HTTPError: If the download fails.
    """
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    partial = dest.with_suffix(dest.suffix + ".part")

    logger.info(f"Downloading GTFS feed from {url}...")
    try:
        async with httpx.AsyncClient(follow_redirects=True, timeout=timeout) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with open(partial, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        partial.replace(dest)
    except Exception:
        partial.unlink(missing_ok=True)
        raise

    logger.info(f"Downloaded {dest.stat().st_size:,} bytes to {dest}")
    return dest


class GTFSLoader:
    """Loader for ingesting GTFS data into SQLite."""

    def __init__(self, db_path: Path):
        """Initialize the loader.

        Args:
            db_path: Path where the SQLite database will be created.
        """
        self.db_path = Path(db_path)

    async def ingest(self, gtfs_path: Path) -> dict[str, int]:
        """Ingest GTFS data from a directory or ZIP file into SQLite.

        Uses atomic swap: loads into temp DB, then replaces the target DB.

        Args:
            gtfs_path: Path to GTFS directory or ZIP file.

        Returns:
            Dictionary with row counts per table.

        Raises:
            FileNotFoundError: If GTFS path doesn't exist.
            ValueError: If required GTFS files or columns are missing.
        """
        gtfs_path = Path(gtfs_path)
        if not gtfs_path.exists():
            raise FileNotFoundError(f"GTFS path not found: {gtfs_path}")

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        temp_db = self.db_path.with_suffix(".tmp.db")

        try:
            temp_db.unlink(missing_ok=True)

            async with aiosqlite.connect(temp_db) as db:
                # Performance optimizations for bulk loading
                await db.execute("PRAGMA journal_mode=OFF")
                await db.execute("PRAGMA synchronous=OFF")
                await db.execute("PRAGMA cache_size=10000")

                await db.executescript(SCHEMA_SQL)
                await db.commit()
                row_counts = await self._load_all_tables(db, gtfs_path)
                logger.info("Creating indexes...")
                await db.executescript(INDEX_SQL)
                await db.commit()
                await self._verify_integrity(db)

            temp_db.replace(self.db_path)

            logger.info(f"GTFS ingestion complete: {self.db_path}")
            return row_counts

        except Exception:
            temp_db.unlink(missing_ok=True)
            raise

    async def _load_all_tables(self, db: aiosqlite.Connection, gtfs_path: Path) -> dict[str, int]:
        """Load all GTFS tables from directory or ZIP."""
        row_counts: dict[str, int] = {}

        if gtfs_path.is_file() and gtfs_path.suffix == ".zip":
            with zipfile.ZipFile(gtfs_path, "r") as zf:
                names = set(zf.namelist())
                for table_name, (csv_filename, columns) in TABLE_DEFINITIONS.items():
                    if csv_filename not in names:
                        row_counts[table_name] = self._missing_file(csv_filename)
                        continue
                    with zf.open(csv_filename) as raw:
                        text_file = io.TextIOWrapper(raw, encoding="utf-8-sig", newline="")
                        row_counts[table_name] = await self._load_table(
                            db, table_name, columns, text_file, csv_filename
                        )
        else:
            for table_name, (csv_filename, columns) in TABLE_DEFINITIONS.items():
                csv_path = gtfs_path / csv_filename
                if not csv_path.exists():
                    row_counts[table_name] = self._missing_file(csv_filename)
                    continue
                with open(csv_path, encoding="utf-8-sig", newline="") as f:
                    row_counts[table_name] = await self._load_table(
                        db, table_name, columns, f, csv_filename
                    )

        return row_counts

    def _missing_file(self, csv_filename: str) -> int:
        if csv_filename in REQUIRED_FILES:
            raise ValueError(f"Required GTFS file {csv_filename} not found")
        logger.warning(f"Optional file {csv_filename} not found, skipping")
        return 0

    async def _load_table(
        self,
        db: aiosqlite.Connection,
        table_name: str,
        columns: list[str],
        text_file: io.TextIOBase,
        filename: str,
    ) -> int:
        """Load a single CSV stream into a table."""
        logger.info(f"Loading {table_name} from {filename}...")

        all_columns = columns + DERIVED_COLUMNS.get(table_name, [])
        placeholders = ",".join(["?"] * len(all_columns))
        insert_sql = (
            f"INSERT OR IGNORE INTO {table_name} ({','.join(all_columns)}) "
            f"VALUES ({placeholders})"
        )

        changes_before = db.total_changes
        skipped_rows = 0
        chunk: list[tuple[Any, ...]] = []
        required = REQUIRED_COLUMNS.get(table_name, [])

        reader = csv.reader(text_file)
        header_index = self._build_header_index(reader, required, filename)
        for row_dict in self._iter_rows(reader, header_index):
            if not self._has_required_values(row_dict, required):
                skipped_rows += 1
                continue
            values = [self._convert_value(row_dict.get(col)) for col in columns]
            if table_name == "stops":
                values.append(
                    extract_region(
                        row_dict.get("stop_desc"),
                        row_dict.get("stop_name"),
                        self._convert_value(row_dict.get("zone_id")),
                    )
                )
            chunk.append(tuple(values))

            if len(chunk) >= CHUNK_SIZE:
                await db.executemany(insert_sql, chunk)
                chunk = []

        if chunk:
            await db.executemany(insert_sql, chunk)

        await db.commit()
        # duplicate keys are ignored, so count what actually landed
        total_rows = db.total_changes - changes_before
        logger.info(
            f"  Loaded {total_rows:,} rows into {table_name}"
            + (f" (skipped {skipped_rows:,} invalid)" if skipped_rows else "")
        )
        return total_rows

    def _convert_value(self, value: str | None) -> Any:
        """Convert CSV value to appropriate Python type."""
        if value is None:
            return None
        value = value.strip()
        return value or None

    def _has_required_values(self, row: dict[str, str | None], required: list[str]) -> bool:
        """Return True if all required columns have non-empty values."""
        for col in required:
            value = row.get(col)
            if value is None or value.strip() == "":
                return False
        return True

    def _build_header_index(self, reader: Any, required: list[str], filename: str) -> dict[str, int]:
        """Map header names to column positions, checking required columns exist."""
        header = next(reader, None)
        if header is None:
            raise ValueError(f"{filename} is empty")
        header_index: dict[str, int] = {}
        for idx, name in enumerate(header):
            cleaned = name.strip()
            if cleaned and cleaned not in header_index:
                header_index[cleaned] = idx
        missing = [col for col in required if col not in header_index]
        if missing:
            raise ValueError(f"{filename} missing columns: {', '.join(missing)}")
        return header_index

    def _iter_rows(
        self, reader: Any, header_index: dict[str, int]
    ) -> Iterator[dict[str, str]]:
        """Yield CSV rows as dicts keyed by header name, skipping blank lines."""
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            yield {col: (row[idx] if idx < len(row) else "") for col, idx in header_index.items()}

    async def _verify_integrity(self, db: aiosqlite.Connection) -> None:
        """Verify database integrity after loading."""
        logger.info("Verifying database integrity...")

        for table_name in ("routes", "stops", "trips", "stop_times"):
            async with db.execute(f"SELECT COUNT(*) FROM {table_name}") as cursor:
                row = await cursor.fetchone()
                if row is None or row[0] == 0:
                    raise ValueError(f"No {table_name} loaded - check GTFS data")

        async with db.execute(
            "SELECT (SELECT COUNT(*) FROM calendar) + (SELECT COUNT(*) FROM calendar_dates)"
        ) as cursor:
            row = await cursor.fetchone()
            if row is None or row[0] == 0:
                logger.warning("Neither calendar nor calendar_dates has rows - no service will run")

        logger.info("Database integrity verified")


async def get_table_counts(db_path: Path) -> dict[str, int]:
    """Get row counts for all tables in the database.

    Args:
        db_path: Path to the SQLite database.

    Returns:
        Dictionary mapping table names to row counts.
    """
    counts: dict[str, int] = {}
    async with aiosqlite.connect(db_path) as db:
        for table_name in TABLE_DEFINITIONS:
            async with db.execute(f"SELECT COUNT(*) FROM {table_name}") as cursor:
                row = await cursor.fetchone()
                counts[table_name] = row[0] if row else 0
    return counts
