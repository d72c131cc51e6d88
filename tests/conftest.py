"""Shared GTFS fixture: a small Estonian feed covering calendar and midnight edge cases.

Calendar reference (January 2025): Wed 01 (holiday), Fri 03, Sat 04, Wed 08,
Thu 09, Fri 10, Sat 11.
"""

from pathlib import Path

import pytest

from peatus_mcp.data.gtfs_loader import GTFSLoader


@pytest.fixture
def sample_gtfs_dir(tmp_path: Path) -> Path:
    """Create a sample GTFS directory with minimal valid data."""
    gtfs_dir = tmp_path / "gtfs"
    gtfs_dir.mkdir()

    # stops.txt - 0000 sits at 0,0 and 4444 has no coordinates
    (gtfs_dir / "stops.txt").write_text(
        "stop_id,stop_code,stop_name,stop_desc,stop_lat,stop_lon,zone_id\n"
        "1234,101,Balti jaam,\"Tallinn, Harjumaa\",59.4400,24.7370,\n"
        "5678,102,Keila - Jaam,,59.3030,24.4130,\n"
        "9999,103,Põldeotsa,,58.3780,26.7290,TARTU\n"
        "0000,104,Vigane peatus,Tallinn,0,0,\n"
        "4444,105,Tundmatu,,,,\n",
        encoding="utf-8",
    )

    # routes.txt - two agencies both run a route "2"
    (gtfs_dir / "routes.txt").write_text(
        "route_id,agency_id,route_short_name,route_long_name,route_type\n"
        "R10A,TLT,10A,Kopli - Balti jaam,3\n"
        "R2A,TLT,2,Mustamäe - Kadriorg,3\n"
        "R2B,ATKO,2,Haapsalu - Uuemõisa,3\n"
        "R5,TLT,5,Öine liin,3\n"
        "R99,TLT,99,Keila - Laagri,3\n"
        "R100,TLT,100,Pikk liin,3\n",
        encoding="utf-8",
    )

    # calendar.txt
    (gtfs_dir / "calendar.txt").write_text(
        "service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday,start_date,end_date\n"
        "WEEKDAY,1,1,1,1,1,0,0,20240101,20261231\n"
        "WEEKEND,0,0,0,0,0,1,1,20240101,20261231\n"
        "FRIDAY,0,0,0,0,1,0,0,20240101,20261231\n"
        "SATURDAY,0,0,0,0,0,1,0,20240101,20261231\n"
    )

    # calendar_dates.txt - holiday removal, exception-only service
    (gtfs_dir / "calendar_dates.txt").write_text(
        "service_id,date,exception_type\n"
        "WEEKDAY,20250101,2\n"
        "WEEKEND,20250101,1\n"
        "EXTRA,20250104,1\n"
    )

    # trips.txt
    (gtfs_dir / "trips.txt").write_text(
        "trip_id,route_id,service_id,trip_headsign,direction_id\n"
        "T1,R10A,WEEKDAY,Kopli,0\n"
        "T2,R10A,WEEKDAY,Kopli,0\n"
        "T3,R10A,WEEKDAY,Kopli,1\n"
        "TBAD,R10A,WEEKDAY,Kopli,0\n"
        "T2A,R2A,WEEKDAY,,\n"
        "T2B,R2B,WEEKDAY,Uuemõisa,1\n"
        "T5A,R5,FRIDAY,Pirita,0\n"
        "T5B,R5,FRIDAY,Pirita,0\n"
        "T5C,R5,SATURDAY,Pirita,0\n"
        "T99,R99,WEEKDAY,Laagri,0\n"
        "T100,R100,EXTRA,Ekstra,0\n",
        encoding="utf-8",
    )

    # stop_times.txt - 24:10:00 and 25:10:00 run past midnight
    (gtfs_dir / "stop_times.txt").write_text(
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
        "T1,13:30:00,13:30:00,1234,1\n"
        "T2,14:35:00,14:35:00,1234,1\n"
        "T3,24:10:00,24:10:00,1234,1\n"
        "TBAD,bad,bad,1234,1\n"
        "T2A,15:00:00,15:00:00,1234,1\n"
        "T2B,15:30:00,15:30:00,1234,1\n"
        "T5A,08:00:00,08:00:00,1234,1\n"
        "T5B,25:10:00,25:10:00,1234,1\n"
        "T5C,07:00:00,07:00:00,1234,1\n"
        "T99,09:00:00,09:00:00,5678,1\n"
        "T100,12:00:00,12:00:00,9999,1\n"
    )

    return gtfs_dir


@pytest.fixture
async def db_path(sample_gtfs_dir: Path, tmp_path: Path) -> Path:
    """Create a test database from sample GTFS data."""
    db_file = tmp_path / "test.db"
    loader = GTFSLoader(db_file)
    await loader.ingest(sample_gtfs_dir)
    return db_file
