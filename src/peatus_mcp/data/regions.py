"""Best-effort region derivation for stops.

The Estonian feed has no region column; the municipality usually sits in
stop_desc ("Tartu linn, Tartumaa"), sometimes as a stop_name prefix
("Keila - Jaam"), and zone_id is the last resort.
"""

UNKNOWN_REGION = "Unknown"


def extract_region(
    stop_desc: str | None,
    stop_name: str | None = None,
    zone_id: str | None = None,
) -> str:
    """Derive a display region for a stop.

    Args:
        stop_desc: Free-text stop description.
        stop_name: Stop name, checked for an "Area - Stop" prefix.
        zone_id: Fare zone identifier.

    Returns:
        The region name, or "Unknown" when nothing usable is present.
    """
    if stop_desc:
        desc = stop_desc.strip()
        if "," in desc:
            return desc.split(",")[0].strip()
        if desc:
            return desc

    if stop_name:
        name = stop_name.strip()
        if " - " in name:
            return name.split(" - ")[0].strip()

    if zone_id:
        return zone_id

    return UNKNOWN_REGION
