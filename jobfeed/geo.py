"""Great-circle distance helpers."""

import math
from typing import Optional

# Mean earth radius used by PostgreSQL's earthdistance point operator.
EARTH_RADIUS_MILES = 3958.747716


def great_circle_miles(
    lat1: Optional[float],
    lng1: Optional[float],
    lat2: Optional[float],
    lng2: Optional[float],
) -> Optional[float]:
    """
    Haversine distance in statute miles between two points.

    Returns None when any coordinate is missing, so it behaves like a SQL
    expression over nullable columns when registered as a SQLite function.
    """
    if lat1 is None or lng1 is None or lat2 is None or lng2 is None:
        return None

    phi1 = math.radians(float(lat1))
    phi2 = math.radians(float(lat2))
    dphi = abs(phi1 - phi2)
    dlambda = abs(math.radians(float(lng1)) - math.radians(float(lng2)))
    if dlambda > math.pi:
        dlambda = 2 * math.pi - dlambda

    sino = math.sqrt(
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_MILES * math.asin(min(sino, 1.0))
