#Purpose: Great-circle distance between two coordinates.
#Used by the pricing engine (distance back-fill) and by the CLOSEST matching
#strategy (driver -> pickup). Pure function, no state.

import math

EARTH_RADIUS_MILES = 3958.8


def distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Haversine distance in miles between (lat1, lng1) and (lat2, lng2).

    Callers guarantee finite coordinates; NaN input propagates as NaN.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_MILES * c
