from __future__ import annotations

import math
from decimal import Decimal

from core.errors import ValidationError
from core.utils import TWOPLACES, d

from ..dataclasses import Coordinates

EARTH_RADIUS_KM = 6371.0


def haversine_km(origin: Coordinates, destination: Coordinates) -> Decimal:
    """Great-circle distance in kilometres, rounded to 0.01."""
    for label, point in (("origin", origin), ("destination", destination)):
        if not (-90 <= point.latitude <= 90) or not (-180 <= point.longitude <= 180):
            raise ValidationError(f"Invalid {label} coordinates ({point.latitude}, {point.longitude})")

    lat1 = math.radians(float(origin.latitude))
    lat2 = math.radians(float(destination.latitude))
    dlat = math.radians(float(destination.latitude - origin.latitude))
    dlng = math.radians(float(destination.longitude - origin.longitude))

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return d(round(EARTH_RADIUS_KM * c, 2)).quantize(TWOPLACES)
