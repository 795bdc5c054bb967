"""Great-circle distance."""

from __future__ import annotations

import math

from pyfleetdebug._constants import EARTH_RADIUS_M
from pyfleetdebug.models._base import LatLng


def haversine_m(start: LatLng, end: LatLng) -> float:
    """Distance in meters between two coordinates on a spherical earth."""
    lat1 = math.radians(start.latitude)
    lat2 = math.radians(end.latitude)
    d_lat = lat2 - lat1
    d_lng = math.radians(end.longitude - start.longitude)
    a = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))
