"""Geo-privacy engine — distances and fuzzed public locations.

The public pin of a report is sampled once, at creation, somewhere between
half the blur radius and the full blur radius away from the true point, along
a random bearing. Sampling closer than half the radius would leak precision.
"""

from __future__ import annotations

import math
import random

from reporter.core.errors import InvalidLocation
from reporter.core.models import LocationData

# Earth radius in meters (for Haversine and the direct geodesic).
_EARTH_R = 6_371_000.0

# Largest blur radius a report may carry, in meters.
MAX_BLUR_RADIUS_M = 2000


def validate_location(point: LocationData) -> LocationData:
    """Reject non-finite or out-of-range coordinates."""
    if not (math.isfinite(point.lat) and math.isfinite(point.lon)):
        raise InvalidLocation(f"non-finite coordinates: {point.lat!r}, {point.lon!r}")
    if not -90.0 <= point.lat <= 90.0:
        raise InvalidLocation(f"latitude out of range: {point.lat}")
    if not -180.0 <= point.lon <= 180.0:
        raise InvalidLocation(f"longitude out of range: {point.lon}")
    if point.accuracy_m is not None and not (
        math.isfinite(point.accuracy_m) and point.accuracy_m >= 0
    ):
        raise InvalidLocation(f"invalid accuracy: {point.accuracy_m!r}")
    return point


def distance_m(a: LocationData, b: LocationData) -> float:
    """Great-circle distance in meters between two points."""
    rlat1, rlat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlon = math.radians(b.lon - a.lon)
    h = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    return 2 * _EARTH_R * math.asin(min(1.0, math.sqrt(h)))


def destination(origin: LocationData, distance: float, bearing_rad: float) -> LocationData:
    """Project ``origin`` along a bearing (radians, 0 = north) for ``distance`` meters."""
    lat = math.radians(origin.lat)
    lon = math.radians(origin.lon)
    angular = distance / _EARTH_R

    dest_lat = math.asin(
        math.sin(lat) * math.cos(angular)
        + math.cos(lat) * math.sin(angular) * math.cos(bearing_rad)
    )
    dest_lon = lon + math.atan2(
        math.sin(bearing_rad) * math.sin(angular) * math.cos(lat),
        math.cos(angular) - math.sin(lat) * math.sin(dest_lat),
    )

    lon_deg = (math.degrees(dest_lon) + 540.0) % 360.0 - 180.0
    return LocationData(lat=math.degrees(dest_lat), lon=lon_deg)


def clamp_radius(value: float) -> int:
    """Clamp a requested blur radius to [0, MAX_BLUR_RADIUS_M] meters.

    Infinities clamp like any other out-of-range value. NaN raises ValueError.
    """
    if math.isnan(value):
        raise ValueError("blur radius is NaN")
    return int(max(0, min(MAX_BLUR_RADIUS_M, value)))


def sample_offset(
    origin: LocationData,
    blur_radius_m: float,
    rng: random.Random | None = None,
) -> LocationData:
    """Sample a public location within ``blur_radius_m`` of ``origin``.

    Returns ``origin`` unchanged when the radius is zero or negative.
    """
    validate_location(origin)
    if blur_radius_m <= 0:
        return origin

    rng = rng or random.Random()
    bearing = rng.random() * 2 * math.pi
    distance = rng.uniform(max(1.0, blur_radius_m / 2), blur_radius_m)
    return destination(origin, distance, bearing)
