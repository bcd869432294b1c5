"""Map helpers — public pins as GeoJSON and the initial map view.

Only public (fuzzed) locations ever leave through these helpers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reporter.core.models import LocationData, Report

# Map view used when there is nothing to show.
DEFAULT_CENTER = (5.55, -0.1969)
DEFAULT_ZOOM = 12
SINGLE_POINT_ZOOM = 15

# Bounds padding, in degrees, around several points.
BOUNDS_PADDING_DEG = 0.002


def format_km(meters: float) -> str:
    return f"{meters / 1000:.2f} km"


def report_to_feature(report: Report) -> dict:
    pin = report.public_location
    return {
        "type": "Feature",
        "geometry": {
            "type": "Point",
            "coordinates": [round(pin.lon, 6), round(pin.lat, 6)],
        },
        "properties": {
            "id": report.id,
            "category": report.category,
            "status": report.status.value,
            "blur_radius_m": report.blur_radius_m,
            "created_at": report.created_at.isoformat(),
        },
    }


def public_feature_collection(reports: list[Report] | tuple[Report, ...]) -> dict:
    """Convert reports to a GeoJSON FeatureCollection of their public pins."""
    return {
        "type": "FeatureCollection",
        "features": [report_to_feature(r) for r in reports],
    }


def fit_view(points: list[LocationData]) -> dict:
    """Initial map view for a set of points.

    Nothing: default center. One point: centered on it. Several: padded bounds.
    """
    if not points:
        return {"center": list(DEFAULT_CENTER), "zoom": DEFAULT_ZOOM}
    if len(points) == 1:
        return {"center": [points[0].lat, points[0].lon], "zoom": SINGLE_POINT_ZOOM}

    lats = [p.lat for p in points]
    lons = [p.lon for p in points]
    return {
        "bounds": [
            [min(lats) - BOUNDS_PADDING_DEG, min(lons) - BOUNDS_PADDING_DEG],
            [max(lats) + BOUNDS_PADDING_DEG, max(lons) + BOUNDS_PADDING_DEG],
        ],
    }
