"""Geospatial helpers for nearest-first store search."""

import math

from storefinder.services.errors import InvalidQueryError

# Mean Earth radius in meters
EARTH_RADIUS_M = 6371000.0


def parse_point(lng: object, lat: object) -> tuple[float, float]:
    """Validate a (longitude, latitude) pair.

    Accepts numbers or numeric strings (query parameters).

    Raises:
        InvalidQueryError: If either value is non-numeric or out of range.
    """
    try:
        lng_f = float(lng)  # type: ignore[arg-type]
        lat_f = float(lat)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidQueryError(
            "Coordinates must be numeric",
            detail={"lng": str(lng), "lat": str(lat)},
        ) from None

    if not (math.isfinite(lng_f) and math.isfinite(lat_f)):
        raise InvalidQueryError("Coordinates must be finite", detail={"lng": str(lng), "lat": str(lat)})
    if not -180.0 <= lng_f <= 180.0:
        raise InvalidQueryError("Longitude must be within [-180, 180]", detail={"lng": lng_f})
    if not -90.0 <= lat_f <= 90.0:
        raise InvalidQueryError("Latitude must be within [-90, 90]", detail={"lat": lat_f})
    return lng_f, lat_f


def parse_max_distance(max_distance: object) -> float:
    """Validate a search radius in meters."""
    try:
        value = float(max_distance)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidQueryError("maxDistance must be numeric", detail={"maxDistance": str(max_distance)}) from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidQueryError("maxDistance must be a positive number", detail={"maxDistance": str(max_distance)})
    return value


def haversine_m(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """Numerically stable Haversine distance in meters."""
    rlat1, rlng1 = math.radians(lat1), math.radians(lng1)
    rlat2, rlng2 = math.radians(lat2), math.radians(lng2)
    dlat = rlat2 - rlat1
    dlng = rlng2 - rlng1
    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlng / 2) ** 2
    c = 2 * math.asin(min(1.0, math.sqrt(a)))
    return EARTH_RADIUS_M * c
