"""
Spherical geometry helpers for the tour geo endpoints.

Coordinates follow GeoJSON order: [lng, lat]. Distances are computed on a
sphere with the equatorial radius (6378.1 km) so that radius-in-radians
filters and metre distances agree with each other.
"""
import math

from natours.core.errors import BadRequestError

EARTH_RADIUS_MI = 3963.2
EARTH_RADIUS_KM = 6378.1
EARTH_RADIUS_M = EARTH_RADIUS_KM * 1000

# metres -> unit
DISTANCE_MULTIPLIER = {"mi": 0.000621371, "km": 0.001}
RADIUS_DIVISOR = {"mi": EARTH_RADIUS_MI, "km": EARTH_RADIUS_KM}

LATLNG_MESSAGE = "Please provide latitude and longitude in the format lat,lng."


def parse_latlng(latlng: str) -> tuple[float, float]:
    """'34.1,-118.1' -> (lat, lng)."""
    parts = (latlng or "").split(",")
    if len(parts) != 2:
        raise BadRequestError(LATLNG_MESSAGE)
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        raise BadRequestError(LATLNG_MESSAGE)
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise BadRequestError(LATLNG_MESSAGE)
    return lat, lng


def check_unit(unit: str) -> str:
    if unit not in RADIUS_DIVISOR:
        raise BadRequestError("Unit must be either mi or km.")
    return unit


def radius_in_radians(distance: float, unit: str) -> float:
    return distance / RADIUS_DIVISOR[check_unit(unit)]


def angular_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in radians (haversine)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * math.asin(min(1.0, math.sqrt(a)))


def point_lat_lng(point: dict | None) -> tuple[float, float] | None:
    """GeoJSON point -> (lat, lng), or None when the point has no coordinates."""
    if not point:
        return None
    coords = point.get("coordinates") or []
    if len(coords) != 2:
        return None
    lng, lat = coords
    return float(lat), float(lng)


def within_radius(point: dict | None, lat: float, lng: float, radians: float) -> bool:
    located = point_lat_lng(point)
    if located is None:
        return False
    return angular_distance(lat, lng, *located) <= radians


def distance_in_unit(point: dict, lat: float, lng: float, unit: str) -> float:
    metres = angular_distance(lat, lng, *point_lat_lng(point)) * EARTH_RADIUS_M
    return metres * DISTANCE_MULTIPLIER[check_unit(unit)]
