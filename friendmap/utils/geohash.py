"""
Geohash proximity utilities.

Two geohashes are treated as the same place when they share the first
``geohash_at_place_res`` characters. Radius containment is a two-phase
filter: a cheap prefix/neighbor test at a resolution whose cell size bounds
the radius, followed by an exact great-circle distance check.
"""

import logging
import math
from typing import Callable, List, Optional, Sequence, Tuple

import geohash2

from friendmap.config import settings

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371000
METERS_PER_MILE = 1609.344

DistanceFn = Callable[[float, float, float, float], float]


def encode(latitude: float, longitude: float, precision: int = 12) -> str:
    """Geohash a coordinate pair."""
    return geohash2.encode(latitude, longitude, precision)


def decode(hash_: str) -> Tuple[float, float]:
    """Return the centre point (latitude, longitude) of a geohash cell."""
    lat, lon, _, _ = geohash2.decode_exactly(hash_)
    return float(lat), float(lon)


def neighbors(hash_: str) -> List[str]:
    """The cells surrounding ``hash_`` at the same resolution.

    Longitude wraps around the antimeridian; rows beyond a pole are dropped,
    so cells touching a pole have fewer than 8 neighbors.
    """
    lat, lon, lat_err, lon_err = (float(v) for v in geohash2.decode_exactly(hash_))
    precision = len(hash_)
    result = []
    for d_lat in (-1, 0, 1):
        n_lat = lat + d_lat * 2 * lat_err
        if n_lat > 90 or n_lat < -90:
            continue
        for d_lon in (-1, 0, 1):
            if d_lat == 0 and d_lon == 0:
                continue
            n_lon = lon + d_lon * 2 * lon_err
            if n_lon > 180:
                n_lon -= 360
            elif n_lon < -180:
                n_lon += 360
            neighbor = encode(n_lat, n_lon, precision)
            if neighbor != hash_ and neighbor not in result:
                result.append(neighbor)
    return result


def are_close(hash_a: str, hash_b: str, resolution: Optional[int] = None) -> bool:
    """True if both geohashes fall in the same cell at ``resolution`` characters."""
    res = resolution if resolution is not None else settings.geohash_at_place_res
    return hash_a[:res] == hash_b[:res]


def common_prefix_length(hash_a: str, hash_b: str) -> int:
    """Length of the run of identical leading characters."""
    i = 0
    for a, b in zip(hash_a, hash_b):
        if a != b:
            break
        i += 1
    return i


def haversine_distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate haversine distance between two points."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def resolution_for_radius(
    radius_miles: float,
    radii: Optional[Sequence[Tuple[float, int]]] = None
) -> Optional[int]:
    """Resolution of the smallest configured radius that still covers ``radius_miles``."""
    table = radii if radii is not None else settings.geohash_radii
    best = None
    for radius, resolution in table:
        if radius >= radius_miles and (best is None or radius < best[0]):
            best = (radius, resolution)
    return best[1] if best else None


def is_within_radius(
    center: str,
    hash_: str,
    radius_miles: float,
    distance_fn: DistanceFn = haversine_distance_meters,
    radii: Optional[Sequence[Tuple[float, int]]] = None
) -> Optional[bool]:
    """Whether ``hash_`` lies within ``radius_miles`` of ``center``.

    Returns None when no configured resolution covers the radius; the caller
    should fall back to a supported value.
    """
    resolution = resolution_for_radius(radius_miles, radii)
    if resolution is None:
        logger.warning(f"Unsupported radius {radius_miles} miles for geohash containment")
        return None

    center_prefix = center[:resolution]
    hash_prefix = hash_[:resolution]

    possibly_within = (
        center_prefix == hash_prefix or
        hash_prefix in neighbors(center_prefix)
    )
    if not possibly_within:
        return False

    center_lat, center_lon = decode(center)
    lat, lon = decode(hash_)
    return distance_fn(center_lat, center_lon, lat, lon) <= radius_miles * METERS_PER_MILE
