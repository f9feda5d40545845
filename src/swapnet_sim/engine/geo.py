"""Geo helpers — great-circle distance and map-position conversion.

Pure functions, no state.  Map positions are percentages (0–100) of the
Delhi NCR bounding box, matching what the map collaborator renders.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from swapnet_sim.models.network import GeoPosition, Position

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Bounds:
    north: float
    south: float
    east: float
    west: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east


DELHI_NCR_BOUNDS = Bounds(north=28.88, south=28.35, east=77.55, west=76.85)


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points (km)."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_km(a: GeoPosition, b: GeoPosition) -> float:
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def percent_to_geo(x: float, y: float, bounds: Bounds = DELHI_NCR_BOUNDS) -> GeoPosition:
    lat = bounds.north - (y / 100.0) * (bounds.north - bounds.south)
    lng = bounds.west + (x / 100.0) * (bounds.east - bounds.west)
    return GeoPosition(lat=lat, lng=lng)


def geo_to_percent(lat: float, lng: float, bounds: Bounds = DELHI_NCR_BOUNDS) -> Position:
    """Inverse of :func:`percent_to_geo`, clamped to 5–95 so markers stay on the map."""
    x = (lng - bounds.west) / (bounds.east - bounds.west) * 100.0
    y = (bounds.north - lat) / (bounds.north - bounds.south) * 100.0
    return Position(x=min(95.0, max(5.0, x)), y=min(95.0, max(5.0, y)))


def offset_km(origin: GeoPosition, east_km: float, north_km: float) -> GeoPosition:
    """Move ``origin`` by a small planar offset (equirectangular approximation)."""
    d_lat = math.degrees(north_km / EARTH_RADIUS_KM)
    d_lng = math.degrees(east_km / (EARTH_RADIUS_KM * math.cos(math.radians(origin.lat))))
    lat = min(90.0, max(-90.0, origin.lat + d_lat))
    lng = min(180.0, max(-180.0, origin.lng + d_lng))
    return GeoPosition(lat=lat, lng=lng)


def interpolate(a: GeoPosition, b: GeoPosition, fraction: float) -> GeoPosition:
    """Point ``fraction`` of the way from ``a`` to ``b`` (linear in lat/lng)."""
    f = min(1.0, max(0.0, fraction))
    return GeoPosition(lat=a.lat + (b.lat - a.lat) * f, lng=a.lng + (b.lng - a.lng) * f)
