"""Geodesic helpers for movement analysis.

Movement is gated on a coarse degree delta and reported as haversine
distance in nautical miles; both live here so they can be tested apart.
"""
from __future__ import annotations

import math

_EARTH_RADIUS_NM: float = 3440.065   # Earth mean radius in nautical miles


def haversine_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in nautical miles between two WGS-84 coordinates."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return _EARTH_RADIUS_NM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def max_coordinate_delta(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Largest absolute change in latitude or longitude, in degrees."""
    return max(abs(lat2 - lat1), abs(lon2 - lon1))
