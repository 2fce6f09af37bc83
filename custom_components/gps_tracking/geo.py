"""Geodesy helpers (no external dependencies)."""
from __future__ import annotations

import math

from .const import EARTH_RADIUS_M


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute the great-circle distance in metres between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in metres.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def calculate_speed(
    lat1: float, lon1: float, timestamp1: int,
    lat2: float, lon2: float, timestamp2: int,
) -> float:
    """Average speed in m/s between two timestamped points (epoch ms)."""
    elapsed_s = (timestamp2 - timestamp1) / 1000.0
    if elapsed_s <= 0:
        return 0.0
    return haversine_m(lat1, lon1, lat2, lon2) / elapsed_s


def format_coordinates(latitude: float, longitude: float, precision: int = 6) -> str:
    return f"{latitude:.{precision}f}, {longitude:.{precision}f}"


def mps_to_kmh(speed_mps: float) -> float:
    return speed_mps * 3.6


def mps_to_mph(speed_mps: float) -> float:
    return speed_mps * 2.237
