"""
Low-level utility functions for the GPS tracking coordinator.

Responsibilities:
- Fetch elevation data from the Open-Meteo HTTP API.
- Build immutable TrackingSnapshot copies from a TrackingSession.

No HA imports; these functions are pure data / network primitives.
"""
from __future__ import annotations

import asyncio
import logging

import aiohttp

from .const import ELEVATION_API_URL, ELEVATION_REQUEST_TIMEOUT
from .coordinator_data import TrackingSnapshot
from .session import TrackingSession

_LOGGER = logging.getLogger(__name__)


async def fetch_elevation(lat: float, lng: float) -> float | None:
    """
    Fetch elevation (metres) from the Open-Meteo API for the given coordinates.

    Rounds lat/lng to ~1 m precision to improve remote cache hit rate.
    Returns None on any error so callers can handle the absence gracefully.
    """
    rounded_lat = round(lat, 5)
    rounded_lng = round(lng, 5)
    params = {"latitude": rounded_lat, "longitude": rounded_lng}
    headers = {"accept": "application/json"}
    timeout = aiohttp.ClientTimeout(total=ELEVATION_REQUEST_TIMEOUT)

    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(ELEVATION_API_URL, headers=headers, params=params) as resp:
                if resp.status != 200:
                    _LOGGER.warning(
                        "Elevation API returned HTTP %s for (%.5f, %.5f)",
                        resp.status, rounded_lat, rounded_lng,
                    )
                    return None
                raw = await resp.json()
    except asyncio.TimeoutError:
        _LOGGER.warning(
            "Timeout fetching elevation for (%.5f, %.5f)", rounded_lat, rounded_lng
        )
        return None
    except aiohttp.ClientError as exc:
        _LOGGER.warning(
            "Error fetching elevation for (%.5f, %.5f): %s",
            rounded_lat, rounded_lng, exc,
        )
        return None

    if raw and raw.get("elevation"):
        return raw["elevation"][0]

    _LOGGER.warning(
        "Unexpected elevation response for (%.5f, %.5f): %s",
        rounded_lat, rounded_lng, raw,
    )
    return None


def build_snapshot(session: TrackingSession, last_error: str | None = None) -> TrackingSnapshot:
    """Read everything entities need from the session into a fresh snapshot."""
    return TrackingSnapshot(
        status=session.get_status(),
        last_location=session.last_location,
        statistics=session.statistics(),
        config=session.config,
        dropped_samples=session.dropped_samples,
        permissions=session.permissions,
        last_error=last_error,
    )
