"""
Shared helpers and factory functions for tracking tests.
Import from this module in each test file to avoid duplication.
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

from custom_components.gps_tracking.coordinator import GpsTrackingCoordinator
from custom_components.gps_tracking.exceptions import ProviderFailure
from custom_components.gps_tracking.models import (
    LocationSample,
    PermissionScope,
    PermissionStatus,
    TrackingConfig,
)
from custom_components.gps_tracking.provider import LocationProvider


class FakeLocationProvider(LocationProvider):
    """
    In-memory provider: tests set permission answers and push samples by hand.

    query_statuses is what query_permission() reports; request_statuses is
    what a request round-trip returns (defaults to the query answer).
    """

    def __init__(self, foreground=PermissionStatus.GRANTED, background=PermissionStatus.GRANTED) -> None:
        super().__init__()
        self.query_statuses = {
            PermissionScope.FOREGROUND: foreground,
            PermissionScope.BACKGROUND: background,
        }
        self.request_statuses: dict[PermissionScope, PermissionStatus] = {}
        self.requested: list[PermissionScope] = []
        self.emitting = False
        self.started_with: list[TrackingConfig] = []
        self.applied: list[TrackingConfig] = []
        self.stop_calls = 0
        self.start_error: Exception | None = None
        self.stop_error: Exception | None = None
        self.apply_error: Exception | None = None
        self.current_location: LocationSample | None = None
        # When set, async_start_emitting waits on it before returning
        self.start_gate: asyncio.Event | None = None
        # When set, async_stop_emitting waits on it before stopping
        self.stop_gate: asyncio.Event | None = None

    def query_permission(self, scope: PermissionScope) -> PermissionStatus:
        return self.query_statuses[scope]

    async def async_request_permission(self, scope: PermissionScope) -> PermissionStatus:
        self.requested.append(scope)
        return self.request_statuses.get(scope, self.query_statuses[scope])

    async def async_start_emitting(self, config: TrackingConfig) -> None:
        if self.start_gate is not None:
            await self.start_gate.wait()
        if self.start_error is not None:
            raise self.start_error
        self.started_with.append(config)
        self.emitting = True

    async def async_stop_emitting(self) -> None:
        self.stop_calls += 1
        if self.stop_gate is not None:
            await self.stop_gate.wait()
        self.emitting = False
        if self.stop_error is not None:
            raise self.stop_error

    async def async_apply_config(self, config: TrackingConfig) -> None:
        if self.apply_error is not None:
            raise self.apply_error
        self.applied.append(config)

    async def async_get_current_location(self) -> LocationSample | None:
        return self.current_location

    def emit(self, sample: LocationSample) -> None:
        self._emit_sample(sample)

    def fail(self, message: str = "source lost") -> None:
        self.emitting = False
        self._emit_failure(ProviderFailure(message))


class FakeClock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_sample(lat: float = 52.52, lon: float = 13.405, timestamp: int = 1_700_000_000_000, **kwargs) -> LocationSample:
    defaults = dict(
        latitude=lat,
        longitude=lon,
        altitude=34.0,
        accuracy=5.0,
        speed=1.5,
        bearing=90.0,
        timestamp=timestamp,
    )
    defaults.update(kwargs)
    return LocationSample(**defaults)


def make_config(**kwargs) -> TrackingConfig:
    defaults = dict(interval_ms=5000, distance_filter=10, background_mode=False)
    defaults.update(kwargs)
    return TrackingConfig(**defaults)


def make_entry_data(**kwargs) -> dict:
    defaults = dict(
        guid="test-guid",
        entry_name="Test Tracker",
        source_entity="device_tracker.phone",
        preset="custom",
        interval_ms=5000,
        distance_filter=10,
        accuracy="high",
        background_mode=False,
        allow_background=False,
        notification_title="GPS Tracking Active",
        notification_message="Your location is being tracked",
        fetch_elevation=False,
    )
    defaults.update(kwargs)
    return defaults


def make_coordinator(hass=None, provider=None, options=None, **entry_kwargs) -> GpsTrackingCoordinator:
    """Build a coordinator with a mocked hass and a fake provider."""
    if hass is None:
        hass = MagicMock()
        hass.async_create_task = lambda coro: asyncio.ensure_future(coro)
    if provider is None:
        provider = FakeLocationProvider()
    return GpsTrackingCoordinator(hass, make_entry_data(**entry_kwargs), options, provider=provider)
