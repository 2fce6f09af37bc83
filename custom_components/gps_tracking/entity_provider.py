"""
EntityLocationProvider: LocationProvider backed by another Home Assistant
entity (typically a companion-app device_tracker).

Every state change of the source entity that moved at least the configured
distance filter becomes one raw LocationSample; the tracking session decides
what to keep.  When the source is removed or becomes unavailable the provider
stops following it before reporting the failure.

Home Assistant has no permission dialogs, so permissions are derived from
the source entity:

    source missing                → denied
    source unavailable / unknown  → pending (no report yet)
    otherwise                     → foreground granted; background granted
                                    only when the entry allows it, else restricted
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import time

from homeassistant.const import (
    ATTR_GPS_ACCURACY,
    ATTR_LATITUDE,
    ATTR_LONGITUDE,
    STATE_UNAVAILABLE,
    STATE_UNKNOWN,
)
from homeassistant.core import Event, HomeAssistant, State, callback
from homeassistant.helpers.event import async_track_state_change_event

from .const import MIN_ELEVATION_DISTANCE, MIN_ELEVATION_UPDATE_DELAY
from .coordinator_utils import fetch_elevation as _fetch_elevation_http
from .exceptions import ProviderFailure
from .geo import haversine_m
from .models import LocationSample, PermissionScope, PermissionStatus, TrackingConfig
from .provider import LocationProvider

_LOGGER = logging.getLogger(__name__)

ATTR_ALTITUDE = "altitude"
ATTR_SPEED = "speed"
ATTR_COURSE = "course"
ATTR_BEARING = "bearing"

_NO_REPORT_STATES = (STATE_UNAVAILABLE, STATE_UNKNOWN)


def _non_negative(value) -> float:
    """Platforms report -1 for "no value"; treat any negative as 0."""
    if value is None:
        return 0.0
    value = float(value)
    return value if value >= 0 else 0.0


def state_to_sample(state: State) -> LocationSample | None:
    """
    Convert a source entity state into a raw sample.

    Returns None when the state carries no usable coordinates.  Missing
    accuracy is passed through as 0 so the session rejects the fix.
    """
    attrs = state.attributes
    if attrs.get(ATTR_LATITUDE) is None or attrs.get(ATTR_LONGITUDE) is None:
        return None

    try:
        return LocationSample(
            latitude=float(attrs[ATTR_LATITUDE]),
            longitude=float(attrs[ATTR_LONGITUDE]),
            altitude=float(attrs.get(ATTR_ALTITUDE) or 0.0),
            accuracy=float(attrs.get(ATTR_GPS_ACCURACY) or 0.0),
            speed=_non_negative(attrs.get(ATTR_SPEED)),
            bearing=_non_negative(attrs.get(ATTR_COURSE, attrs.get(ATTR_BEARING))),
            timestamp=int(state.last_updated.timestamp() * 1000),
        )
    except (TypeError, ValueError) as exc:
        _LOGGER.debug("Ignoring malformed location state of %s: %s", state.entity_id, exc)
        return None


class EntityLocationProvider(LocationProvider):
    """Follows a source entity's location attributes."""

    def __init__(
        self,
        hass: HomeAssistant,
        source_entity_id: str,
        allow_background: bool = False,
        fetch_elevation: bool = False,
    ) -> None:
        super().__init__()
        self.hass = hass
        self.source_entity_id = source_entity_id
        self.allow_background = allow_background
        self.fetch_elevation = fetch_elevation

        self._config: TrackingConfig | None = None
        self._last_emitted: LocationSample | None = None
        self._unsub_state = None
        self._tasks: set[asyncio.Task] = set()
        # Keeps samples in arrival order when an elevation lookup is in flight
        self._lock = asyncio.Lock()

        # Elevation cache
        self._last_elevation: float | None = None
        self._last_elevation_fetch: float = 0.0
        self._last_elevation_pos: tuple[float, float] | None = None

    @property
    def emitting(self) -> bool:
        return self._unsub_state is not None

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def query_permission(self, scope: PermissionScope) -> PermissionStatus:
        state = self.hass.states.get(self.source_entity_id)
        if state is None:
            return PermissionStatus.DENIED
        if state.state in _NO_REPORT_STATES:
            return PermissionStatus.PENDING
        if scope == PermissionScope.BACKGROUND and not self.allow_background:
            return PermissionStatus.RESTRICTED
        return PermissionStatus.GRANTED

    async def async_request_permission(self, scope: PermissionScope) -> PermissionStatus:
        # Nothing to prompt for; the answer is whatever the source reports now.
        return self.query_permission(scope)

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    async def async_start_emitting(self, config: TrackingConfig) -> None:
        state = self.hass.states.get(self.source_entity_id)
        if state is None:
            raise ProviderFailure(f"Source entity {self.source_entity_id} not found")

        self._config = config
        self._last_emitted = None
        if self._unsub_state is None:
            self._unsub_state = async_track_state_change_event(
                self.hass, [self.source_entity_id], self._async_state_changed
            )
        _LOGGER.debug("Following %s for location updates", self.source_entity_id)

        # The current state is the first fix
        self._schedule_sample(state)

    async def async_stop_emitting(self) -> None:
        self._release_source()
        await self._async_cancel_tasks()
        _LOGGER.debug("Stopped following %s", self.source_entity_id)

    async def async_apply_config(self, config: TrackingConfig) -> None:
        self._config = config

    async def async_get_current_location(self) -> LocationSample | None:
        state = self.hass.states.get(self.source_entity_id)
        if state is None or state.state in _NO_REPORT_STATES:
            return None
        return await self._async_build_sample(state)

    async def async_shutdown(self) -> None:
        await self.async_stop_emitting()
        await super().async_shutdown()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @callback
    def _async_state_changed(self, event: Event) -> None:
        new_state = event.data.get("new_state")
        if new_state is None:
            self._release_source()
            self._emit_failure(ProviderFailure(f"Source entity {self.source_entity_id} was removed"))
            return
        if new_state.state == STATE_UNAVAILABLE:
            self._release_source()
            self._emit_failure(ProviderFailure(f"Source entity {self.source_entity_id} became unavailable"))
            return
        self._schedule_sample(new_state)

    @callback
    def _release_source(self) -> None:
        """Drop the state listener and cancel pending state processing."""
        if self._unsub_state is not None:
            self._unsub_state()
            self._unsub_state = None
        current = asyncio.current_task()
        for task in self._tasks:
            if task is not current:
                task.cancel()

    def _schedule_sample(self, state: State) -> None:
        task = self.hass.async_create_task(self._async_process_state(state))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _async_process_state(self, state: State) -> None:
        async with self._lock:
            sample = await self._async_build_sample(state)
        if sample is None:
            _LOGGER.debug("State of %s carries no location", self.source_entity_id)
            return
        if not self.emitting:
            return
        if not self._moved_enough(sample):
            _LOGGER.debug("%s moved less than the distance filter, skipping", self.source_entity_id)
            return
        self._last_emitted = sample
        self._emit_sample(sample)

    def _moved_enough(self, sample: LocationSample) -> bool:
        last = self._last_emitted
        if last is None or self._config is None or self._config.distance_filter <= 0:
            return True
        moved = haversine_m(last.latitude, last.longitude, sample.latitude, sample.longitude)
        return moved >= self._config.distance_filter

    async def _async_build_sample(self, state: State) -> LocationSample | None:
        sample = state_to_sample(state)
        if sample is None:
            return None
        if self.fetch_elevation and state.attributes.get(ATTR_ALTITUDE) is None:
            elevation = await self._async_elevation_for(sample.latitude, sample.longitude)
            if elevation is not None:
                sample = dataclasses.replace(sample, altitude=float(elevation))
        return sample

    async def _async_elevation_for(self, lat: float, lng: float) -> float | None:
        """Cached elevation; re-fetched only after moving far enough, not too often."""
        now = time.monotonic()
        if self._last_elevation is not None and self._last_elevation_pos is not None:
            last_lat, last_lng = self._last_elevation_pos
            moved = (
                abs(lat - last_lat) >= MIN_ELEVATION_DISTANCE
                or abs(lng - last_lng) >= MIN_ELEVATION_DISTANCE
            )
            due = now - self._last_elevation_fetch >= MIN_ELEVATION_UPDATE_DELAY
            if not (moved and due):
                return self._last_elevation

        self._last_elevation_fetch = now
        self._last_elevation_pos = (lat, lng)
        elevation = await self._fetch_elevation(lat, lng)
        if elevation is not None:
            self._last_elevation = elevation
        return self._last_elevation

    async def _fetch_elevation(self, lat: float, lng: float) -> float | None:
        """Delegate to coordinator_utils.fetch_elevation (keeps HTTP logic low-level)."""
        return await _fetch_elevation_http(lat, lng)

    async def _async_cancel_tasks(self) -> None:
        current = asyncio.current_task()
        pending = [task for task in self._tasks if task is not current]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
