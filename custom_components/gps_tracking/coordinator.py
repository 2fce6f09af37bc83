"""
DataUpdateCoordinator for the GPS tracking integration.

Responsibilities:
- Own the LocationProvider and TrackingSession for the lifetime of a config entry.
- Translate config entry data/options into a normalized TrackingConfig.
- Push TrackingSnapshot copies to entities as soon as the session reports an
  accepted sample, a status change or a provider failure.
- Refresh the snapshot every STATUS_REFRESH_INTERVAL seconds so duration and
  average-speed sensors keep moving between samples.
"""
from __future__ import annotations

import dataclasses
import logging
from datetime import timedelta
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .const import (
    CONF_ALLOW_BACKGROUND,
    CONF_ENTRY_NAME,
    CONF_FETCH_ELEVATION,
    CONF_PRESET,
    CONF_SOURCE_ENTITY,
    DOMAIN,
    PRESET_CUSTOM,
    STATUS_REFRESH_INTERVAL,
    TRACKING_CONFIG_KEYS,
    TRACKING_PRESETS,
    VERSION,
)
from .coordinator_data import TrackingSnapshot
from .coordinator_utils import build_snapshot
from .entity_provider import EntityLocationProvider
from .exceptions import ProviderFailure
from .models import LocationSample, TrackingConfig, TrackingStatus
from .provider import LocationProvider
from .session import TrackingSession
from .validation import normalize_config

_LOGGER = logging.getLogger(__name__)


def tracking_config_from_entry(entry_data: dict, options: dict | None = None) -> TrackingConfig:
    """
    Effective TrackingConfig for a config entry.

    A named preset supplies the values; with the custom preset the entry's
    own fields do.  Options override data.  The result is always normalized.
    """
    merged = {**entry_data, **(options or {})}
    preset = merged.get(CONF_PRESET, PRESET_CUSTOM)
    if preset != PRESET_CUSTOM and preset in TRACKING_PRESETS:
        return normalize_config(TRACKING_PRESETS[preset])
    return normalize_config({key: merged.get(key) for key in TRACKING_CONFIG_KEYS})


class GpsTrackingCoordinator(DataUpdateCoordinator[TrackingSnapshot]):
    """
    Coordinator for one tracked source.

    The session pushes events; the coordinator turns each one into a new
    snapshot via async_set_updated_data().
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry_data: dict,
        options: dict | None = None,
        provider: LocationProvider | None = None,
    ) -> None:
        """Initialize the coordinator from config-entry data."""
        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            update_interval=timedelta(seconds=STATUS_REFRESH_INTERVAL),
        )
        self._entry_data = entry_data
        self._options = dict(options or {})

        if provider is None:
            provider = EntityLocationProvider(
                hass,
                entry_data[CONF_SOURCE_ENTITY],
                allow_background=self._option(CONF_ALLOW_BACKGROUND, False),
                fetch_elevation=self._option(CONF_FETCH_ELEVATION, False),
            )
        self.provider = provider
        self.session = TrackingSession(provider)
        self._last_error: str | None = None

        self._subscriptions = [
            self.session.subscribe_locations(self._handle_location),
            self.session.subscribe_status(self._handle_status),
            self.session.subscribe_failures(self._handle_failure),
            self.session.subscribe_dropped(self._handle_dropped),
        ]

        # Snapshot starts empty; entities must handle missing locations
        self.data = TrackingSnapshot(config=self.tracking_config)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def _option(self, key: str, default: Any = None) -> Any:
        if key in self._options:
            return self._options[key]
        return self._entry_data.get(key, default)

    @property
    def tracking_config(self) -> TrackingConfig:
        return tracking_config_from_entry(self._entry_data, self._options)

    @property
    def entry_data(self):
        return self._entry_data

    # ------------------------------------------------------------------
    # HA entry point
    # ------------------------------------------------------------------

    async def _async_update_data(self) -> TrackingSnapshot:
        """Periodic refresh: re-read status and statistics from the session."""
        return build_snapshot(self.session, self._last_error)

    # ------------------------------------------------------------------
    # Commands (called from switch.py and the options listener)
    # ------------------------------------------------------------------

    async def async_start_tracking(self) -> TrackingStatus:
        """Start the session with the entry's config; errors propagate to the caller."""
        status = await self.session.async_start(self.tracking_config, auto_normalize=True)
        self._last_error = None
        self.async_set_updated_data(build_snapshot(self.session))
        return status

    async def async_stop_tracking(self) -> TrackingStatus:
        status = await self.session.async_stop()
        self.async_set_updated_data(build_snapshot(self.session, self._last_error))
        return status

    async def async_update_tracking_config(self, options: dict) -> TrackingConfig:
        """
        Apply new entry options.

        A running session picks up the new interval without restarting.
        """
        self._options = dict(options)
        if isinstance(self.provider, EntityLocationProvider):
            self.provider.allow_background = self._option(CONF_ALLOW_BACKGROUND, False)
            self.provider.fetch_elevation = self._option(CONF_FETCH_ELEVATION, False)

        config = await self.session.async_update_config(self.tracking_config, auto_normalize=True)
        self.async_set_updated_data(
            dataclasses.replace(build_snapshot(self.session, self._last_error), config=config)
        )
        return config

    # ------------------------------------------------------------------
    # Session events
    # ------------------------------------------------------------------

    def _handle_location(self, sample: LocationSample) -> None:
        self.async_set_updated_data(
            dataclasses.replace(
                self.data,
                last_location=sample,
                statistics=self.session.statistics(),
                dropped_samples=self.session.dropped_samples,
            )
        )

    def _handle_dropped(self, sample: LocationSample) -> None:
        self.async_set_updated_data(
            dataclasses.replace(self.data, dropped_samples=self.session.dropped_samples)
        )

    def _handle_status(self, status: TrackingStatus) -> None:
        self.async_set_updated_data(
            dataclasses.replace(
                self.data,
                status=status,
                config=self.session.config or self.data.config,
                permissions=self.session.permissions,
            )
        )

    def _handle_failure(self, failure: ProviderFailure) -> None:
        self._last_error = str(failure)
        _LOGGER.warning("Tracking for %s interrupted: %s", self._entry_data.get(CONF_SOURCE_ENTITY), failure)
        self.async_set_updated_data(build_snapshot(self.session, self._last_error))

    # ------------------------------------------------------------------
    # Entity helper: device info dict
    # ------------------------------------------------------------------

    def get_device_info(self) -> dict:
        """Return the HA DeviceInfo dict for this tracked source."""
        return {
            "identifiers": {(DOMAIN, self._entry_data["guid"])},
            "name": self._entry_data.get(CONF_ENTRY_NAME) or self._entry_data[CONF_SOURCE_ENTITY],
            "manufacturer": "GPS Tracking",
            "model": "Tracking session",
            "sw_version": VERSION,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_shutdown(self) -> None:
        """Clean up all resources owned by this coordinator."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        await self.session.async_shutdown()
        await self.provider.async_shutdown()
        await super().async_shutdown()
