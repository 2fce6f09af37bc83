"""
Platform for the tracking switch.
Turning the switch on starts the tracking session, turning it off stops it.
"""
from __future__ import annotations

import logging

from homeassistant import config_entries
from homeassistant.components.switch import SwitchDeviceClass, SwitchEntity
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .coordinator import GpsTrackingCoordinator
from .exceptions import TrackingError

_LOGGER = logging.getLogger(__name__)


class GpsTrackingSwitch(CoordinatorEntity[GpsTrackingCoordinator], SwitchEntity):
    """
    Start/stop switch for one tracking session.
    State comes from the coordinator snapshot, never from the last command.
    """

    _attr_device_class = SwitchDeviceClass.SWITCH

    def __init__(self, coordinator: GpsTrackingCoordinator) -> None:
        super().__init__(coordinator)
        guid = coordinator.entry_data["guid"]
        self._attr_unique_id = f"gps_tracking_{guid}_switch"
        self._attr_name = f"{coordinator.get_device_info()['name']} Tracking"

    @property
    def device_info(self) -> DeviceInfo | None:
        return self.coordinator.get_device_info()

    @property
    def icon(self) -> str | None:
        return "mdi:crosshairs-gps" if self.is_on else "mdi:crosshairs-off"

    @property
    def is_on(self) -> bool:
        return self.coordinator.data.status.is_tracking

    @property
    def extra_state_attributes(self) -> dict:
        data = self.coordinator.data
        attrs = {
            "state": data.status.state.value,
            "permissions": {scope.value: status.value for scope, status in data.permissions.items()},
        }
        if data.last_error:
            attrs["last_error"] = data.last_error
        return attrs

    async def async_turn_on(self, **kwargs) -> None:
        """Start tracking."""
        try:
            await self.coordinator.async_start_tracking()
        except TrackingError as exc:
            _LOGGER.error("Could not start tracking: %s", exc)
            raise HomeAssistantError(f"Could not start tracking: {exc}") from exc

    async def async_turn_off(self, **kwargs) -> None:
        """Stop tracking."""
        try:
            await self.coordinator.async_stop_tracking()
        except TrackingError as exc:
            _LOGGER.error("Could not stop tracking: %s", exc)
            raise HomeAssistantError(f"Could not stop tracking: {exc}") from exc


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add the tracking switch for passed config_entry in HA."""
    coordinator: GpsTrackingCoordinator = config_entry.runtime_data
    async_add_entities([GpsTrackingSwitch(coordinator)])
