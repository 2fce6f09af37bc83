"""
Platform for the tracked position.
Shows the last location sample accepted by the tracking session.
"""
from __future__ import annotations

import logging

from homeassistant import config_entries
from homeassistant.components.device_tracker import SourceType
from homeassistant.components.device_tracker.config_entry import TrackerEntity
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .coordinator import GpsTrackingCoordinator
from .geo import format_coordinates

_LOGGER = logging.getLogger(__name__)


class GpsTrackingPosition(CoordinatorEntity[GpsTrackingCoordinator], TrackerEntity):
    """
    Position of the tracked source.
    Takes the data from the coordinator snapshot; None until the first accepted sample.
    """

    def __init__(self, coordinator: GpsTrackingCoordinator) -> None:
        super().__init__(coordinator)
        guid = coordinator.entry_data["guid"]
        self._attr_unique_id = f"gps_tracking_{guid}_gps"
        self._attr_name = f"{coordinator.get_device_info()['name']} Location"
        self._attr_icon = "mdi:map-marker"

    @property
    def device_info(self) -> DeviceInfo | None:
        return self.coordinator.get_device_info()

    @property
    def latitude(self) -> float | None:
        """Return latitude value of the device."""
        location = self.coordinator.data.last_location
        return location.latitude if location is not None else None

    @property
    def longitude(self) -> float | None:
        """Return longitude value of the device."""
        location = self.coordinator.data.last_location
        return location.longitude if location is not None else None

    @property
    def location_accuracy(self) -> int:
        location = self.coordinator.data.last_location
        return int(round(location.accuracy)) if location is not None else 0

    @property
    def source_type(self) -> SourceType:
        """Return the source type, eg gps or router, of the device."""
        return SourceType.GPS

    @property
    def extra_state_attributes(self) -> dict:
        location = self.coordinator.data.last_location
        if location is None:
            return {}
        return {
            "altitude": location.altitude,
            "speed": location.speed,
            "bearing": location.bearing,
            "timestamp": location.timestamp,
            "coordinates": format_coordinates(location.latitude, location.longitude),
        }


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add the position tracker for passed config_entry in HA."""
    coordinator: GpsTrackingCoordinator = config_entry.runtime_data
    async_add_entities([GpsTrackingPosition(coordinator)])
