"""
Platform for tracking statistics sensors.
This module sets up distance, speed, sample count, duration and dropped-sample
sensors and reads their state from the coordinator snapshot.
"""
from __future__ import annotations

import logging

from homeassistant import config_entries
from homeassistant.components.sensor import SensorDeviceClass, SensorEntity, SensorStateClass
from homeassistant.const import UnitOfLength, UnitOfSpeed, UnitOfTime
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .coordinator import GpsTrackingCoordinator
from .coordinator_data import TrackingSnapshot
from .geo import mps_to_kmh

_LOGGER = logging.getLogger(__name__)


class GpsTrackingSensor(CoordinatorEntity[GpsTrackingCoordinator], SensorEntity):
    """
    Base for sensors that read one value from the coordinator snapshot.
    Subclasses set the key/label and implement _value().
    """

    _key: str = ""
    _label: str = ""
    _attr_state_class = SensorStateClass.MEASUREMENT

    def __init__(self, coordinator: GpsTrackingCoordinator) -> None:
        super().__init__(coordinator)
        guid = coordinator.entry_data["guid"]
        self._attr_unique_id = f"gps_tracking_{guid}_{self._key}"
        self._attr_name = f"{coordinator.get_device_info()['name']} {self._label}"

    @property
    def device_info(self) -> DeviceInfo | None:
        return self.coordinator.get_device_info()

    @property
    def native_value(self):
        return self._value(self.coordinator.data)

    def _value(self, data: TrackingSnapshot):
        raise NotImplementedError


class GpsTrackingDistanceSensor(GpsTrackingSensor):
    """Distance covered in the current (or last) tracking session."""

    _key = "distance"
    _label = "Distance"
    _attr_icon = "mdi:map-marker-distance"
    _attr_device_class = SensorDeviceClass.DISTANCE
    _attr_native_unit_of_measurement = UnitOfLength.METERS
    _attr_state_class = SensorStateClass.TOTAL_INCREASING

    def _value(self, data: TrackingSnapshot) -> float:
        return round(data.statistics.distance_m, 1)


class GpsTrackingAverageSpeedSensor(GpsTrackingSensor):
    _key = "average_speed"
    _label = "Average Speed"
    _attr_icon = "mdi:speedometer-medium"
    _attr_device_class = SensorDeviceClass.SPEED
    _attr_native_unit_of_measurement = UnitOfSpeed.METERS_PER_SECOND

    def _value(self, data: TrackingSnapshot) -> float:
        return round(data.statistics.average_speed, 2)


class GpsTrackingSpeedSensor(GpsTrackingSensor):
    """Speed reported with the last accepted sample, in km/h."""

    _key = "speed"
    _label = "Speed"
    _attr_icon = "mdi:speedometer"
    _attr_device_class = SensorDeviceClass.SPEED
    _attr_native_unit_of_measurement = UnitOfSpeed.KILOMETERS_PER_HOUR

    def _value(self, data: TrackingSnapshot) -> float | None:
        if data.last_location is None:
            return None
        new_value = mps_to_kmh(data.last_location.speed)
        # Make sure value is between 0 and 1000
        if new_value < 0:
            new_value = 0.0
        elif new_value > 1000:
            new_value = 1000.0
        return round(new_value, 1)


class GpsTrackingSampleCountSensor(GpsTrackingSensor):
    _key = "sample_count"
    _label = "Samples"
    _attr_icon = "mdi:counter"
    _attr_state_class = SensorStateClass.TOTAL_INCREASING

    def _value(self, data: TrackingSnapshot) -> int:
        return data.statistics.sample_count


class GpsTrackingDurationSensor(GpsTrackingSensor):
    _key = "duration"
    _label = "Tracking Duration"
    _attr_icon = "mdi:timer-outline"
    _attr_device_class = SensorDeviceClass.DURATION
    _attr_native_unit_of_measurement = UnitOfTime.SECONDS

    def _value(self, data: TrackingSnapshot) -> int:
        return data.statistics.duration_ms // 1000


class GpsTrackingDroppedSamplesSensor(GpsTrackingSensor):
    """Samples rejected as implausible since tracking last started."""

    _key = "dropped_samples"
    _label = "Dropped Samples"
    _attr_icon = "mdi:map-marker-remove"
    _attr_state_class = SensorStateClass.TOTAL_INCREASING

    def _value(self, data: TrackingSnapshot) -> int:
        return data.dropped_samples


SENSOR_TYPES = (
    GpsTrackingDistanceSensor,
    GpsTrackingAverageSpeedSensor,
    GpsTrackingSpeedSensor,
    GpsTrackingSampleCountSensor,
    GpsTrackingDurationSensor,
    GpsTrackingDroppedSamplesSensor,
)


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add sensors for passed config_entry in HA."""
    coordinator: GpsTrackingCoordinator = config_entry.runtime_data
    async_add_entities([sensor_type(coordinator) for sensor_type in SENSOR_TYPES])
