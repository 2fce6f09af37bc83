"""
Plausibility checks for raw location samples.

is_reasonable_location() is the gate between provider noise and everything
downstream: a sample is throttled, published or counted only after it passes.
"""
from __future__ import annotations

from typing import Any, Mapping

from .const import (
    DEFAULT_ACCURACY_THRESHOLD,
    LOW_QUALITY_ACCURACY,
    MAX_REASONABLE_ACCURACY,
    MAX_REASONABLE_SPEED,
    NULL_ISLAND,
)
from .models import LocationSample, ValidationResult


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    """True if both values are within WGS84 bounds."""
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def is_acceptable_accuracy(accuracy: float, threshold: float = DEFAULT_ACCURACY_THRESHOLD) -> bool:
    return 0 < accuracy <= threshold


def is_reasonable_location(sample: LocationSample) -> bool:
    """
    Reject samples that are obviously not a real fix.

    Null island (0, 0) is the provider's "no fix" sentinel.  A speed of
    exactly MAX_REASONABLE_SPEED is still accepted.
    """
    if (sample.latitude, sample.longitude) == NULL_ISLAND:
        return False

    if not is_valid_coordinate(sample.latitude, sample.longitude):
        return False

    if sample.speed > MAX_REASONABLE_SPEED:
        return False

    if not is_acceptable_accuracy(sample.accuracy, MAX_REASONABLE_ACCURACY):
        return False

    return True


def _number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_location_data(sample: LocationSample | Mapping[str, Any]) -> ValidationResult:
    """Structural check of a sample, field by field."""
    data = sample.as_dict() if isinstance(sample, LocationSample) else sample
    result = ValidationResult()

    latitude = data.get("latitude")
    if not _number(latitude):
        result.add_error("latitude", "latitude must be a number")
    elif latitude < -90 or latitude > 90:
        result.add_error("latitude", "latitude must be between -90 and 90")

    longitude = data.get("longitude")
    if not _number(longitude):
        result.add_error("longitude", "longitude must be a number")
    elif longitude < -180 or longitude > 180:
        result.add_error("longitude", "longitude must be between -180 and 180")

    if not _number(data.get("altitude")):
        result.add_error("altitude", "altitude must be a number")

    accuracy = data.get("accuracy")
    if not _number(accuracy):
        result.add_error("accuracy", "accuracy must be a number")
    elif accuracy < 0:
        result.add_error("accuracy", "accuracy must be positive")
    elif accuracy > LOW_QUALITY_ACCURACY:
        result.add_warning(f"Location accuracy is very low (>{LOW_QUALITY_ACCURACY:g}m)")

    speed = data.get("speed")
    if not _number(speed):
        result.add_error("speed", "speed must be a number")
    elif speed < 0:
        result.add_error("speed", "speed must be positive")

    bearing = data.get("bearing")
    if not _number(bearing):
        result.add_error("bearing", "bearing must be a number")
    elif bearing < 0 or bearing > 360:
        result.add_error("bearing", "bearing must be between 0 and 360")

    timestamp = data.get("timestamp")
    if not _number(timestamp):
        result.add_error("timestamp", "timestamp must be a number")
    elif timestamp <= 0:
        result.add_error("timestamp", "timestamp must be positive")

    return result
