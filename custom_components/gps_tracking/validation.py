"""
Tracking configuration validation and normalization.

validate_config() reports what is wrong with a configuration without touching
it; normalize_config() coerces any partial input into a usable TrackingConfig.
Callers pick one: reject bad input, or proceed with best-effort values.

No HA imports: pure functions over plain mappings and TrackingConfig.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Mapping

from .const import (
    BACKGROUND_WARNING_INTERVAL_MS,
    BATTERY_WARNING_INTERVAL_MS,
    DEFAULT_DISTANCE_FILTER,
    DEFAULT_INTERVAL_MS,
    DEFAULT_NOTIFICATION_MESSAGE,
    DEFAULT_NOTIFICATION_TITLE,
    LOW_ACCURACY_MIN_DISTANCE_FILTER,
    MAX_DISTANCE_FILTER,
    MAX_INTERVAL_MS,
    MIN_DISTANCE_FILTER,
    MIN_INTERVAL_MS,
    TRACKING_PRESETS,
)
from .models import LocationAccuracy, TrackingConfig, ValidationResult

_LOGGER = logging.getLogger(__name__)

_ACCURACY_VALUES = [a.value for a in LocationAccuracy]


def _as_mapping(config: TrackingConfig | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(config, TrackingConfig):
        return config.as_dict()
    return config


def _is_number(value: Any) -> bool:
    """True for finite ints/floats; bool is not a number here."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _accuracy_value(value: Any) -> str | None:
    if isinstance(value, LocationAccuracy):
        return value.value
    if isinstance(value, str):
        return value
    return None


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def _text_or(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


def _coerce_number(value: Any, default: float) -> float:
    """Best-effort numeric coercion; zero is a legitimate value."""
    if _is_number(value):
        return value
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return default
        if math.isfinite(parsed):
            return parsed
    return default


def validate_config(config: TrackingConfig | Mapping[str, Any]) -> ValidationResult:
    """
    Check a tracking configuration against the allowed ranges.

    Errors make the configuration invalid; warnings are advisory only.
    Checks run in a fixed order so error lists are stable.
    """
    data = _as_mapping(config)
    result = ValidationResult()

    interval_ms = data.get("interval_ms")
    if not _is_number(interval_ms):
        result.add_error("interval_ms", "interval_ms must be a number")
    elif interval_ms < MIN_INTERVAL_MS:
        result.add_error("interval_ms", f"interval_ms must be at least {MIN_INTERVAL_MS}ms")
    elif interval_ms > MAX_INTERVAL_MS:
        result.add_error("interval_ms", f"interval_ms must be at most {MAX_INTERVAL_MS}ms")
    elif interval_ms < BATTERY_WARNING_INTERVAL_MS:
        result.add_warning("Very frequent updates may impact battery life")

    distance_filter = data.get("distance_filter")
    if not _is_number(distance_filter):
        result.add_error("distance_filter", "distance_filter must be a number")
    elif distance_filter < MIN_DISTANCE_FILTER:
        result.add_error("distance_filter", f"distance_filter must be at least {MIN_DISTANCE_FILTER}m")
    elif distance_filter > MAX_DISTANCE_FILTER:
        result.add_error("distance_filter", f"distance_filter must be at most {MAX_DISTANCE_FILTER}m")

    accuracy = _accuracy_value(data.get("accuracy"))
    if accuracy is None:
        result.add_error("accuracy", "accuracy must be a string")
    elif accuracy not in _ACCURACY_VALUES:
        result.add_error("accuracy", f"accuracy must be one of: {', '.join(_ACCURACY_VALUES)}")

    background_mode = data.get("background_mode")
    if not isinstance(background_mode, bool):
        result.add_error("background_mode", "background_mode must be a boolean")

    for field in ("notification_title", "notification_message"):
        value = data.get(field)
        if value is not None and not isinstance(value, str):
            result.add_error(field, f"{field} must be a string")

    # Cross-field advisories; only meaningful when the inputs are well-typed
    if background_mode is True and _is_number(interval_ms) and interval_ms < BACKGROUND_WARNING_INTERVAL_MS:
        result.add_warning("Background tracking with frequent updates may be limited by the OS")

    if (
        accuracy == LocationAccuracy.LOW.value
        and _is_number(distance_filter)
        and distance_filter < LOW_ACCURACY_MIN_DISTANCE_FILTER
    ):
        result.add_warning("Low accuracy with small distance filter may result in inaccurate filtering")

    return result


def normalize_config(config: TrackingConfig | Mapping[str, Any] | None = None) -> TrackingConfig:
    """
    Coerce a partial or invalid configuration into a usable TrackingConfig.

    Never raises: numbers are clamped into range, unknown accuracy falls back
    to high, and empty or non-text notification values get the default wording.
    """
    data = _as_mapping(config) if config is not None else {}

    interval_ms = _coerce_number(data.get("interval_ms"), DEFAULT_INTERVAL_MS)
    distance_filter = _coerce_number(data.get("distance_filter"), DEFAULT_DISTANCE_FILTER)

    accuracy = _accuracy_value(data.get("accuracy"))
    if accuracy not in _ACCURACY_VALUES:
        accuracy = LocationAccuracy.HIGH.value

    return TrackingConfig(
        interval_ms=int(_clamp(interval_ms, MIN_INTERVAL_MS, MAX_INTERVAL_MS)),
        distance_filter=_clamp(distance_filter, MIN_DISTANCE_FILTER, MAX_DISTANCE_FILTER),
        accuracy=LocationAccuracy(accuracy),
        background_mode=bool(data.get("background_mode")),
        notification_title=_text_or(data.get("notification_title"), DEFAULT_NOTIFICATION_TITLE),
        notification_message=_text_or(data.get("notification_message"), DEFAULT_NOTIFICATION_MESSAGE),
    )


def create_default_config(interval_ms: int = DEFAULT_INTERVAL_MS) -> TrackingConfig:
    """Default background tracking configuration with the given interval."""
    config = TrackingConfig(
        interval_ms=interval_ms,
        distance_filter=DEFAULT_DISTANCE_FILTER,
        accuracy=LocationAccuracy.HIGH,
        background_mode=True,
        notification_title=DEFAULT_NOTIFICATION_TITLE,
        notification_message=DEFAULT_NOTIFICATION_MESSAGE,
    )

    result = validate_config(config)
    if not result.is_valid:
        _LOGGER.warning("Invalid default config, normalizing: %s", result.errors)
        return normalize_config(config)

    if result.warnings:
        _LOGGER.warning("Config warnings: %s", result.warnings)

    return config


def get_preset(name: str) -> TrackingConfig:
    """
    Return a named preset (navigation, fitness, general, battery_saver).

    Raises KeyError for unknown names.
    """
    return normalize_config(TRACKING_PRESETS[name])
