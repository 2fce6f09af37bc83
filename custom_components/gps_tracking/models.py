"""
Domain models for the GPS tracking integration.

This module contains pure data classes describing tracking configuration,
location samples and session status.
These classes have no dependencies on Home Assistant internals.
"""
from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any, Mapping

from .const import (
    DEFAULT_DISTANCE_FILTER,
    DEFAULT_INTERVAL_MS,
    DEFAULT_NOTIFICATION_MESSAGE,
    DEFAULT_NOTIFICATION_TITLE,
)


class LocationAccuracy(str, Enum):
    """Requested fix quality."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PermissionScope(str, Enum):
    """Location permission scope."""
    FOREGROUND = "foreground"
    BACKGROUND = "background"   # "always" permission


class PermissionStatus(str, Enum):
    """Permission state as reported by a location provider."""
    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"
    RESTRICTED = "restricted"
    PENDING = "pending"


class SessionState(str, Enum):
    """Lifecycle state of a tracking session."""
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"


@dataclasses.dataclass(frozen=True)
class TrackingConfig:
    """
    Tracking parameters handed to a session.

    Construction does not validate; run validate_config() or
    normalize_config() before use.  Replace via dataclasses.replace().
    """

    interval_ms: int = DEFAULT_INTERVAL_MS
    distance_filter: float = DEFAULT_DISTANCE_FILTER
    accuracy: LocationAccuracy = LocationAccuracy.HIGH
    background_mode: bool = False
    notification_title: str | None = DEFAULT_NOTIFICATION_TITLE
    notification_message: str | None = DEFAULT_NOTIFICATION_MESSAGE

    def as_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict with the accuracy as its string value."""
        data = dataclasses.asdict(self)
        if isinstance(self.accuracy, LocationAccuracy):
            data["accuracy"] = self.accuracy.value
        return data


@dataclasses.dataclass(frozen=True)
class LocationSample:
    """Single location fix produced by a location provider."""

    latitude: float
    longitude: float
    altitude: float
    accuracy: float     # metres
    speed: float        # m/s
    bearing: float      # degrees, 0-360
    timestamp: int      # epoch milliseconds
    speed_limit_exceeded: bool | None = None

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LocationSample:
        """
        Build a sample from a loosely typed mapping.

        Raises ValueError if a required field is missing or not numeric.
        """
        try:
            return cls(
                latitude=float(data["latitude"]),
                longitude=float(data["longitude"]),
                altitude=float(data.get("altitude", 0.0)),
                accuracy=float(data["accuracy"]),
                speed=float(data.get("speed", 0.0)),
                bearing=float(data.get("bearing", 0.0)),
                timestamp=int(data["timestamp"]),
                speed_limit_exceeded=data.get("speed_limit_exceeded"),
            )
        except KeyError as e:
            raise ValueError(f"Missing required LocationSample field: {e}") from e
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid LocationSample data: {e}") from e


@dataclasses.dataclass(frozen=True)
class TrackingStatus:
    """Read-only view of a session's tracking state."""

    is_tracking: bool = False
    last_location_update: int | None = None
    tracking_duration: int = 0      # milliseconds since start, 0 while idle
    state: SessionState = SessionState.IDLE
    started_at: int | None = None


@dataclasses.dataclass(frozen=True)
class PermissionResult:
    """Outcome of a permission check for one scope."""

    scope: PermissionScope
    status: PermissionStatus

    @property
    def granted(self) -> bool:
        return self.status == PermissionStatus.GRANTED

    @property
    def pending(self) -> bool:
        return self.status == PermissionStatus.PENDING


@dataclasses.dataclass
class ValidationResult:
    """Errors and advisory warnings from a single validation call."""

    errors: list[str] = dataclasses.field(default_factory=list)
    warnings: list[str] = dataclasses.field(default_factory=list)
    # field name → first error message reported for it
    error_fields: dict[str, str] = dataclasses.field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, field: str, message: str) -> None:
        self.errors.append(message)
        self.error_fields.setdefault(field, message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)
