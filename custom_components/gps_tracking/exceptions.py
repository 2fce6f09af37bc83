"""Errors raised by the tracking core."""
from __future__ import annotations

from .models import PermissionScope, PermissionStatus, ValidationResult


class TrackingError(Exception):
    """Base class for all tracking errors."""


class InvalidConfig(TrackingError):
    """Tracking configuration failed validation."""

    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        super().__init__("Invalid tracking config: " + "; ".join(result.errors))


class PermissionDenied(TrackingError):
    """Provider reported the permission as denied or restricted."""

    def __init__(self, scope: PermissionScope, status: PermissionStatus) -> None:
        self.scope = scope
        self.status = status
        super().__init__(f"Location permission '{scope.value}' is {status.value}")


class PermissionPending(TrackingError):
    """Permission request is waiting on the platform; start again once resolved."""

    def __init__(self, scope: PermissionScope) -> None:
        self.scope = scope
        super().__init__(f"Location permission '{scope.value}' is pending")


class AlreadyTracking(TrackingError):
    """start() called while the session is active."""


class NotTracking(TrackingError):
    """stop() called while the session is idle."""


class AlreadyTransitioning(TrackingError):
    """A start or stop is already in flight."""


class ProviderFailure(TrackingError):
    """The location provider cannot emit samples."""
