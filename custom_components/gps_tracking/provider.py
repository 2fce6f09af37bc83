"""
LocationProvider: contract between the tracking session and whatever
actually produces location fixes.

A provider reports and requests permissions, starts and stops emission, and
pushes samples and failures through two event channels.  Concrete providers
call _emit_sample() / _emit_failure(); the session only subscribes.
A provider that emits a failure has already stopped emitting, so the session
does not call async_stop_emitting() afterwards.
"""
from __future__ import annotations

import abc
from typing import Callable

from .events import EventChannel, Subscription
from .exceptions import ProviderFailure
from .models import LocationSample, PermissionScope, PermissionStatus, TrackingConfig


class LocationProvider(abc.ABC):
    """Abstract location provider."""

    def __init__(self) -> None:
        self._samples: EventChannel[LocationSample] = EventChannel("samples")
        self._failures: EventChannel[ProviderFailure] = EventChannel("failures")

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def query_permission(self, scope: PermissionScope) -> PermissionStatus:
        """Return the current permission state without prompting."""

    @abc.abstractmethod
    async def async_request_permission(self, scope: PermissionScope) -> PermissionStatus:
        """Ask for the permission; may suspend and may return PENDING."""

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def async_start_emitting(self, config: TrackingConfig) -> None:
        """Begin emitting samples.  Raise to signal the provider cannot start."""

    @abc.abstractmethod
    async def async_stop_emitting(self) -> None:
        """Stop emitting samples."""

    async def async_apply_config(self, config: TrackingConfig) -> None:
        """Apply a new config while emitting.  Default: nothing to do."""

    async def async_get_current_location(self) -> LocationSample | None:
        """One-shot fix, if the provider can produce one."""
        return None

    async def async_shutdown(self) -> None:
        """Release provider resources."""
        self._samples.clear()
        self._failures.clear()

    # ------------------------------------------------------------------
    # Event channels
    # ------------------------------------------------------------------

    def subscribe_samples(self, callback: Callable[[LocationSample], None]) -> Subscription:
        return self._samples.subscribe(callback)

    def subscribe_failures(self, callback: Callable[[ProviderFailure], None]) -> Subscription:
        return self._failures.subscribe(callback)

    def _emit_sample(self, sample: LocationSample) -> None:
        self._samples.publish(sample)

    def _emit_failure(self, failure: ProviderFailure) -> None:
        self._failures.publish(failure)
