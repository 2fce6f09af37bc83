"""
TrackingSession: lifecycle state machine for one GPS tracking owner.

Responsibilities:
- Own the single source of truth for whether tracking is active.
- Drive idle → starting → active → stopping → idle transitions, gating
  start behind config validation and the PermissionGate.
- Filter incoming provider samples (plausibility, then interval throttle)
  and publish the accepted ones.
- Fold accepted samples into SessionStatistics.

Concurrency: everything runs on one asyncio loop.  The starting/stopping
states reject overlapping start/stop calls instead of queueing them; the one
exception is a stop issued during starting, which is honored as soon as the
start resolves.  No timeouts are put on the provider.

No HA imports.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Mapping

from .events import EventChannel, Subscription
from .exceptions import (
    AlreadyTracking,
    AlreadyTransitioning,
    InvalidConfig,
    NotTracking,
    PermissionPending,
    ProviderFailure,
    TrackingError,
)
from .models import (
    LocationSample,
    PermissionScope,
    PermissionStatus,
    SessionState,
    TrackingConfig,
    TrackingStatus,
)
from .permissions import PermissionGate
from .provider import LocationProvider
from .sample_validation import is_reasonable_location
from .statistics import HistoryPoint, SessionStatistics, StatisticsSnapshot
from .validation import normalize_config, validate_config

_LOGGER = logging.getLogger(__name__)

_TRANSITIONING = (SessionState.STARTING, SessionState.STOPPING)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class TrackingSession:
    """
    Tracking lifecycle for one location provider.

    Subscribers register through subscribe_locations, subscribe_status,
    subscribe_failures or subscribe_dropped and receive events synchronously
    on the loop.
    """

    def __init__(
        self,
        provider: LocationProvider,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._provider = provider
        self._gate = PermissionGate(provider)
        self._statistics = SessionStatistics()
        self._clock = clock or _epoch_ms

        self._state = SessionState.IDLE
        self._config: TrackingConfig | None = None
        self._started_at: int | None = None
        self._last_location: LocationSample | None = None
        self._last_location_update: int | None = None
        self._last_error: ProviderFailure | None = None

        # Throttle window and filter counters for the current active lifetime
        self._last_accepted_timestamp: int | None = None
        self._dropped_samples = 0
        self._throttled_samples = 0

        # Stop requested while starting; resolved once the start settles
        self._pending_stop: asyncio.Future | None = None
        # Failure reported on the provider channel while starting
        self._start_failure: ProviderFailure | None = None

        self._provider_subscriptions: list[Subscription] = []

        self._locations: EventChannel[LocationSample] = EventChannel("locations")
        self._status: EventChannel[TrackingStatus] = EventChannel("status")
        self._failures: EventChannel[ProviderFailure] = EventChannel("failures")
        self._dropped: EventChannel[LocationSample] = EventChannel("dropped")

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> TrackingConfig | None:
        return self._config

    @property
    def last_location(self) -> LocationSample | None:
        return self._last_location

    @property
    def last_error(self) -> ProviderFailure | None:
        return self._last_error

    @property
    def dropped_samples(self) -> int:
        """Unreasonable samples discarded in the current lifetime."""
        return self._dropped_samples

    @property
    def throttled_samples(self) -> int:
        """Reasonable samples swallowed by the interval throttle."""
        return self._throttled_samples

    @property
    def permissions(self) -> dict[PermissionScope, PermissionStatus]:
        return self._gate.snapshot()

    def get_status(self) -> TrackingStatus:
        """Current status; tracking_duration is 0 unless active."""
        active = self._state == SessionState.ACTIVE
        duration = 0
        if active and self._started_at is not None:
            duration = max(0, self._clock() - self._started_at)
        return TrackingStatus(
            is_tracking=active,
            last_location_update=self._last_location_update,
            tracking_duration=duration,
            state=self._state,
            started_at=self._started_at,
        )

    def statistics(self) -> StatisticsSnapshot:
        return self._statistics.snapshot(self._clock())

    def history(self) -> list[HistoryPoint]:
        return self._statistics.history()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe_locations(self, callback: Callable[[LocationSample], None]) -> Subscription:
        return self._locations.subscribe(callback)

    def subscribe_status(self, callback: Callable[[TrackingStatus], None]) -> Subscription:
        return self._status.subscribe(callback)

    def subscribe_failures(self, callback: Callable[[ProviderFailure], None]) -> Subscription:
        return self._failures.subscribe(callback)

    def subscribe_dropped(self, callback: Callable[[LocationSample], None]) -> Subscription:
        """Samples rejected as implausible while active."""
        return self._dropped.subscribe(callback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_start(
        self,
        config: TrackingConfig | Mapping[str, Any],
        *,
        auto_normalize: bool = False,
    ) -> TrackingStatus:
        """
        Start tracking with config.

        Raises InvalidConfig (unless auto_normalize), PermissionDenied,
        PermissionPending, AlreadyTracking, AlreadyTransitioning or
        ProviderFailure.  On any failure the session is back in idle.
        """
        if self._state in _TRANSITIONING:
            raise AlreadyTransitioning(f"Cannot start while {self._state.value}")
        if self._state == SessionState.ACTIVE:
            raise AlreadyTracking("Tracking is already active")

        self._statistics.reset()
        self._reset_throttle()
        self._start_failure = None
        self._set_state(SessionState.STARTING)

        started = False
        try:
            effective = self._prepare_config(config, auto_normalize)
            await self._async_authorize(effective)
            self._subscribe_provider()
            try:
                await self._provider.async_start_emitting(effective)
            except TrackingError:
                raise
            except Exception as exc:  # noqa: BLE001
                raise ProviderFailure(f"Location provider failed to start: {exc}") from exc
            if self._start_failure is not None:
                raise self._start_failure
            started = True
        finally:
            if not started:
                self._unsubscribe_provider()
                self._set_state(SessionState.IDLE)
                self._settle_pending_stop()

        self._config = effective
        self._started_at = self._clock()
        self._statistics.mark_started(self._started_at)
        self._last_error = None
        self._set_state(SessionState.ACTIVE)
        _LOGGER.info(
            "Tracking started (interval %s ms, accuracy %s, background %s)",
            effective.interval_ms, effective.accuracy.value, effective.background_mode,
        )

        if self._pending_stop is not None:
            await self._async_honor_pending_stop()

        return self.get_status()

    async def async_stop(self) -> TrackingStatus:
        """
        Stop tracking.

        Raises NotTracking while idle and AlreadyTransitioning while a stop is
        already running.  A stop issued while starting waits for the start to
        settle and then stops immediately.
        """
        if self._state == SessionState.IDLE:
            raise NotTracking("Tracking is not active")
        if self._state == SessionState.STOPPING:
            raise AlreadyTransitioning("Stop already in progress")

        if self._state == SessionState.STARTING:
            if self._pending_stop is not None:
                raise AlreadyTransitioning("Stop already requested")
            _LOGGER.debug("Stop requested while starting; deferring until start settles")
            self._pending_stop = asyncio.get_running_loop().create_future()
            await self._pending_stop
            return self.get_status()

        await self._async_stop_emitting()
        return self.get_status()

    async def async_update_config(
        self,
        config: TrackingConfig | Mapping[str, Any],
        *,
        auto_normalize: bool = False,
    ) -> TrackingConfig:
        """
        Replace the tracking config.

        While active the new interval applies to the throttle immediately and
        the session stays active.  While idle the config is kept for reference
        only; the next start still takes its own config.
        """
        if self._state in _TRANSITIONING:
            raise AlreadyTransitioning(f"Cannot update config while {self._state.value}")

        effective = self._prepare_config(config, auto_normalize)

        if self._state != SessionState.ACTIVE:
            self._config = effective
            return effective

        previous = self._config
        if effective.background_mode and not (previous and previous.background_mode):
            result = await self._gate.ensure(PermissionScope.BACKGROUND)
            if result.pending:
                raise PermissionPending(PermissionScope.BACKGROUND)

        self._config = effective
        if self._state != SessionState.ACTIVE:
            # stopped while waiting on the permission round-trip
            return effective

        try:
            await self._provider.async_apply_config(effective)
        except Exception as exc:  # noqa: BLE001
            self._config = previous
            raise ProviderFailure(f"Location provider rejected config: {exc}") from exc

        _LOGGER.info("Tracking config updated (interval %s ms)", effective.interval_ms)
        return effective

    async def async_get_current_location(self) -> LocationSample | None:
        """One-shot fix from the provider, or None if it is not reasonable."""
        try:
            sample = await self._provider.async_get_current_location()
        except Exception as exc:  # noqa: BLE001
            raise ProviderFailure(f"Location provider could not get a fix: {exc}") from exc
        if sample is None or not is_reasonable_location(sample):
            return None
        return sample

    async def async_shutdown(self) -> None:
        """Stop if active and drop all subscribers."""
        if self._state == SessionState.ACTIVE:
            try:
                await self.async_stop()
            except ProviderFailure as exc:
                _LOGGER.warning("Error stopping tracking during shutdown: %s", exc)
        self._unsubscribe_provider()
        self._locations.clear()
        self._status.clear()
        self._failures.clear()
        self._dropped.clear()

    # ------------------------------------------------------------------
    # Provider events
    # ------------------------------------------------------------------

    def handle_sample(self, sample: LocationSample) -> bool:
        """
        Filter one raw sample; return True if it was accepted and published.

        Order matters: plausibility first, then the throttle window, which is
        measured on sample timestamps from the last accepted sample.
        """
        if self._state != SessionState.ACTIVE:
            _LOGGER.debug("Dropping sample received while %s", self._state.value)
            return False

        if not is_reasonable_location(sample):
            self._dropped_samples += 1
            _LOGGER.debug(
                "Dropping unreasonable sample (%.6f, %.6f, accuracy %s, speed %s)",
                sample.latitude, sample.longitude, sample.accuracy, sample.speed,
            )
            self._dropped.publish(sample)
            return False

        last = self._last_accepted_timestamp
        if last is not None and sample.timestamp - last < self._config.interval_ms:
            self._throttled_samples += 1
            return False

        self._last_accepted_timestamp = sample.timestamp
        self._last_location_update = sample.timestamp
        self._last_location = sample
        self._statistics.add(sample)

        self._locations.publish(sample)
        self._status.publish(self.get_status())
        return True

    def handle_provider_failure(self, failure: ProviderFailure) -> None:
        """
        Provider can no longer emit.  An active session falls back to idle; a
        starting session fails its start with this error.
        """
        self._last_error = failure

        if self._state == SessionState.ACTIVE:
            _LOGGER.error("Location provider failed, tracking stopped: %s", failure)
            self._unsubscribe_provider()
            self._statistics.mark_stopped(self._clock())
            self._started_at = None
            self._set_state(SessionState.IDLE)
        else:
            if self._state == SessionState.STARTING:
                self._start_failure = failure
            _LOGGER.warning("Location provider failure while %s: %s", self._state.value, failure)

        self._failures.publish(failure)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _prepare_config(
        self, config: TrackingConfig | Mapping[str, Any], auto_normalize: bool
    ) -> TrackingConfig:
        result = validate_config(config)
        for warning in result.warnings:
            _LOGGER.warning("Tracking config: %s", warning)

        if not result.is_valid:
            if not auto_normalize:
                raise InvalidConfig(result)
            _LOGGER.warning("Invalid tracking config (%s), normalizing", "; ".join(result.errors))

        return normalize_config(config)

    async def _async_authorize(self, config: TrackingConfig) -> None:
        try:
            result = await self._gate.authorize(config)
        except TrackingError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ProviderFailure(f"Permission request failed: {exc}") from exc

        if result.pending:
            raise PermissionPending(result.scope)

    async def _async_stop_emitting(self) -> None:
        """active → stopping → idle; idle is reached even if the provider fails."""
        self._set_state(SessionState.STOPPING)
        try:
            await self._provider.async_stop_emitting()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Location provider failed to stop cleanly: %s", exc)
            raise ProviderFailure(f"Location provider failed to stop: {exc}") from exc
        finally:
            self._unsubscribe_provider()
            self._statistics.mark_stopped(self._clock())
            self._started_at = None
            self._set_state(SessionState.IDLE)
            _LOGGER.info("Tracking stopped")

    async def _async_honor_pending_stop(self) -> None:
        fut = self._pending_stop
        self._pending_stop = None
        try:
            await self._async_stop_emitting()
        except ProviderFailure as exc:
            if not fut.done():
                fut.set_exception(exc)
            return
        if not fut.done():
            fut.set_result(None)

    def _settle_pending_stop(self) -> None:
        """Start failed: the session is idle, so a deferred stop is satisfied."""
        fut = self._pending_stop
        self._pending_stop = None
        if fut is not None and not fut.done():
            fut.set_result(None)

    def _subscribe_provider(self) -> None:
        self._unsubscribe_provider()
        self._provider_subscriptions = [
            self._provider.subscribe_samples(self.handle_sample),
            self._provider.subscribe_failures(self.handle_provider_failure),
        ]

    def _unsubscribe_provider(self) -> None:
        for subscription in self._provider_subscriptions:
            subscription.unsubscribe()
        self._provider_subscriptions = []

    def _reset_throttle(self) -> None:
        self._last_accepted_timestamp = None
        self._dropped_samples = 0
        self._throttled_samples = 0

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        _LOGGER.debug("Tracking session %s -> %s", self._state.value, state.value)
        self._state = state
        self._status.publish(self.get_status())
