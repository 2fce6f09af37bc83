"""
Tests for entity_provider.py: conversion of source entity states into
samples, permission mapping, the emit/stop lifecycle and teardown when the
source goes away.
"""

from __future__ import annotations

import asyncio
import unittest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from homeassistant.core import State

from custom_components.gps_tracking.entity_provider import EntityLocationProvider, state_to_sample
from custom_components.gps_tracking.exceptions import ProviderFailure
from custom_components.gps_tracking.models import PermissionScope, PermissionStatus, SessionState
from custom_components.gps_tracking.session import TrackingSession

from .test_common import make_config

SOURCE = "device_tracker.phone"
UPDATED = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
TRACK_PATH = "custom_components.gps_tracking.entity_provider.async_track_state_change_event"


def _state(state: str = "home", **attrs) -> State:
    attributes = {"latitude": 52.52, "longitude": 13.405, "gps_accuracy": 8}
    attributes.update(attrs)
    attributes = {k: v for k, v in attributes.items() if v is not None}
    return State(SOURCE, state, attributes, last_updated=UPDATED)


def _make_hass(state: State | None) -> MagicMock:
    hass = MagicMock()
    hass.states.get = MagicMock(return_value=state)
    hass.async_create_task = lambda coro: asyncio.ensure_future(coro)
    return hass


def _make_provider(state: State | None = None, **kwargs) -> EntityLocationProvider:
    return EntityLocationProvider(_make_hass(state), SOURCE, **kwargs)


async def _drain(provider: EntityLocationProvider) -> None:
    """Wait for every scheduled state-processing task."""
    await asyncio.gather(*list(provider._tasks))


class TestStateToSample(unittest.TestCase):

    def test_converts_location_attributes(self):
        sample = state_to_sample(_state(altitude=35.5, speed=4.2, course=270))
        self.assertEqual(sample.latitude, 52.52)
        self.assertEqual(sample.longitude, 13.405)
        self.assertEqual(sample.accuracy, 8.0)
        self.assertEqual(sample.altitude, 35.5)
        self.assertEqual(sample.speed, 4.2)
        self.assertEqual(sample.bearing, 270.0)
        self.assertEqual(sample.timestamp, int(UPDATED.timestamp() * 1000))

    def test_missing_coordinates_give_none(self):
        self.assertIsNone(state_to_sample(_state(latitude=None)))

    def test_negative_speed_and_course_become_zero(self):
        sample = state_to_sample(_state(speed=-1, course=-1))
        self.assertEqual(sample.speed, 0.0)
        self.assertEqual(sample.bearing, 0.0)

    def test_bearing_attribute_is_used_without_course(self):
        self.assertEqual(state_to_sample(_state(bearing=45)).bearing, 45.0)

    def test_missing_accuracy_is_zero(self):
        self.assertEqual(state_to_sample(_state(gps_accuracy=None)).accuracy, 0.0)

    def test_malformed_values_give_none(self):
        self.assertIsNone(state_to_sample(_state(latitude="north")))


class TestPermissionMapping(unittest.IsolatedAsyncioTestCase):

    async def test_missing_source_is_denied(self):
        provider = _make_provider(None)
        self.assertEqual(provider.query_permission(PermissionScope.FOREGROUND), PermissionStatus.DENIED)

    async def test_unavailable_source_is_pending(self):
        provider = _make_provider(_state("unavailable"))
        self.assertEqual(provider.query_permission(PermissionScope.FOREGROUND), PermissionStatus.PENDING)
        self.assertEqual(
            await provider.async_request_permission(PermissionScope.FOREGROUND), PermissionStatus.PENDING
        )

    async def test_unknown_source_is_pending(self):
        provider = _make_provider(_state("unknown"))
        self.assertEqual(provider.query_permission(PermissionScope.FOREGROUND), PermissionStatus.PENDING)

    async def test_reporting_source_grants_foreground(self):
        provider = _make_provider(_state())
        self.assertEqual(provider.query_permission(PermissionScope.FOREGROUND), PermissionStatus.GRANTED)

    async def test_background_restricted_unless_allowed(self):
        provider = _make_provider(_state())
        self.assertEqual(provider.query_permission(PermissionScope.BACKGROUND), PermissionStatus.RESTRICTED)

        provider.allow_background = True
        self.assertEqual(provider.query_permission(PermissionScope.BACKGROUND), PermissionStatus.GRANTED)


class TestEmission(unittest.IsolatedAsyncioTestCase):

    async def test_start_with_missing_source_raises(self):
        provider = _make_provider(None)
        with patch(TRACK_PATH) as mock_track:
            with self.assertRaises(ProviderFailure):
                await provider.async_start_emitting(make_config())
        mock_track.assert_not_called()

    async def test_start_emits_current_state_first(self):
        provider = _make_provider(_state())
        samples = []
        provider.subscribe_samples(samples.append)

        with patch(TRACK_PATH, return_value=MagicMock()) as mock_track:
            await provider.async_start_emitting(make_config())
            await _drain(provider)

        mock_track.assert_called_once()
        self.assertEqual(mock_track.call_args.args[1], [SOURCE])
        self.assertTrue(provider.emitting)
        self.assertEqual(len(samples), 1)
        self.assertEqual(samples[0].latitude, 52.52)

    async def test_state_change_emits_sample(self):
        provider = _make_provider(_state())
        samples = []
        provider.subscribe_samples(samples.append)

        with patch(TRACK_PATH, return_value=MagicMock()):
            await provider.async_start_emitting(make_config())
            await _drain(provider)
            provider._async_state_changed(MagicMock(data={"new_state": _state(latitude=48.1)}))
            await _drain(provider)

        self.assertEqual([s.latitude for s in samples], [52.52, 48.1])

    async def test_small_moves_are_held_back_by_distance_filter(self):
        provider = _make_provider(_state())
        samples = []
        provider.subscribe_samples(samples.append)

        with patch(TRACK_PATH, return_value=MagicMock()):
            await provider.async_start_emitting(make_config(distance_filter=50))
            await _drain(provider)
            # ~11 m north
            provider._async_state_changed(MagicMock(data={"new_state": _state(latitude=52.5201)}))
            await _drain(provider)
            # ~111 m north of the first fix
            provider._async_state_changed(MagicMock(data={"new_state": _state(latitude=52.521)}))
            await _drain(provider)

        self.assertEqual([s.latitude for s in samples], [52.52, 52.521])

    async def test_zero_distance_filter_emits_every_fix(self):
        provider = _make_provider(_state())
        samples = []
        provider.subscribe_samples(samples.append)

        with patch(TRACK_PATH, return_value=MagicMock()):
            await provider.async_start_emitting(make_config(distance_filter=0))
            await _drain(provider)
            provider._async_state_changed(MagicMock(data={"new_state": _state()}))
            await _drain(provider)

        self.assertEqual(len(samples), 2)

    async def test_state_without_location_is_skipped(self):
        provider = _make_provider(_state())
        samples = []
        provider.subscribe_samples(samples.append)

        with patch(TRACK_PATH, return_value=MagicMock()):
            await provider.async_start_emitting(make_config())
            await _drain(provider)
            provider._async_state_changed(MagicMock(data={"new_state": _state(latitude=None, longitude=None)}))
            await _drain(provider)

        self.assertEqual(len(samples), 1)

    async def test_removed_source_reports_failure(self):
        provider = _make_provider(_state())
        failures = []
        provider.subscribe_failures(failures.append)

        provider._async_state_changed(MagicMock(data={"new_state": None}))

        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], ProviderFailure)

    async def test_unavailable_source_reports_failure(self):
        provider = _make_provider(_state())
        failures = []
        provider.subscribe_failures(failures.append)

        provider._async_state_changed(MagicMock(data={"new_state": _state("unavailable")}))

        self.assertIn("unavailable", str(failures[0]))

    async def test_unavailable_source_stops_following(self):
        provider = _make_provider(_state())
        samples = []
        provider.subscribe_samples(samples.append)
        unsub = MagicMock()

        with patch(TRACK_PATH, return_value=unsub):
            await provider.async_start_emitting(make_config())
            await _drain(provider)
            provider._async_state_changed(MagicMock(data={"new_state": _state(latitude=48.1)}))
            provider._async_state_changed(MagicMock(data={"new_state": _state("unavailable")}))
            await asyncio.gather(*list(provider._tasks), return_exceptions=True)

        unsub.assert_called_once()
        self.assertFalse(provider.emitting)
        self.assertEqual([s.latitude for s in samples], [52.52])

    async def test_removed_source_stops_following(self):
        provider = _make_provider(_state())
        unsub = MagicMock()

        with patch(TRACK_PATH, return_value=unsub):
            await provider.async_start_emitting(make_config())
            await _drain(provider)
            provider._async_state_changed(MagicMock(data={"new_state": None}))

        unsub.assert_called_once()
        self.assertFalse(provider.emitting)

    async def test_session_on_entity_provider_releases_source_after_failure(self):
        provider = _make_provider(_state())
        session = TrackingSession(provider)

        with patch(TRACK_PATH, return_value=MagicMock()):
            await session.async_start(make_config())
            await _drain(provider)
            with self.assertLogs("custom_components.gps_tracking.session", level="ERROR"):
                provider._async_state_changed(MagicMock(data={"new_state": _state("unavailable")}))

        self.assertEqual(session.state, SessionState.IDLE)
        self.assertFalse(provider.emitting)

    async def test_stop_unsubscribes_and_silences(self):
        provider = _make_provider(_state())
        samples = []
        provider.subscribe_samples(samples.append)
        unsub = MagicMock()

        with patch(TRACK_PATH, return_value=unsub):
            await provider.async_start_emitting(make_config())
            await provider.async_stop_emitting()

        unsub.assert_called_once()
        self.assertFalse(provider.emitting)
        self.assertEqual(samples, [])
        self.assertEqual(provider._tasks, set())

    async def test_current_location(self):
        provider = _make_provider(_state())
        sample = await provider.async_get_current_location()
        self.assertEqual(sample.longitude, 13.405)

    async def test_current_location_none_when_unavailable(self):
        provider = _make_provider(_state("unavailable"))
        self.assertIsNone(await provider.async_get_current_location())


class TestElevationEnrichment(unittest.IsolatedAsyncioTestCase):

    async def test_missing_altitude_is_fetched(self):
        provider = _make_provider(_state(), fetch_elevation=True)
        provider._fetch_elevation = AsyncMock(return_value=123.4)

        sample = await provider.async_get_current_location()

        self.assertEqual(sample.altitude, 123.4)
        provider._fetch_elevation.assert_awaited_once_with(52.52, 13.405)

    async def test_reported_altitude_is_kept(self):
        provider = _make_provider(_state(altitude=10.0), fetch_elevation=True)
        provider._fetch_elevation = AsyncMock(return_value=123.4)

        sample = await provider.async_get_current_location()

        self.assertEqual(sample.altitude, 10.0)
        provider._fetch_elevation.assert_not_awaited()

    async def test_disabled_enrichment_never_fetches(self):
        provider = _make_provider(_state())
        provider._fetch_elevation = AsyncMock(return_value=123.4)

        sample = await provider.async_get_current_location()

        self.assertEqual(sample.altitude, 0.0)
        provider._fetch_elevation.assert_not_awaited()

    async def test_cached_elevation_reused_nearby(self):
        provider = _make_provider(_state(), fetch_elevation=True)
        provider._fetch_elevation = AsyncMock(return_value=100.0)

        await provider._async_elevation_for(52.52, 13.405)
        provider._fetch_elevation.return_value = 200.0
        result = await provider._async_elevation_for(52.5201, 13.4051)

        self.assertEqual(result, 100.0)
        provider._fetch_elevation.assert_awaited_once()

    async def test_refetch_after_move_and_delay(self):
        provider = _make_provider(_state(), fetch_elevation=True)
        provider._fetch_elevation = AsyncMock(return_value=100.0)

        await provider._async_elevation_for(52.52, 13.405)
        provider._last_elevation_fetch -= 301
        provider._fetch_elevation.return_value = 200.0
        result = await provider._async_elevation_for(52.53, 13.405)

        self.assertEqual(result, 200.0)

    async def test_failed_fetch_keeps_previous_value(self):
        provider = _make_provider(_state(), fetch_elevation=True)
        provider._fetch_elevation = AsyncMock(return_value=100.0)
        await provider._async_elevation_for(52.52, 13.405)

        provider._last_elevation_fetch -= 301
        provider._fetch_elevation.return_value = None
        result = await provider._async_elevation_for(52.6, 13.405)

        self.assertEqual(result, 100.0)
