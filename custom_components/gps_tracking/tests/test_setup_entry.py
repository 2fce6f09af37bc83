"""
Unit tests for __init__.py: async_setup_entry, the options update listener
and async_unload_entry.

Coverage:
- missing source entity in entry data → returns False, no coordinator
- source entity not in the state machine yet → raises ConfigEntryNotReady
- source present → returns True, runtime_data set, platforms forwarded
- first refresh failure → ConfigEntryNotReady propagates
- options update → applied to the running coordinator, reload only on failure
- unload → platforms unloaded, coordinator shut down
"""

from __future__ import annotations

import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from homeassistant.exceptions import ConfigEntryNotReady

from custom_components.gps_tracking import (
    PLATFORMS,
    _async_update_listener,
    async_setup_entry,
    async_unload_entry,
)
from custom_components.gps_tracking.exceptions import PermissionDenied
from custom_components.gps_tracking.models import PermissionScope, PermissionStatus

from .test_common import make_entry_data

COORDINATOR_PATH = "custom_components.gps_tracking.GpsTrackingCoordinator"


def _make_mock_entry(**data_kwargs) -> MagicMock:
    """Return a minimal mock ConfigEntry."""
    entry = MagicMock()
    entry.entry_id = "entry-1"
    entry.data = make_entry_data(**data_kwargs)
    entry.options = {}
    entry.async_on_unload = MagicMock()
    entry.add_update_listener = MagicMock(return_value=MagicMock())
    return entry


def _make_hass(source_state=True) -> MagicMock:
    hass = MagicMock()
    hass.states.get = MagicMock(return_value=MagicMock() if source_state else None)
    hass.config_entries.async_forward_entry_setups = AsyncMock()
    hass.config_entries.async_unload_platforms = AsyncMock(return_value=True)
    hass.config_entries.async_reload = AsyncMock()
    return hass


def _mock_coordinator() -> MagicMock:
    coordinator = MagicMock()
    coordinator.async_config_entry_first_refresh = AsyncMock()
    coordinator.async_update_tracking_config = AsyncMock()
    coordinator.async_shutdown = AsyncMock()
    return coordinator


class TestAsyncSetupEntry(unittest.IsolatedAsyncioTestCase):

    async def test_missing_source_entity_returns_false(self):
        hass = _make_hass()
        entry = _make_mock_entry(source_entity="")

        with patch(COORDINATOR_PATH) as MockCoord:
            result = await async_setup_entry(hass, entry)

        self.assertFalse(result)
        MockCoord.assert_not_called()

    async def test_source_not_loaded_raises_config_entry_not_ready(self):
        hass = _make_hass(source_state=False)
        entry = _make_mock_entry()

        with patch(COORDINATOR_PATH) as MockCoord:
            with self.assertRaises(ConfigEntryNotReady) as ctx:
                await async_setup_entry(hass, entry)

        self.assertIn("device_tracker.phone", str(ctx.exception))
        MockCoord.assert_not_called()

    async def test_setup_completes_and_sets_runtime_data(self):
        hass = _make_hass()
        entry = _make_mock_entry()
        coordinator = _mock_coordinator()

        with patch(COORDINATOR_PATH, return_value=coordinator) as MockCoord:
            result = await async_setup_entry(hass, entry)

        self.assertTrue(result)
        self.assertEqual(entry.runtime_data, coordinator)
        MockCoord.assert_called_once_with(hass, entry.data, {})
        hass.config_entries.async_forward_entry_setups.assert_awaited_once_with(entry, PLATFORMS)
        entry.add_update_listener.assert_called_once_with(_async_update_listener)

    async def test_first_refresh_failure_raises_config_entry_not_ready(self):
        hass = _make_hass()
        entry = _make_mock_entry()
        coordinator = _mock_coordinator()
        coordinator.async_config_entry_first_refresh = AsyncMock(
            side_effect=ConfigEntryNotReady("refresh failed")
        )

        with patch(COORDINATOR_PATH, return_value=coordinator):
            with self.assertRaises(ConfigEntryNotReady):
                await async_setup_entry(hass, entry)

        hass.config_entries.async_forward_entry_setups.assert_not_awaited()


class TestUpdateListener(unittest.IsolatedAsyncioTestCase):

    async def test_options_are_applied_without_reload(self):
        hass = _make_hass()
        entry = _make_mock_entry()
        entry.options = {"interval_ms": 20000}
        entry.runtime_data = _mock_coordinator()

        await _async_update_listener(hass, entry)

        entry.runtime_data.async_update_tracking_config.assert_awaited_once_with({"interval_ms": 20000})
        hass.config_entries.async_reload.assert_not_awaited()

    async def test_rejected_options_trigger_reload(self):
        hass = _make_hass()
        entry = _make_mock_entry()
        entry.runtime_data = _mock_coordinator()
        entry.runtime_data.async_update_tracking_config = AsyncMock(
            side_effect=PermissionDenied(PermissionScope.BACKGROUND, PermissionStatus.RESTRICTED)
        )

        with self.assertLogs("custom_components.gps_tracking", level="ERROR"):
            await _async_update_listener(hass, entry)

        hass.config_entries.async_reload.assert_awaited_once_with("entry-1")


class TestAsyncUnloadEntry(unittest.IsolatedAsyncioTestCase):

    async def test_unload_shuts_down_coordinator(self):
        hass = _make_hass()
        entry = _make_mock_entry()
        entry.runtime_data = _mock_coordinator()

        result = await async_unload_entry(hass, entry)

        self.assertTrue(result)
        entry.runtime_data.async_shutdown.assert_awaited_once()

    async def test_failed_unload_keeps_coordinator(self):
        hass = _make_hass()
        hass.config_entries.async_unload_platforms = AsyncMock(return_value=False)
        entry = _make_mock_entry()
        entry.runtime_data = _mock_coordinator()

        result = await async_unload_entry(hass, entry)

        self.assertFalse(result)
        entry.runtime_data.async_shutdown.assert_not_awaited()
