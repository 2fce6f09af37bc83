import logging

from homeassistant import config_entries, core
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady

from .const import CONF_SOURCE_ENTITY
from .coordinator import GpsTrackingCoordinator
from .exceptions import TrackingError

PLATFORMS: list[Platform] = [Platform.DEVICE_TRACKER, Platform.SENSOR, Platform.SWITCH]
_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Set up platform from a ConfigEntry."""
    source_entity = entry.data.get(CONF_SOURCE_ENTITY)
    if not source_entity:
        _LOGGER.error("Source entity not set in config entry")
        return False

    # The source may simply not be loaded yet; let HA retry later
    if hass.states.get(source_entity) is None:
        raise ConfigEntryNotReady(f"Source entity {source_entity} is not available yet")

    coordinator = GpsTrackingCoordinator(hass, dict(entry.data), dict(entry.options))
    await coordinator.async_config_entry_first_refresh()
    entry.runtime_data = coordinator

    entry.async_on_unload(
        entry.add_update_listener(_async_update_listener)
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    return True


async def _async_update_listener(hass: HomeAssistant, config_entry):
    """Handle config options update without a reload so tracking keeps running."""
    coordinator: GpsTrackingCoordinator = config_entry.runtime_data
    try:
        await coordinator.async_update_tracking_config(dict(config_entry.options))
    except TrackingError as exc:
        _LOGGER.error("Failed to apply new tracking options, reloading: %s", exc)
        await hass.config_entries.async_reload(config_entry.entry_id)


async def async_unload_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        await entry.runtime_data.async_shutdown()
    return unload_ok
