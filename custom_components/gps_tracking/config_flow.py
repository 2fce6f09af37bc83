"""Config flow for GPS Tracking integration."""
from __future__ import annotations
import logging
import uuid
from typing import Any, Dict, Optional
import homeassistant.helpers.config_validation as cv
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

from .const import (
    CONF_ACCURACY,
    CONF_ALLOW_BACKGROUND,
    CONF_BACKGROUND_MODE,
    CONF_DISTANCE_FILTER,
    CONF_ENTRY_NAME,
    CONF_FETCH_ELEVATION,
    CONF_INTERVAL_MS,
    CONF_NOTIFICATION_MESSAGE,
    CONF_NOTIFICATION_TITLE,
    CONF_PRESET,
    CONF_SOURCE_ENTITY,
    DEFAULT_DISTANCE_FILTER,
    DEFAULT_INTERVAL_MS,
    DEFAULT_NOTIFICATION_MESSAGE,
    DEFAULT_NOTIFICATION_TITLE,
    DOMAIN,
    MAX_DISTANCE_FILTER,
    MAX_INTERVAL_MS,
    MIN_DISTANCE_FILTER,
    MIN_INTERVAL_MS,
    PRESET_CUSTOM,
    TRACKING_CONFIG_KEYS,
    TRACKING_PRESETS,
)
from .models import LocationAccuracy
from .validation import validate_config

_LOGGER = logging.getLogger(__name__)

PRESET_OPTIONS = [PRESET_CUSTOM, *TRACKING_PRESETS]
ACCURACY_OPTIONS = [a.value for a in LocationAccuracy]

interval_ms = vol.All(vol.Coerce(int), vol.Range(min=MIN_INTERVAL_MS, max=MAX_INTERVAL_MS))
distance_filter = vol.All(vol.Coerce(float), vol.Range(min=MIN_DISTANCE_FILTER, max=MAX_DISTANCE_FILTER))

# Tracking parameters shared by the user step and the options step
TRACKING_DEFAULTS: Dict[str, Any] = {
    CONF_PRESET: PRESET_CUSTOM,
    CONF_INTERVAL_MS: DEFAULT_INTERVAL_MS,
    CONF_DISTANCE_FILTER: DEFAULT_DISTANCE_FILTER,
    CONF_ACCURACY: LocationAccuracy.HIGH.value,
    CONF_BACKGROUND_MODE: False,
    CONF_ALLOW_BACKGROUND: False,
    CONF_NOTIFICATION_TITLE: DEFAULT_NOTIFICATION_TITLE,
    CONF_NOTIFICATION_MESSAGE: DEFAULT_NOTIFICATION_MESSAGE,
    CONF_FETCH_ELEVATION: False,
}


def _tracking_schema(defaults: Dict[str, Any]) -> Dict[Any, Any]:
    return {
        vol.Required(CONF_PRESET, default=defaults[CONF_PRESET]): vol.In(PRESET_OPTIONS),
        vol.Required(CONF_INTERVAL_MS, default=defaults[CONF_INTERVAL_MS]): interval_ms,
        vol.Required(CONF_DISTANCE_FILTER, default=defaults[CONF_DISTANCE_FILTER]): distance_filter,
        vol.Required(CONF_ACCURACY, default=defaults[CONF_ACCURACY]): vol.In(ACCURACY_OPTIONS),
        vol.Required(CONF_BACKGROUND_MODE, default=defaults[CONF_BACKGROUND_MODE]): cv.boolean,
        vol.Required(CONF_ALLOW_BACKGROUND, default=defaults[CONF_ALLOW_BACKGROUND]): cv.boolean,
        vol.Required(CONF_NOTIFICATION_TITLE, default=defaults[CONF_NOTIFICATION_TITLE]): cv.string,
        vol.Required(CONF_NOTIFICATION_MESSAGE, default=defaults[CONF_NOTIFICATION_MESSAGE]): cv.string,
        vol.Required(CONF_FETCH_ELEVATION, default=defaults[CONF_FETCH_ELEVATION]): cv.boolean,
    }


CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_ENTRY_NAME, default='My GPS Tracking'): cv.string,
        vol.Required(CONF_SOURCE_ENTITY, default=''): cv.string,
        **_tracking_schema(TRACKING_DEFAULTS),
    }
)


def _validate_tracking_input(user_input: Dict[str, Any]) -> Dict[str, str]:
    """
    Form errors for the tracking parameters, keyed by field.

    A named preset replaces the individual fields, so only the custom
    preset is checked field by field.
    """
    errors: Dict[str, str] = {}
    preset = user_input.get(CONF_PRESET, PRESET_CUSTOM)
    if preset != PRESET_CUSTOM:
        if preset not in TRACKING_PRESETS:
            errors[CONF_PRESET] = 'invalid_preset'
        return errors

    result = validate_config({key: user_input.get(key) for key in TRACKING_CONFIG_KEYS})
    for field in result.error_fields:
        errors[field] = f'invalid_{field}'
    if result.warnings:
        _LOGGER.warning("Tracking config warnings: %s", result.warnings)
    return errors


class CustomFlow(config_entries.ConfigFlow, domain=DOMAIN):
    data: Optional[Dict[str, Any]]

    async def async_step_user(self, user_input: Optional[Dict[str, Any]] = None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            self.data = dict(TRACKING_DEFAULTS, **user_input)
            # Create new guid for the entry
            self.data['guid'] = str(uuid.uuid4())
            if not self.data.get(CONF_ENTRY_NAME):
                errors['base'] = 'entry_name_required'
            if not self.data.get(CONF_SOURCE_ENTITY):
                errors['base'] = 'source_entity_required'
            if not errors:
                errors.update(_validate_tracking_input(self.data))
            if not errors:
                # One entry per tracked source
                self._async_abort_entries_match({CONF_SOURCE_ENTITY: self.data[CONF_SOURCE_ENTITY]})
                return self.async_create_entry(title=f"{self.data[CONF_ENTRY_NAME]}", data=self.data)

        return self.async_show_form(step_id="user", data_schema=CONFIG_SCHEMA, errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Get the options flow for this handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Edits the tracking parameters of an existing entry."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self._entry = config_entry

    def _defaults(self) -> Dict[str, Any]:
        # Options win over the data the entry was created with
        defaults = dict(TRACKING_DEFAULTS)
        for key in TRACKING_DEFAULTS:
            if key in self._entry.data:
                defaults[key] = self._entry.data[key]
            if key in self._entry.options:
                defaults[key] = self._entry.options[key]
        return defaults

    async def async_step_init(
        self, user_input: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        errors: Dict[str, str] = {}

        if user_input is not None:
            new_options = dict(self._defaults(), **user_input)
            errors.update(_validate_tracking_input(new_options))
            if not errors:
                # The update listener applies these to the running session
                return self.async_create_entry(title="", data=new_options)

        options_schema = vol.Schema(_tracking_schema(self._defaults()))
        return self.async_show_form(step_id="init", data_schema=options_schema, errors=errors)
