"""
PermissionGate: decides whether tracking may start given the provider's
permission state.

Background tracking needs the "always" scope on top of the foreground one.
The gate never downgrades a background request to foreground: if "always"
is unavailable the whole operation fails and the caller decides whether to
retry without background mode.
"""
from __future__ import annotations

import logging

from .exceptions import PermissionDenied
from .models import (
    PermissionResult,
    PermissionScope,
    PermissionStatus,
    TrackingConfig,
)
from .provider import LocationProvider

_LOGGER = logging.getLogger(__name__)

_REFUSED = (PermissionStatus.DENIED, PermissionStatus.RESTRICTED)


def required_scopes(config: TrackingConfig) -> list[PermissionScope]:
    """Scopes to ensure, in order, before starting with this config."""
    if config.background_mode:
        return [PermissionScope.FOREGROUND, PermissionScope.BACKGROUND]
    return [PermissionScope.FOREGROUND]


class PermissionGate:
    """Caches per-scope permission state and runs request round-trips."""

    def __init__(self, provider: LocationProvider) -> None:
        self._provider = provider
        self._state: dict[PermissionScope, PermissionStatus] = {
            scope: PermissionStatus.UNKNOWN for scope in PermissionScope
        }

    def status(self, scope: PermissionScope) -> PermissionStatus:
        return self._state[scope]

    def snapshot(self) -> dict[PermissionScope, PermissionStatus]:
        return dict(self._state)

    async def ensure(self, scope: PermissionScope) -> PermissionResult:
        """
        Make sure scope is granted, requesting it from the provider if needed.

        Returns a GRANTED or PENDING result.  PENDING is not an error: the
        platform is waiting on the user and the caller must try again later.
        Raises PermissionDenied when the request comes back denied/restricted.
        """
        status = self._provider.query_permission(scope)
        if status != PermissionStatus.GRANTED:
            _LOGGER.debug("Permission %s is %s, requesting", scope.value, status.value)
            status = await self._provider.async_request_permission(scope)

        self._state[scope] = status

        if status in _REFUSED:
            _LOGGER.warning("Location permission %s %s", scope.value, status.value)
            raise PermissionDenied(scope, status)

        if status == PermissionStatus.PENDING:
            _LOGGER.info("Location permission %s is pending user response", scope.value)

        return PermissionResult(scope=scope, status=status)

    async def authorize(self, config: TrackingConfig) -> PermissionResult:
        """
        Ensure every scope the config needs.

        Returns the first non-granted (pending) result, or the last granted one.
        """
        result = None
        for scope in required_scopes(config):
            result = await self.ensure(scope)
            if not result.granted:
                return result
        return result
