"""
TrackingSnapshot: immutable snapshot of tracking data shared with entities.

This is a pure data module with no HA or network dependencies.
"""
from __future__ import annotations

import dataclasses

from .models import LocationSample, PermissionScope, PermissionStatus, TrackingConfig, TrackingStatus
from .statistics import StatisticsSnapshot


@dataclasses.dataclass(frozen=True)
class TrackingSnapshot:
    """
    Typed, copy-on-write snapshot of one tracking session.

    Always replace via dataclasses.replace(); never mutate in place.
    """

    status: TrackingStatus = dataclasses.field(default_factory=TrackingStatus)

    # Last sample that passed plausibility and throttling (None until first fix)
    last_location: LocationSample | None = None

    statistics: StatisticsSnapshot = dataclasses.field(default_factory=StatisticsSnapshot)

    # Effective config of the session (None until first start)
    config: TrackingConfig | None = None

    # Unreasonable samples dropped in the current lifetime
    dropped_samples: int = 0

    permissions: dict[PermissionScope, PermissionStatus] = dataclasses.field(default_factory=dict)

    # Message of the last provider failure, cleared on a successful start
    last_error: str | None = None
