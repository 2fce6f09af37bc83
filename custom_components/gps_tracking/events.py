"""
EventChannel: minimal publish/subscribe used between provider, session and
subscribers.

This is a pure in-process primitive with no HA or network dependencies.
Callbacks run synchronously on the publisher's loop.
"""
from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """
    Handle returned by EventChannel.subscribe().

    unsubscribe() is idempotent.  The handle is also callable, so it can be
    passed anywhere a plain "remove listener" callable is expected.
    """

    def __init__(self, channel: EventChannel, callback: Callable) -> None:
        self._channel = channel
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._channel._remove(self._callback)

    def __call__(self) -> None:
        self.unsubscribe()


class EventChannel(Generic[T]):
    """Named fan-out channel for one event type."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._callbacks: list[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        self._callbacks.append(callback)
        return Subscription(self, callback)

    def publish(self, event: T) -> None:
        """
        Deliver event to every current subscriber.

        Iterates over a copy so callbacks may unsubscribe while being called.
        A failing subscriber is logged and does not stop delivery to the rest.
        """
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Subscriber of '%s' raised while handling event", self.name)

    def clear(self) -> None:
        self._callbacks.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def _remove(self, callback: Callable[[T], None]) -> None:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass
