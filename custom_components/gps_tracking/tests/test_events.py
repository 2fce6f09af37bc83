"""Tests for events.py and the LocationProvider event channels."""

from __future__ import annotations

import unittest

from custom_components.gps_tracking.events import EventChannel

from .test_common import FakeLocationProvider, make_sample


class TestEventChannel(unittest.TestCase):

    def test_publish_reaches_all_subscribers_in_order(self):
        channel = EventChannel("test")
        received = []
        channel.subscribe(lambda e: received.append(("a", e)))
        channel.subscribe(lambda e: received.append(("b", e)))

        channel.publish(1)

        self.assertEqual(received, [("a", 1), ("b", 1)])

    def test_unsubscribe_stops_delivery(self):
        channel = EventChannel("test")
        received = []
        sub = channel.subscribe(received.append)

        sub.unsubscribe()
        channel.publish("x")

        self.assertEqual(received, [])
        self.assertFalse(sub.active)
        self.assertEqual(channel.subscriber_count, 0)

    def test_unsubscribe_is_idempotent(self):
        channel = EventChannel("test")
        sub = channel.subscribe(lambda e: None)
        sub.unsubscribe()
        sub.unsubscribe()
        self.assertEqual(channel.subscriber_count, 0)

    def test_subscription_is_callable(self):
        channel = EventChannel("test")
        sub = channel.subscribe(lambda e: None)
        sub()
        self.assertFalse(sub.active)

    def test_same_callback_twice_needs_two_unsubscribes(self):
        channel = EventChannel("test")
        received = []
        first = channel.subscribe(received.append)
        channel.subscribe(received.append)

        first.unsubscribe()
        channel.publish(7)

        self.assertEqual(received, [7])

    def test_failing_subscriber_does_not_block_others(self):
        channel = EventChannel("test")
        received = []

        def boom(_event):
            raise RuntimeError("boom")

        channel.subscribe(boom)
        channel.subscribe(received.append)

        with self.assertLogs("custom_components.gps_tracking.events", level="ERROR"):
            channel.publish(3)

        self.assertEqual(received, [3])

    def test_subscriber_may_unsubscribe_during_publish(self):
        channel = EventChannel("test")
        received = []
        holder = {}

        def once(event):
            received.append(event)
            holder["sub"].unsubscribe()

        holder["sub"] = channel.subscribe(once)
        channel.publish(1)
        channel.publish(2)

        self.assertEqual(received, [1])

    def test_clear_removes_everyone(self):
        channel = EventChannel("test")
        channel.subscribe(lambda e: None)
        channel.subscribe(lambda e: None)
        channel.clear()
        self.assertEqual(channel.subscriber_count, 0)


class TestProviderChannels(unittest.IsolatedAsyncioTestCase):

    async def test_samples_and_failures_are_separate(self):
        provider = FakeLocationProvider()
        samples, failures = [], []
        provider.subscribe_samples(samples.append)
        provider.subscribe_failures(failures.append)

        provider.emit(make_sample())
        provider.fail("gone")

        self.assertEqual(len(samples), 1)
        self.assertEqual(len(failures), 1)
        self.assertEqual(str(failures[0]), "gone")

    async def test_shutdown_drops_subscribers(self):
        provider = FakeLocationProvider()
        samples = []
        provider.subscribe_samples(samples.append)

        await provider.async_shutdown()
        provider.emit(make_sample())

        self.assertEqual(samples, [])

    async def test_default_current_location_is_none(self):
        provider = FakeLocationProvider()
        self.assertIsNone(await provider.async_get_current_location())
