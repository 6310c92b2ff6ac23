"""Tests for the PlaybackDevice subscription contract."""

from unittest.mock import Mock

from podcastr.player.services.device import DeviceEvent
from podcastr.player.sync import DispatchQueue


class TestSubscribe:
    """Tests for subscribing to device notifications."""

    def test_emit_delivers_arguments(self, device):
        """Verify subscribers receive the notification arguments."""
        callback = Mock()
        device.subscribe(DeviceEvent.TIME_ADVANCED, callback)

        device.advance(12.5)

        callback.assert_called_once_with(12.5)

    def test_emit_only_matching_event(self, device):
        """Verify subscribers only see the event they asked for."""
        callback = Mock()
        device.subscribe(DeviceEvent.ENDED, callback)

        device.advance(3)

        callback.assert_not_called()

    def test_subscriber_count(self, device):
        """Verify active subscriptions are counted per event."""
        device.subscribe(DeviceEvent.STARTED, Mock())
        device.subscribe(DeviceEvent.STARTED, Mock())

        assert device.subscriber_count(DeviceEvent.STARTED) == 2
        assert device.subscriber_count(DeviceEvent.PAUSED) == 0


class TestCancel:
    """Tests for cancelling subscriptions."""

    def test_cancel_stops_delivery(self, device):
        """Verify a cancelled subscription receives nothing."""
        callback = Mock()
        subscription = device.subscribe(DeviceEvent.ENDED, callback)

        subscription.cancel()
        device.finish()

        callback.assert_not_called()
        assert subscription.active is False
        assert device.subscriber_count(DeviceEvent.ENDED) == 0

    def test_cancel_is_idempotent(self, device):
        """Verify cancelling twice is harmless."""
        subscription = device.subscribe(DeviceEvent.ENDED, Mock())

        subscription.cancel()
        subscription.cancel()

        assert device.subscriber_count(DeviceEvent.ENDED) == 0

    def test_close_deactivates_all(self, device):
        """Verify close() unloads and drops every subscription."""
        subscriptions = [device.subscribe(event, Mock()) for event in DeviceEvent]

        device.close()

        assert all(not s.active for s in subscriptions)
        assert device.commands == [("unload",)]


class TestDispatch:
    """Tests for deferred notification delivery."""

    def test_dispatch_defers_delivery(self, fake_device_cls):
        """Verify notifications wait for the dispatch queue to drain."""
        dispatch_queue = DispatchQueue()
        device = fake_device_cls(dispatch=dispatch_queue.post)
        callback = Mock()
        device.subscribe(DeviceEvent.TIME_ADVANCED, callback)

        device.advance(4)
        callback.assert_not_called()

        dispatch_queue.drain()
        callback.assert_called_once_with(4)

    def test_cancelled_before_drain_is_dropped(self, fake_device_cls):
        """Verify a queued notification is dropped if cancelled before delivery."""
        dispatch_queue = DispatchQueue()
        device = fake_device_cls(dispatch=dispatch_queue.post)
        callback = Mock()
        subscription = device.subscribe(DeviceEvent.TIME_ADVANCED, callback)

        device.advance(4)
        subscription.cancel()
        dispatch_queue.drain()

        callback.assert_not_called()
