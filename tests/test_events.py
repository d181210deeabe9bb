"""Tests for event channels and subscription handles."""

from heading_fusion.core.events import EventChannel
from heading_fusion.core.types import SensorKind
from heading_fusion.communication.bus import SensorHub


class TestEventChannel:
    """Tests for EventChannel class."""

    def test_delivers_in_registration_order(self):
        """Listeners should run in the order they subscribed."""
        channel = EventChannel("test")
        calls = []
        channel.subscribe(lambda value: calls.append(("a", value)))
        channel.subscribe(lambda value: calls.append(("b", value)))

        channel.emit(1)

        assert calls == [("a", 1), ("b", 1)]

    def test_remove_stops_delivery(self):
        """A removed listener should receive no further events."""
        channel = EventChannel("test")
        calls = []
        subscription = channel.subscribe(calls.append)

        channel.emit(1)
        subscription.remove()
        channel.emit(2)

        assert calls == [1]
        assert not subscription.active
        assert len(channel) == 0

    def test_remove_is_idempotent(self):
        """Removing twice should be a no-op."""
        channel = EventChannel("test")
        subscription = channel.subscribe(lambda value: None)

        subscription.remove()
        subscription.remove()

        assert len(channel) == 0

    def test_remove_during_emit(self):
        """A listener removed by an earlier one should not be called."""
        channel = EventChannel("test")
        calls = []
        second = None

        def first(value):
            calls.append("first")
            second.remove()

        channel.subscribe(first)
        second = channel.subscribe(lambda value: calls.append("second"))

        channel.emit(0)

        assert calls == ["first"]


class TestSensorHub:
    """Tests for SensorHub class."""

    def test_routes_by_kind(self, hub):
        """Samples should reach only the handlers of their stream."""
        acc, mag = [], []
        hub.subscribe(SensorKind.ACCELEROMETER, acc.append)
        hub.subscribe(SensorKind.MAGNETOMETER, mag.append)

        hub.publish(SensorKind.ACCELEROMETER, "a")

        assert acc == ["a"]
        assert mag == []

    def test_independent_cancellation(self, hub):
        """Cancelling one stream should leave the others untouched."""
        acc, gyro = [], []
        acc_sub = hub.subscribe(SensorKind.ACCELEROMETER, acc.append)
        hub.subscribe(SensorKind.GYROSCOPE, gyro.append)

        acc_sub.remove()
        hub.publish(SensorKind.ACCELEROMETER, "a")
        hub.publish(SensorKind.GYROSCOPE, "g")

        assert acc == []
        assert gyro == ["g"]
        assert hub.subscriber_count(SensorKind.ACCELEROMETER) == 0
        assert hub.subscriber_count(SensorKind.GYROSCOPE) == 1

    def test_published_counts(self, hub):
        hub.publish(SensorKind.POSITION, None)
        hub.publish(SensorKind.POSITION, None)

        assert hub.published_counts[SensorKind.POSITION] == 2
        assert hub.published_counts[SensorKind.GYROSCOPE] == 0

    def test_accepts_string_kind(self):
        """Stream names should be accepted in place of the enum."""
        hub = SensorHub()
        calls = []
        hub.subscribe("gyroscope", calls.append)

        hub.publish(SensorKind.GYROSCOPE, 1)

        assert calls == [1]
