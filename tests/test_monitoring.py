"""Tests for sample rate monitoring."""

import pytest

from heading_fusion.core.types import SensorKind, Vector3
from heading_fusion.communication.bus import SensorHub
from heading_fusion.monitoring.metrics import SampleRateMonitor


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestSampleRateMonitor:
    """Tests for SampleRateMonitor class."""

    def test_empty_stats(self, config):
        stats = SampleRateMonitor(config).get_stats()

        assert set(stats) == {"accelerometer", "magnetometer", "gyroscope", "position"}
        assert stats["gyroscope"].count == 0
        assert stats["gyroscope"].rate_hz == 0.0

    def test_rate_from_timestamps(self, config):
        monitor = SampleRateMonitor(config)
        for i in range(11):
            monitor.record(SensorKind.MAGNETOMETER, timestamp=i * 0.1)

        stats = monitor.get_stats()["magnetometer"]

        assert stats.count == 11
        assert stats.rate_hz == pytest.approx(10.0)
        assert stats.mean_dt_ms == pytest.approx(100.0)
        assert stats.std_dt_ms == pytest.approx(0.0, abs=1e-9)

    def test_attach_uses_clock(self, config):
        clock = FakeClock()
        hub = SensorHub()
        monitor = SampleRateMonitor(config, clock=clock)
        monitor.attach(hub)

        for i in range(5):
            clock.now = i * 0.02
            hub.publish(SensorKind.ACCELEROMETER, Vector3(0.0, 0.0, 1.0))

        assert monitor.get_stats()["accelerometer"].rate_hz == pytest.approx(50.0)

        monitor.detach()
        hub.publish(SensorKind.ACCELEROMETER, Vector3(0.0, 0.0, 1.0))
        assert monitor.get_stats()["accelerometer"].count == 5

    def test_window_limits_history(self, config):
        config.monitoring.window_size = 3
        monitor = SampleRateMonitor(config)
        for t in (0.0, 10.0, 10.1, 10.2):
            monitor.record(SensorKind.GYROSCOPE, timestamp=t)

        stats = monitor.get_stats()["gyroscope"]
        assert stats.count == 4
        assert stats.max_dt_ms == pytest.approx(100.0)

    def test_periodic_log(self, config, caplog):
        clock = FakeClock()
        monitor = SampleRateMonitor(config, clock=clock)
        monitor.record(SensorKind.GYROSCOPE)
        clock.now = 0.02
        monitor.record(SensorKind.GYROSCOPE)

        assert not monitor.maybe_log()

        clock.now = config.monitoring.log_interval_s + 1.0
        rejections = {"gyroscope": {"accepted": 2, "rejected": 3}}

        with caplog.at_level("INFO"):
            assert monitor.maybe_log(rejections)

        assert any("gyroscope" in r.getMessage() and "rejected=3" in r.getMessage()
                   for r in caplog.records)
        assert not monitor.maybe_log()

    def test_reset(self, config):
        monitor = SampleRateMonitor(config)
        monitor.record(SensorKind.POSITION, timestamp=1.0)
        monitor.reset()

        assert monitor.get_stats()["position"].count == 0
