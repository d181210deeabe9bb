"""Tests for UART communication."""

import pytest

from heading_fusion.core.angles import shortest_delta
from heading_fusion.core.types import GyroSample, SensorKind, Vector3
from heading_fusion.communication.bus import SensorHub
from heading_fusion.communication.uart import (
    PACKET_SIZE,
    ImuPacket,
    ImuUart,
    MockImuUart,
    PacketPublisher,
    UartError,
    crc16_ccitt,
    encode_packet,
)
from heading_fusion.fusion.engine import HeadingEngine


def make_packet(seq=7):
    return encode_packet(
        seq,
        accel=Vector3(0.0, 0.5, 1.0),
        gyro=Vector3(0.0, 0.0, 0.25),
        mag=Vector3(-20.0, 4.0, 45.0),
    )


class TestCrc16:
    """Tests for CRC-16-CCITT function."""

    def test_empty_data(self):
        """Empty data should return initial value."""
        assert crc16_ccitt(b"", init=0xFFFF) == 0xFFFF

    def test_known_value(self):
        """CRC should match known test value."""
        assert crc16_ccitt(b"123456789") == 0x29B1

    def test_different_init(self):
        assert crc16_ccitt(b"test", init=0xFFFF) != crc16_ccitt(b"test", init=0x0000)


class TestPacketParsing:
    """Tests for ImuUart packet framing."""

    def test_packet_size(self):
        assert len(make_packet()) == 2 + PACKET_SIZE

    def test_parse_encoded_packet(self, config):
        uart = ImuUart(config)
        uart.feed_bytes(make_packet(seq=7))

        packet = uart._try_parse_packet()

        assert packet.seq == 7
        assert packet.accel == Vector3(0.0, 0.5, 1.0)
        assert packet.gyro.z == 0.25
        assert packet.mag == Vector3(-20.0, 4.0, 45.0)
        assert uart.stats.valid_packets == 1

    def test_resync_after_garbage(self, config):
        """Bytes before the sync pattern should be skipped."""
        uart = ImuUart(config)
        uart.feed_bytes(b"\x00\x13\xaa" + make_packet(seq=3))

        assert uart._try_parse_packet().seq == 3

    def test_partial_packet_waits(self, config):
        uart = ImuUart(config)
        data = make_packet()
        uart.feed_bytes(data[:20])

        assert uart._try_parse_packet() is None

        uart.feed_bytes(data[20:])
        assert uart._try_parse_packet() is not None

    def test_crc_error_counted(self, config):
        """A corrupted packet is dropped, the next good one is returned."""
        uart = ImuUart(config)
        bad = bytearray(make_packet(seq=1))
        bad[10] ^= 0xFF
        uart.feed_bytes(bytes(bad) + make_packet(seq=2))

        packet = uart._try_parse_packet()

        assert packet.seq == 2
        assert uart.stats.crc_errors == 1
        assert uart.stats.total_packets == 2
        assert uart.stats.crc_error_rate == pytest.approx(0.5)
        assert uart.stats.packet_loss_rate == pytest.approx(0.5)

    def test_read_requires_open(self, config):
        with pytest.raises(UartError):
            ImuUart(config).read_packet()

    def test_open_missing_port(self, config):
        config.uart.port = "/dev/does-not-exist"
        with pytest.raises(UartError):
            ImuUart(config).open()


class TestPacketPublisher:
    """Tests for PacketPublisher class."""

    def test_decimation(self, config):
        """At 50 Hz packets, accel and mag go out every fifth packet."""
        hub = SensorHub()
        received = {kind: [] for kind in SensorKind}
        for kind in SensorKind:
            hub.subscribe(kind, received[kind].append)

        publisher = PacketPublisher(hub, config)
        for i in range(10):
            publisher.publish(ImuPacket(
                seq=i,
                timestamp=i * 0.02,
                accel=Vector3(0.0, 0.0, 1.0),
                gyro=Vector3(0.0, 0.0, 0.1),
                mag=Vector3(1.0, 0.0, 0.0),
            ))

        assert len(received[SensorKind.GYROSCOPE]) == 10
        assert len(received[SensorKind.ACCELEROMETER]) == 2
        assert len(received[SensorKind.MAGNETOMETER]) == 2
        assert received[SensorKind.GYROSCOPE][3] == GyroSample(rate_z=0.1, timestamp=3 * 0.02)


class TestMockImuUart:
    """Tests for MockImuUart class."""

    def test_open_close(self, config):
        mock = MockImuUart(config)

        assert not mock.is_open
        mock.open()
        assert mock.is_open
        mock.close()
        assert not mock.is_open

    def test_context_manager(self, config):
        with MockImuUart(config, realtime=False) as mock:
            assert mock.is_open
        assert not mock.is_open

    def test_read_requires_open(self, config):
        with pytest.raises(UartError):
            MockImuUart(config).read_packet()

    def test_packets_spaced_by_gyro_interval(self, config):
        with MockImuUart(config, realtime=False, seed=0) as mock:
            first = mock.read_packet()
            second = mock.read_packet()

        assert second.seq == first.seq + 1
        assert second.timestamp - first.timestamp == pytest.approx(0.02)
        assert mock.stats.valid_packets == 2

    def test_engine_follows_mock_rotation(self, config):
        """Ten seconds of mock data keep the headings near the true yaw."""
        hub = SensorHub()
        engine = HeadingEngine(config)
        engine.attach(hub)
        publisher = PacketPublisher(hub, config)

        with MockImuUart(config, rotation_dps=10.0, realtime=False, seed=42) as mock:
            for _ in range(500):
                packet = mock.read_packet()
                publisher.publish(packet)

        truth = mock.true_heading_at(packet.seq)
        assert truth == pytest.approx(100.0)
        assert abs(shortest_delta(engine.magnetic_heading, truth)) < 10.0
        assert abs(shortest_delta(engine.calculated_heading, truth)) < 10.0
