"""UART reception of IMU packets."""

import math
import struct
import time
import logging
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
import serial

from ..core.config import Config
from ..core.types import GyroSample, SensorKind, SensorStats, Vector3
from .bus import SensorHub

logger = logging.getLogger(__name__)

SYNC1 = 0xAA
SYNC2 = 0x55
# seq, accel xyz (g), gyro xyz (rad/s), mag xyz, crc
PACKET_FORMAT = "<I9fH"
PACKET_SIZE = struct.calcsize(PACKET_FORMAT)


class UartError(Exception):
    """Base exception for UART communication errors."""
    pass


def crc16_ccitt(data: bytes, init: int = 0xFFFF) -> int:
    """Calculate CRC-16-CCITT checksum.

    Args:
        data: Bytes to checksum.
        init: Initial CRC value.

    Returns:
        16-bit CRC value.
    """
    crc = init
    for b in data:
        crc ^= (b << 8) & 0xFFFF
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return crc


def encode_packet(seq: int, accel: Vector3, gyro: Vector3, mag: Vector3) -> bytes:
    """Build a framed packet, as sent by the sensor board."""
    body = struct.pack(
        PACKET_FORMAT[:-1],
        seq,
        accel.x, accel.y, accel.z,
        gyro.x, gyro.y, gyro.z,
        mag.x, mag.y, mag.z,
    )
    return bytes([SYNC1, SYNC2]) + body + struct.pack("<H", crc16_ccitt(body))


@dataclass(frozen=True)
class ImuPacket:
    """One decoded packet with all three sensor vectors."""
    seq: int
    timestamp: float
    accel: Vector3
    gyro: Vector3
    mag: Vector3


class PacketPublisher:
    """Publishes packet contents on a hub at each sensor's own rate.

    The board sends every sensor in every packet; accelerometer and
    magnetometer vectors are forwarded only once their configured
    interval has elapsed, the gyroscope likewise.
    """

    def __init__(self, hub: SensorHub, config: Config):
        self._hub = hub
        cfg = config.sensor
        self._intervals: Dict[SensorKind, float] = {
            SensorKind.ACCELEROMETER: cfg.accelerometer_interval_ms / 1000.0,
            SensorKind.MAGNETOMETER: cfg.magnetometer_interval_ms / 1000.0,
            SensorKind.GYROSCOPE: cfg.gyroscope_interval_ms / 1000.0,
        }
        self._last_sent: Dict[SensorKind, Optional[float]] = {
            kind: None for kind in self._intervals
        }

    def publish(self, packet: ImuPacket) -> None:
        """Forward the due samples of a packet, accelerometer first."""
        if self._due(SensorKind.ACCELEROMETER, packet.timestamp):
            self._hub.publish(SensorKind.ACCELEROMETER, packet.accel)
        if self._due(SensorKind.MAGNETOMETER, packet.timestamp):
            self._hub.publish(SensorKind.MAGNETOMETER, packet.mag)
        if self._due(SensorKind.GYROSCOPE, packet.timestamp):
            self._hub.publish(
                SensorKind.GYROSCOPE,
                GyroSample.from_vector(packet.gyro, packet.timestamp),
            )

    def _due(self, kind: SensorKind, timestamp: float) -> bool:
        last = self._last_sent[kind]
        # small slack so that jitter does not halve the rate
        if last is None or timestamp - last >= self._intervals[kind] * 0.9:
            self._last_sent[kind] = timestamp
            return True
        return False


class ImuUart:
    """Hardware UART interface for IMU packets.

    Handles the binary protocol with sync bytes, CRC validation and
    packet parsing. Packets are stamped with a monotonic arrival time.
    """

    def __init__(self, config: Config):
        """Initialize UART interface.

        Args:
            config: System configuration with UART settings.
        """
        self._config = config
        self._port = config.uart.port
        self._baudrate = config.uart.baudrate
        self._timeout = config.uart.timeout_s

        self._serial: Optional[serial.Serial] = None
        self._buffer = bytearray()
        self._stats = SensorStats()
        self._is_open = False

    def open(self) -> None:
        """Open serial connection.

        Raises:
            UartError: If connection cannot be established.
        """
        if self._is_open:
            return

        try:
            self._serial = serial.Serial(
                port=self._port,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._timeout,
            )
            self._serial.reset_input_buffer()
            self._is_open = True
            logger.info("IMU UART opened: %s @ %d baud", self._port, self._baudrate)

        except serial.SerialException as e:
            raise UartError(f"Failed to open {self._port}: {e}") from e

    def close(self) -> None:
        """Close serial connection."""
        if self._serial is not None and self._serial.is_open:
            self._serial.close()
        self._serial = None
        self._is_open = False
        logger.info("IMU UART closed")

    def read_packet(self, timeout_s: float = 1.0) -> Optional[ImuPacket]:
        """Read one complete IMU packet.

        Args:
            timeout_s: Maximum time to wait for a packet.

        Returns:
            ImuPacket if successful, None on timeout.

        Raises:
            UartError: If connection is not open.
        """
        if not self._is_open or self._serial is None:
            raise UartError("UART not open")

        deadline = time.perf_counter() + timeout_s

        while True:
            self._feed()
            packet = self._try_parse_packet()
            if packet is not None:
                return packet

            if time.perf_counter() > deadline:
                self._stats.timeouts += 1
                return None

            time.sleep(0.001)

    def feed_bytes(self, data: bytes) -> None:
        """Append raw bytes to the receive buffer."""
        self._buffer.extend(data)

    def _feed(self) -> None:
        """Read available data from serial port into buffer."""
        if self._serial is not None and self._serial.in_waiting > 0:
            self._buffer.extend(self._serial.read(self._serial.in_waiting))

    def _try_parse_packet(self) -> Optional[ImuPacket]:
        """Try to parse a packet from the buffer."""
        while True:
            idx = self._buffer.find(bytes([SYNC1, SYNC2]))

            if idx < 0:
                if len(self._buffer) > 1:
                    self._buffer[:] = self._buffer[-1:]
                return None

            if idx > 0:
                del self._buffer[:idx]

            if len(self._buffer) < 2 + PACKET_SIZE:
                return None

            payload = bytes(self._buffer[2:2 + PACKET_SIZE])
            del self._buffer[:2 + PACKET_SIZE]

            self._stats.total_packets += 1

            rx_crc = struct.unpack_from("<H", payload, PACKET_SIZE - 2)[0]
            calc_crc = crc16_ccitt(payload[:-2])

            if rx_crc != calc_crc:
                self._stats.crc_errors += 1
                logger.debug("CRC error: received 0x%04X, expected 0x%04X", rx_crc, calc_crc)
                continue

            self._stats.valid_packets += 1
            return self._decode_packet(payload)

    def _decode_packet(self, payload: bytes) -> ImuPacket:
        seq, ax, ay, az, gx, gy, gz, mx, my, mz, _ = struct.unpack(PACKET_FORMAT, payload)
        return ImuPacket(
            seq=int(seq),
            timestamp=time.monotonic(),
            accel=Vector3(float(ax), float(ay), float(az)),
            gyro=Vector3(float(gx), float(gy), float(gz)),
            mag=Vector3(float(mx), float(my), float(mz)),
        )

    @property
    def stats(self) -> SensorStats:
        """Get communication statistics."""
        return self._stats

    def reset_stats(self) -> None:
        self._stats = SensorStats()

    @property
    def is_open(self) -> bool:
        return self._is_open

    def __enter__(self) -> "ImuUart":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class MockImuUart:
    """Synthetic IMU turning slowly on a level surface.

    The device yaws at ``rotation_dps``; gravity points along +z and the
    field's horizontal component follows the yaw so that the magnetic and
    gyro paths agree. Gaussian noise is added to every axis.
    """

    def __init__(
        self,
        config: Config,
        rotation_dps: float = 10.0,
        field_strength: float = 20.0,
        realtime: bool = True,
        seed: Optional[int] = None,
    ):
        """Initialize mock UART.

        Args:
            config: System configuration.
            rotation_dps: Yaw rate in degrees per second.
            field_strength: Horizontal field magnitude.
            realtime: Sleep between packets to emulate the sensor rate.
            seed: Seed for the noise generator.
        """
        self._config = config
        self._stats = SensorStats()
        self._seq = 0
        self._is_open = False
        self._period = config.sensor.gyroscope_interval_ms / 1000.0
        self._rotation_dps = rotation_dps
        self._field = field_strength
        self._realtime = realtime
        self._rng = np.random.default_rng(seed)
        self._start_time = 0.0

    def open(self) -> None:
        """Simulate opening connection."""
        self._is_open = True
        self._seq = 0
        self._start_time = time.monotonic()
        logger.info("Mock IMU opened")

    def close(self) -> None:
        """Simulate closing connection."""
        self._is_open = False
        logger.info("Mock IMU closed")

    def true_heading_at(self, seq: int) -> float:
        """Yaw of the simulated device at a packet number, degrees."""
        return (self._rotation_dps * seq * self._period) % 360.0

    def read_packet(self, timeout_s: float = 1.0) -> Optional[ImuPacket]:
        """Generate the next synthetic packet.

        Raises:
            UartError: If the mock is not open.
        """
        if not self._is_open:
            raise UartError("Mock IMU not open")

        if self._realtime:
            time.sleep(self._period * 0.9)

        self._seq += 1
        self._stats.total_packets += 1
        self._stats.valid_packets += 1

        yaw = math.radians(self.true_heading_at(self._seq))
        noise_acc = self._rng.normal(0, 0.005, 3)
        noise_gyr = self._rng.normal(0, 0.001, 3)
        noise_mag = self._rng.normal(0, 0.1, 3)

        return ImuPacket(
            seq=self._seq,
            timestamp=self._start_time + self._seq * self._period,
            accel=Vector3.from_array(np.array([0.0, 0.0, 1.0]) + noise_acc),
            gyro=Vector3.from_array(
                np.array([0.0, 0.0, math.radians(self._rotation_dps)]) + noise_gyr
            ),
            mag=Vector3.from_array(
                np.array([-self._field * math.sin(yaw), self._field * math.cos(yaw), 45.0])
                + noise_mag
            ),
        )

    @property
    def stats(self) -> SensorStats:
        return self._stats

    @property
    def is_open(self) -> bool:
        return self._is_open

    def __enter__(self) -> "MockImuUart":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
