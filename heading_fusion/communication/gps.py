"""Positioning receivers producing heading reports."""

import logging
import time
from typing import List, Optional

import serial

from ..core.config import Config
from ..core.types import PositionReport
from .nmea import NmeaParser
from .uart import UartError

logger = logging.getLogger(__name__)


class GpsReceiver:
    """NMEA receiver on a serial port.

    ``poll`` never blocks: it drains whatever lines are waiting and
    returns the reports parsed from them.
    """

    def __init__(self, config: Config):
        self._port = config.gps.port
        self._baudrate = config.gps.baudrate
        self._parser = NmeaParser(min_speed_ms=config.gps.min_speed_ms)
        self._serial: Optional[serial.Serial] = None
        self._buffer = bytearray()
        self._report_count = 0

    def open(self) -> None:
        """Open the serial port.

        Raises:
            UartError: If the port cannot be opened.
        """
        try:
            self._serial = serial.Serial(port=self._port, baudrate=self._baudrate, timeout=0)
        except serial.SerialException as e:
            raise UartError(f"Failed to open {self._port}: {e}") from e
        logger.info("GPS opened: %s @ %d baud", self._port, self._baudrate)

    def close(self) -> None:
        if self._serial is not None and self._serial.is_open:
            self._serial.close()
        self._serial = None
        logger.info("GPS closed")

    def poll(self) -> List[PositionReport]:
        """Parse every complete sentence received so far."""
        if self._serial is None:
            return []

        waiting = self._serial.in_waiting
        if waiting:
            self._buffer.extend(self._serial.read(waiting))

        reports = []
        while b"\n" in self._buffer:
            line, _, rest = self._buffer.partition(b"\n")
            self._buffer[:] = rest
            report = self._parser.parse(line.decode("ascii", errors="ignore"))
            if report is not None:
                reports.append(report)

        self._report_count += len(reports)
        return reports

    @property
    def parser(self) -> NmeaParser:
        return self._parser

    @property
    def report_count(self) -> int:
        """Reports parsed since the receiver was created."""
        return self._report_count

    def __enter__(self) -> "GpsReceiver":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class MockGpsReceiver:
    """Synthetic receiver emitting one report per ``period_s``.

    The first ``stationary_reports`` reports carry no course, as a real
    receiver does before the device starts moving.
    """

    def __init__(
        self,
        course_rate_dps: float = 10.0,
        period_s: float = 1.0,
        stationary_reports: int = 3,
        clock=time.monotonic,
    ):
        self._course_rate = course_rate_dps
        self._period = period_s
        self._stationary = stationary_reports
        self._clock = clock
        self._start: Optional[float] = None
        self._count = 0

    def open(self) -> None:
        self._start = self._clock()
        self._count = 0
        logger.info("Mock GPS opened")

    def close(self) -> None:
        self._start = None
        logger.info("Mock GPS closed")

    def poll(self) -> List[PositionReport]:
        """Return a report if a period has elapsed since the last one."""
        if self._start is None:
            return []

        now = self._clock()
        if now - self._start < (self._count + 1) * self._period:
            return []

        self._count += 1
        elapsed = self._count * self._period
        moving = self._count > self._stationary
        heading = (self._course_rate * elapsed) % 360.0

        return [PositionReport(
            timestamp=now,
            true_heading=heading,
            course=heading if moving else -1.0,
            speed=1.5 if moving else 0.0,
        )]

    @property
    def report_count(self) -> int:
        return self._count

    def __enter__(self) -> "MockGpsReceiver":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
