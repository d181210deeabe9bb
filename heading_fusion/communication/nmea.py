"""NMEA 0183 parsing for positioning heading reports.

Supported sentences (any talker id):
- RMC: position, validity, speed over ground, course over ground
- HDT: true heading from a heading-capable receiver
"""

import logging
import time
from typing import Callable, Optional

from ..core.types import PositionReport

logger = logging.getLogger(__name__)

KNOTS_TO_MS = 0.514444
NO_COURSE = -1.0


class NmeaError(ValueError):
    """Raised for malformed NMEA sentences."""


def calculate_checksum(body: str) -> str:
    """XOR checksum of the characters between '$' and '*'."""
    checksum = 0
    for char in body:
        checksum ^= ord(char)
    return f"{checksum:02X}"


def parse_coordinate(value: str, hemisphere: str) -> Optional[float]:
    """Convert NMEA ``(d)ddmm.mmmm`` plus hemisphere to decimal degrees."""
    if not value or not hemisphere:
        return None

    dot = value.find(".")
    if dot < 3:
        raise NmeaError(f"Bad coordinate: {value!r}")

    degrees = float(value[:dot - 2])
    minutes = float(value[dot - 2:])
    result = degrees + minutes / 60.0

    if hemisphere in ("S", "W"):
        result = -result
    return result


def _optional_float(value: str) -> Optional[float]:
    return float(value) if value else None


class NmeaParser:
    """Turns NMEA sentences into ``PositionReport``s.

    Course over ground is only meaningful while moving; below
    ``min_speed_ms`` the course is reported as -1, which consumers treat
    as "no satellite heading".
    """

    def __init__(
        self,
        min_speed_ms: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._min_speed = min_speed_ms
        self._clock = clock
        self.sentence_count = 0
        self.parse_errors = 0

    def parse(self, sentence: str) -> Optional[PositionReport]:
        """Parse a sentence, logging and counting malformed input.

        Returns:
            PositionReport, or None for unsupported or invalid sentences.
        """
        try:
            return self.parse_strict(sentence)
        except NmeaError as e:
            self.parse_errors += 1
            logger.debug("Dropped NMEA sentence: %s", e)
            return None

    def parse_strict(self, sentence: str) -> Optional[PositionReport]:
        """Parse a sentence.

        Returns:
            PositionReport, or None for unsupported sentence types and
            RMC fixes flagged void.

        Raises:
            NmeaError: If the sentence is malformed or fails its checksum.
        """
        sentence = sentence.strip()
        if not sentence.startswith("$"):
            raise NmeaError(f"Missing '$': {sentence[:20]!r}")

        body = sentence[1:]
        if "*" in body:
            body, checksum = body.split("*", 1)
            if calculate_checksum(body) != checksum.strip().upper():
                raise NmeaError(f"Checksum mismatch: {sentence!r}")

        fields = body.split(",")
        if len(fields[0]) < 5:
            raise NmeaError(f"Bad sentence id: {fields[0]!r}")

        self.sentence_count += 1
        sentence_type = fields[0][2:]

        try:
            if sentence_type == "RMC":
                return self._parse_rmc(fields)
            if sentence_type == "HDT":
                return self._parse_hdt(fields)
        except (IndexError, ValueError) as e:
            raise NmeaError(f"Malformed {sentence_type}: {e}") from e

        return None

    def _parse_rmc(self, fields: list) -> Optional[PositionReport]:
        # $GPRMC,time,status,lat,N,lon,E,speed_kn,course,date,...
        if fields[2] != "A":
            return None

        speed_knots = _optional_float(fields[7])
        speed = speed_knots * KNOTS_TO_MS if speed_knots is not None else None
        course = _optional_float(fields[8])

        if course is None or speed is None or speed < self._min_speed:
            course = NO_COURSE

        return PositionReport(
            timestamp=self._clock(),
            course=course,
            speed=speed,
            latitude=parse_coordinate(fields[3], fields[4]),
            longitude=parse_coordinate(fields[5], fields[6]),
        )

    def _parse_hdt(self, fields: list) -> Optional[PositionReport]:
        # $GPHDT,heading,T
        heading = _optional_float(fields[1])
        if heading is None:
            return None
        return PositionReport(timestamp=self._clock(), true_heading=heading)
