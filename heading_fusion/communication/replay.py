"""Recording and deterministic replay of sensor samples.

CSV columns: ``kind,timestamp,x,y,z,w``

- accelerometer / magnetometer: vector components
- gyroscope: angular rate vector in rad/s (z is used)
- position: x = true heading, y = course, z = speed, w = magnetic
  heading; empty when absent

w is empty for the other kinds and may be missing altogether in
recordings that predate it.
"""

import csv
import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from ..core.events import Subscription
from ..core.types import GyroSample, PositionReport, SensorKind, Vector3
from .bus import SensorHub

logger = logging.getLogger(__name__)

HEADER = ["kind", "timestamp", "x", "y", "z", "w"]

Sample = Union[Vector3, GyroSample, PositionReport]


def _cell(value: Optional[float]) -> str:
    return "" if value is None else repr(float(value))


def _value(cell: str) -> Optional[float]:
    return float(cell) if cell.strip() else None


class SampleRecorder:
    """Writes every sample published on a hub to a CSV file."""

    def __init__(self, path: Union[str, Path], clock=None):
        """Initialize recorder.

        Args:
            path: Output CSV file.
            clock: Timestamp source for samples that carry none
                (accelerometer, magnetometer). Defaults to the time of
                the last gyro sample seen.
        """
        self._path = Path(path)
        self._clock = clock
        self._file = None
        self._writer = None
        self._last_time = 0.0
        self._subscriptions: List[Subscription] = []
        self.row_count = 0

    def open(self) -> None:
        self._file = open(self._path, "w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._file)
        self._writer.writerow(HEADER)
        logger.info("Recording samples to %s", self._path)

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.remove()
        self._subscriptions = []
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None
            logger.info("Recorded %d samples to %s", self.row_count, self._path)

    def attach(self, hub: SensorHub) -> None:
        """Record every stream of a hub."""
        for kind in SensorKind:
            self._subscriptions.append(
                hub.subscribe(kind, lambda sample, kind=kind: self.write(kind, sample))
            )

    def write(self, kind: SensorKind, sample: Sample) -> None:
        """Append one sample."""
        if self._writer is None:
            raise RuntimeError("Recorder not open")

        kind = SensorKind(kind)
        if kind is SensorKind.GYROSCOPE:
            self._last_time = sample.timestamp
            row = [kind.value, repr(sample.timestamp), "0.0", "0.0", repr(sample.rate_z), ""]
        elif kind is SensorKind.POSITION:
            row = [kind.value, repr(sample.timestamp),
                   _cell(sample.true_heading), _cell(sample.course), _cell(sample.speed),
                   _cell(sample.magnetic_heading)]
        else:
            row = [kind.value, repr(self._now()),
                   repr(sample.x), repr(sample.y), repr(sample.z), ""]

        self._writer.writerow(row)
        self.row_count += 1

    def _now(self) -> float:
        return self._clock() if self._clock is not None else self._last_time

    def __enter__(self) -> "SampleRecorder":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def read_samples(path: Union[str, Path]) -> Iterator[Tuple[SensorKind, Sample]]:
    """Yield ``(kind, sample)`` pairs from a recording.

    Raises:
        ValueError: If a row has an unknown kind or too few columns.
    """
    with open(path, "r", newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        for line_no, row in enumerate(reader, start=1):
            if not row or row[0].startswith("#") or row[0] == HEADER[0]:
                continue
            if len(row) < 5:
                raise ValueError(f"{path}:{line_no}: expected 5 columns, got {len(row)}")

            kind = SensorKind(row[0].strip())
            timestamp = float(row[1])

            if kind is SensorKind.GYROSCOPE:
                yield kind, GyroSample(rate_z=float(row[4]), timestamp=timestamp)
            elif kind is SensorKind.POSITION:
                yield kind, PositionReport(
                    timestamp=timestamp,
                    true_heading=_value(row[2]),
                    course=_value(row[3]),
                    speed=_value(row[4]),
                    magnetic_heading=_value(row[5]) if len(row) > 5 else None,
                )
            else:
                yield kind, Vector3(float(row[2]), float(row[3]), float(row[4]))


class ReplaySource:
    """Publishes a recording onto a hub, in file order."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        if not self._path.exists():
            raise FileNotFoundError(f"Recording not found: {path}")

    def run(self, hub: SensorHub, limit: Optional[int] = None) -> int:
        """Publish every sample.

        Args:
            hub: Destination hub.
            limit: Stop after this many samples.

        Returns:
            Number of samples published.
        """
        count = 0
        for kind, sample in read_samples(self._path):
            if limit is not None and count >= limit:
                break
            hub.publish(kind, sample)
            count += 1

        logger.info("Replayed %d samples from %s", count, self._path)
        return count

    def samples(self) -> Iterator[Tuple[SensorKind, Sample]]:
        return read_samples(self._path)
