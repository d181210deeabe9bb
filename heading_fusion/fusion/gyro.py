"""Gyroscope integration around the vertical axis."""

import logging
import math
from typing import Optional

from ..core.angles import normalize

logger = logging.getLogger(__name__)


class GyroIntegrator:
    """Integrates vertical angular rate into a heading.

    The first sample only seeds the timestamp: a rate over an unknown
    interval gives no heading change. Integration drifts without bound;
    correcting it is the complementary filter's job.
    """

    def __init__(self, initial_heading: float = 0.0):
        self._heading = normalize(initial_heading)
        self._last_timestamp: Optional[float] = None
        self._last_dt = 0.0
        self._sample_count = 0

    def on_gyro_sample(self, angular_rate_z: float, now: float) -> float:
        """Integrate one gyro sample.

        Args:
            angular_rate_z: Angular rate around the vertical axis (rad/s).
            now: Sample time in seconds.

        Returns:
            Integrated heading in degrees, [0, 360).
        """
        self._sample_count += 1

        if self._last_timestamp is None:
            self._last_timestamp = now
            self._last_dt = 0.0
            return self._heading

        dt = now - self._last_timestamp
        self._last_timestamp = now

        if dt < 0:
            logger.warning("Gyro timestamp went backwards by %.3f s, re-seeding", -dt)
            self._last_dt = 0.0
            return self._heading

        delta = math.degrees(angular_rate_z) * dt
        if not math.isfinite(delta):
            logger.warning("Non-finite heading step skipped: rate=%r dt=%r", angular_rate_z, dt)
            self._last_dt = 0.0
            return self._heading

        self._last_dt = dt
        self._heading = normalize(self._heading + delta)
        return self._heading

    def rebase(self, heading: float) -> None:
        """Continue integrating from a corrected heading."""
        self._heading = normalize(heading)

    @property
    def heading(self) -> float:
        """Current integrated heading."""
        return self._heading

    @property
    def last_timestamp(self) -> Optional[float]:
        return self._last_timestamp

    @property
    def last_dt(self) -> float:
        """Time step used by the last integration, 0 when skipped."""
        return self._last_dt

    @property
    def sample_count(self) -> int:
        return self._sample_count

    def reset(self, heading: float = 0.0) -> None:
        """Reset heading and forget the last timestamp."""
        self._heading = normalize(heading)
        self._last_timestamp = None
        self._last_dt = 0.0
        self._sample_count = 0
