"""Published heading values for the presentation layer."""

import logging
import math
import time
from typing import Callable, Optional

from ..core.angles import normalize
from ..core.events import EventChannel, Subscription
from ..core.types import HeadingSnapshot

logger = logging.getLogger(__name__)


def _usable(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value >= 0


class HeadingAggregator:
    """Holds the four current headings.

    Magnetic and Calculated come from the fusion filters. True North and
    Satellite are passed through from the positioning receiver without
    filtering. Satellite stays ``None`` until the first report with a
    non-negative heading and is never cleared afterwards.

    Observers registered with ``subscribe`` receive a ``HeadingSnapshot``
    after every update; ``snapshot()`` can be polled instead.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._magnetic = 0.0
        self._true_north = 0.0
        self._satellite: Optional[float] = None
        self._calculated = 0.0
        self._timestamp = 0.0
        self._channel = EventChannel("headings")

    def update_magnetic(self, heading: float) -> None:
        """Replace the magnetic heading."""
        self._magnetic = normalize(heading)
        self._publish()

    def update_calculated(self, heading: float) -> None:
        """Replace the calculated (fused) heading."""
        self._calculated = normalize(heading)
        self._publish()

    def update_true_north(
        self,
        true_heading: Optional[float],
        magnetic_heading: Optional[float] = None,
    ) -> None:
        """Replace the true-north heading from a positioning report.

        Args:
            true_heading: Reported true heading in degrees, if any.
            magnetic_heading: Reported magnetic heading, used when the
                true heading is absent. Falls back to the current magnetic
                heading when both are absent.
        """
        if _usable(true_heading):
            value = true_heading
        elif _usable(magnetic_heading):
            value = magnetic_heading
        else:
            value = self._magnetic

        self._true_north = normalize(value)
        self._publish()

    def update_satellite(self, heading: Optional[float]) -> None:
        """Set the satellite heading if the report carries one.

        Absent or negative headings are ignored and leave the current
        value untouched.
        """
        if not _usable(heading):
            return

        if self._satellite is None:
            logger.info("First satellite heading: %.1f deg", heading)
        self._satellite = normalize(heading)
        self._publish()

    def subscribe(self, callback: Callable[[HeadingSnapshot], None]) -> Subscription:
        """Register an observer called with every new snapshot."""
        return self._channel.subscribe(callback)

    def snapshot(self) -> HeadingSnapshot:
        """Current values of all four headings."""
        return HeadingSnapshot(
            magnetic=self._magnetic,
            true_north=self._true_north,
            satellite=self._satellite,
            calculated=self._calculated,
            timestamp=self._timestamp,
        )

    @property
    def magnetic(self) -> float:
        return self._magnetic

    @property
    def true_north(self) -> float:
        return self._true_north

    @property
    def satellite(self) -> Optional[float]:
        return self._satellite

    @property
    def calculated(self) -> float:
        return self._calculated

    def _publish(self) -> None:
        self._timestamp = self._clock()
        if len(self._channel):
            self._channel.emit(self.snapshot())
