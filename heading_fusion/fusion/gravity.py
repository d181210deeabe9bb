"""Gravity direction tracking from accelerometer samples."""

import logging

from ..core.types import Vector3

logger = logging.getLogger(__name__)


class GravityTracker:
    """Holds the latest accelerometer vector as the gravity estimate.

    No filtering is applied here; the magnetic filter's own low-pass
    smooths the resulting heading.
    """

    def __init__(self):
        self._gravity = Vector3.zero()
        self._sample_count = 0

    def on_accelerometer_sample(self, sample: Vector3) -> None:
        """Replace the gravity estimate with a new sample."""
        if self._sample_count == 0:
            logger.info(
                "First gravity sample: [%.3f, %.3f, %.3f]",
                sample.x, sample.y, sample.z
            )
        self._gravity = sample
        self._sample_count += 1

    def current_gravity(self) -> Vector3:
        """Latest gravity vector, or the zero vector before any sample."""
        return self._gravity

    @property
    def has_sample(self) -> bool:
        return self._sample_count > 0

    @property
    def sample_count(self) -> int:
        return self._sample_count

    def reset(self) -> None:
        """Forget the gravity estimate."""
        self._gravity = Vector3.zero()
        self._sample_count = 0
