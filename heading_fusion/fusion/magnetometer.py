"""Magnetic heading from magnetometer samples.

Two filters share the same contract: ``on_magnetometer_sample`` takes a
raw field vector and returns the smoothed magnetic heading in degrees,
which also becomes the filter's ``heading`` (the magnetic reference read
by the complementary filter).
"""

import logging
import math

from ..core.angles import circular_blend, normalize
from ..core.types import Vector3
from .gravity import GravityTracker

logger = logging.getLogger(__name__)

DEFAULT_LP_ALPHA = 0.15
DEFAULT_PLANAR_ALPHA = 0.2
DEFAULT_PLANAR_OFFSET_DEG = 90.0


def tilt_compensated_heading(mag: Vector3, gravity: Vector3) -> float:
    """Raw heading of the horizontal magnetic component.

    The field is projected onto the plane orthogonal to gravity using the
    cross product with the unit gravity vector.

    Args:
        mag: Magnetometer sample.
        gravity: Gravity estimate. A zero vector leaves no horizontal
            component and yields a heading of 0.

    Returns:
        Heading in degrees, [0, 360).
    """
    g_norm = gravity.norm
    if g_norm == 0.0:
        # atan2 of signed zeros could give 180
        return 0.0

    gx = gravity.x / g_norm
    gy = gravity.y / g_norm
    gz = gravity.z / g_norm

    hx = mag.y * gz - mag.z * gy
    hy = mag.z * gx - mag.x * gz

    heading = math.degrees(math.atan2(hy, hx))
    if heading < 0:
        heading += 360.0
    return normalize(heading)


class TiltCompensatedMagneticFilter:
    """Smoothed, tilt-compensated magnetic heading.

    Reads the current gravity estimate from a ``GravityTracker`` on every
    magnetometer sample. It never writes gravity.
    """

    def __init__(self, gravity: GravityTracker, lp_alpha: float = DEFAULT_LP_ALPHA):
        """Initialize magnetic filter.

        Args:
            gravity: Tracker providing the gravity estimate.
            lp_alpha: Circular low-pass gain in (0, 1].

        Raises:
            ValueError: If ``lp_alpha`` is out of range.
        """
        if not 0.0 < lp_alpha <= 1.0:
            raise ValueError(f"lp_alpha must be in (0, 1], got {lp_alpha}")

        self._gravity = gravity
        self._lp_alpha = lp_alpha
        self._heading = 0.0
        self._raw_heading = 0.0
        self._sample_count = 0
        self._warned_no_gravity = False

    def on_magnetometer_sample(self, mag: Vector3) -> float:
        """Update the magnetic heading from a field sample.

        Args:
            mag: Magnetometer sample.

        Returns:
            Smoothed magnetic heading in degrees.
        """
        gravity = self._gravity.current_gravity()
        if gravity.norm == 0.0 and not self._warned_no_gravity:
            logger.warning("No gravity sample yet, magnetic heading is uncompensated")
            self._warned_no_gravity = True

        self._raw_heading = tilt_compensated_heading(mag, gravity)
        self._heading = circular_blend(self._heading, self._raw_heading, self._lp_alpha)
        self._sample_count += 1

        logger.debug(
            "Magnetic heading: raw=%.2f smoothed=%.2f",
            self._raw_heading, self._heading
        )
        return self._heading

    @property
    def heading(self) -> float:
        """Current smoothed magnetic heading (the magnetic reference)."""
        return self._heading

    @property
    def raw_heading(self) -> float:
        """Last unsmoothed heading."""
        return self._raw_heading

    @property
    def lp_alpha(self) -> float:
        return self._lp_alpha

    @lp_alpha.setter
    def lp_alpha(self, value: float) -> None:
        if not 0.0 < value <= 1.0:
            raise ValueError(f"lp_alpha must be in (0, 1], got {value}")
        self._lp_alpha = value

    @property
    def sample_count(self) -> int:
        return self._sample_count

    def reset(self) -> None:
        """Reset filter state."""
        self._heading = 0.0
        self._raw_heading = 0.0
        self._sample_count = 0
        self._warned_no_gravity = False


class PlanarMagneticFilter:
    """Smoothed magnetic heading for a device held flat.

    Uses only the x/y field components; the offset rotates the sensor's
    x axis onto the device's forward direction.
    """

    def __init__(
        self,
        alpha: float = DEFAULT_PLANAR_ALPHA,
        offset_deg: float = DEFAULT_PLANAR_OFFSET_DEG,
    ):
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")

        self._alpha = alpha
        self._offset_deg = offset_deg
        self._heading = 0.0
        self._raw_heading = 0.0
        self._sample_count = 0

    def on_magnetometer_sample(self, mag: Vector3) -> float:
        """Update the heading from the horizontal field components."""
        self._raw_heading = normalize(math.degrees(math.atan2(mag.y, mag.x)) + self._offset_deg)
        self._heading = circular_blend(self._heading, self._raw_heading, self._alpha)
        self._sample_count += 1
        return self._heading

    @property
    def heading(self) -> float:
        return self._heading

    @property
    def raw_heading(self) -> float:
        return self._raw_heading

    @property
    def sample_count(self) -> int:
        return self._sample_count

    def reset(self) -> None:
        self._heading = 0.0
        self._raw_heading = 0.0
        self._sample_count = 0
