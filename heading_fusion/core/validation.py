"""Input validation for sensor samples."""

import math
from typing import Optional

from .types import ValidationResult, Vector3
from .config import Config


class SampleValidator:
    """Rejects samples that would poison the heading filters.

    A single NaN fed into a circular blend propagates into every later
    heading, so non-finite values are errors rather than warnings.
    """

    def __init__(self, config: Config):
        """Initialize validator with configuration.

        Args:
            config: System configuration with validation thresholds.
        """
        self._config = config

    def validate_vector(self, sample: Vector3, label: str = "sample") -> ValidationResult:
        """Validate a triaxial sample.

        Args:
            sample: Vector to validate.
            label: Sensor name used in messages.

        Returns:
            ValidationResult with validation status and any errors.
        """
        result = ValidationResult(is_valid=True)

        for axis, value in (("x", sample.x), ("y", sample.y), ("z", sample.z)):
            if not math.isfinite(value):
                result.add_error(f"Non-finite {label} {axis}: {value}")

        return result

    def validate_rate(self, rate_z: float) -> ValidationResult:
        """Validate a vertical-axis angular rate."""
        result = ValidationResult(is_valid=True)
        if not math.isfinite(rate_z):
            result.add_error(f"Non-finite angular rate: {rate_z}")
        return result

    def validate_timestamp(
        self,
        timestamp: float,
        previous: Optional[float] = None,
    ) -> ValidationResult:
        """Validate a sample timestamp against the previous one.

        Args:
            timestamp: Sample time in seconds.
            previous: Time of the previous sample of the same sensor.

        Returns:
            ValidationResult; non-finite times are errors, odd steps warnings.
        """
        result = ValidationResult(is_valid=True)

        if not math.isfinite(timestamp):
            result.add_error(f"Non-finite timestamp: {timestamp}")
            return result

        if previous is None:
            return result

        dt = timestamp - previous
        cfg = self._config.validation.timestamp

        if dt < 0:
            result.add_warning(f"Non-monotonic timestamp: dt={dt:.6f}s")
        elif dt < cfg.min_dt_s:
            result.add_warning(f"dt too small: {dt*1000:.2f}ms")
        elif dt > cfg.max_dt_s:
            result.add_warning(f"dt too large: {dt*1000:.2f}ms")

        return result

    def validate_step(self, rate_z: float, dt: float) -> ValidationResult:
        """Validate the heading change a gyro sample would integrate.

        A finite rate over a finite step can still overflow once
        converted to degrees; such a step is an error.

        Args:
            rate_z: Angular rate around the vertical axis (rad/s).
            dt: Time since the previous gyro sample in seconds.
        """
        result = ValidationResult(is_valid=True)
        delta = math.degrees(rate_z) * dt
        if not math.isfinite(delta):
            result.add_error(f"Non-finite heading step: rate={rate_z} dt={dt}")
        return result
