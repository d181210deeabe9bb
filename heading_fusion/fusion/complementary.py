"""Complementary fusion of gyro and magnetic headings."""

from typing import Optional

from ..core.angles import normalize, shortest_delta

DEFAULT_WEIGHT = 0.98


class ComplementaryFusion:
    """Drift-corrected heading from an integrated gyro heading.

    The gyro heading is trusted for short-term changes while each call
    pulls it towards the magnetic reference along the shortest arc:

        fused = w * G + (1 - w) * (G - shortest_delta(G, M))

    A weight close to 1 is responsive; close to 0 is anchored to the
    magnetometer.
    """

    def __init__(self, weight: float = DEFAULT_WEIGHT):
        """Initialize complementary filter.

        Args:
            weight: Default gyro weight in [0, 1].

        Raises:
            ValueError: If ``weight`` is out of range.
        """
        self._check_weight(weight)
        self._weight = weight
        self._heading = 0.0
        self._update_count = 0

    def fuse(
        self,
        gyro_integrated: float,
        magnetic_reference: float,
        weight: Optional[float] = None,
    ) -> float:
        """Produce the next calculated heading.

        Args:
            gyro_integrated: Integrated gyro heading in degrees.
            magnetic_reference: Current smoothed magnetic heading in degrees.
            weight: Gyro weight for this call; defaults to the filter weight.

        Returns:
            Fused heading in degrees, [0, 360).
        """
        if weight is None:
            weight = self._weight
        else:
            self._check_weight(weight)

        correction = gyro_integrated - shortest_delta(gyro_integrated, magnetic_reference)
        self._heading = normalize(weight * gyro_integrated + (1 - weight) * correction)
        self._update_count += 1
        return self._heading

    @property
    def heading(self) -> float:
        """Last fused heading."""
        return self._heading

    @property
    def weight(self) -> float:
        return self._weight

    @property
    def update_count(self) -> int:
        return self._update_count

    def reset(self) -> None:
        self._heading = 0.0
        self._update_count = 0

    @staticmethod
    def _check_weight(weight: float) -> None:
        if not 0.0 <= weight <= 1.0:
            raise ValueError(f"weight must be in [0, 1], got {weight}")
