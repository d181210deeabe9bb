"""Data types for heading estimation."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import numpy as np
from numpy.typing import NDArray


class SensorKind(str, Enum):
    """Sample streams consumed by the heading engine."""
    ACCELEROMETER = "accelerometer"
    MAGNETOMETER = "magnetometer"
    GYROSCOPE = "gyroscope"
    POSITION = "position"


@dataclass(frozen=True)
class Vector3:
    """Single triaxial sensor sample in sensor-native units.

    - Accelerometer: g (only the direction is used)
    - Magnetometer: any consistent unit
    - Gyroscope: rad/s
    """
    x: float
    y: float
    z: float

    @classmethod
    def zero(cls) -> "Vector3":
        """Return the zero vector."""
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def from_array(cls, arr) -> "Vector3":
        """Create from a sequence or numpy array [x, y, z]."""
        return cls(x=float(arr[0]), y=float(arr[1]), z=float(arr[2]))

    def to_array(self) -> NDArray[np.float64]:
        """Convert to numpy array [x, y, z]."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @property
    def norm(self) -> float:
        """Euclidean norm."""
        return math.hypot(self.x, self.y, self.z)

    def is_finite(self) -> bool:
        """Check all components are finite."""
        return bool(np.all(np.isfinite(self.to_array())))


@dataclass(frozen=True)
class GyroSample:
    """Angular rate around the vertical axis with its arrival time."""
    rate_z: float     # rad/s
    timestamp: float  # seconds, monotonic clock

    @classmethod
    def from_vector(cls, rate: Vector3, timestamp: float) -> "GyroSample":
        """Keep the z component of a full angular rate vector."""
        return cls(rate_z=rate.z, timestamp=timestamp)


@dataclass(frozen=True)
class PositionReport:
    """Heading-related report from a positioning receiver.

    Headings are in degrees. A negative ``course`` follows the platform
    convention for "no course available", e.g. while stationary.
    """
    timestamp: float
    true_heading: Optional[float] = None
    magnetic_heading: Optional[float] = None
    course: Optional[float] = None
    speed: Optional[float] = None       # m/s
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_course(self) -> bool:
        """Whether the report carries a usable satellite course."""
        return (self.course is not None
                and math.isfinite(self.course)
                and self.course >= 0)


@dataclass(frozen=True)
class HeadingSnapshot:
    """The four published headings at one instant."""
    magnetic: float
    true_north: float
    satellite: Optional[float]
    calculated: float
    timestamp: float

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "magnetic": self.magnetic,
            "true_north": self.true_north,
            "satellite": self.satellite,
            "calculated": self.calculated,
            "timestamp": self.timestamp,
        }

    def rounded(self) -> dict:
        """Whole-degree values for display."""
        def _round(value: Optional[float]) -> Optional[int]:
            if value is None:
                return None
            return int(round(value)) % 360

        return {
            "magnetic": _round(self.magnetic),
            "true_north": _round(self.true_north),
            "satellite": _round(self.satellite),
            "calculated": _round(self.calculated),
        }


@dataclass
class ValidationResult:
    """Result of sample validation."""
    is_valid: bool
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.is_valid = False
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


@dataclass
class SensorStats:
    """Statistics for a packet-based sensor link."""
    total_packets: int = 0
    valid_packets: int = 0
    crc_errors: int = 0
    timeouts: int = 0

    @property
    def packet_loss_rate(self) -> float:
        """Fraction of packets lost."""
        if self.total_packets == 0:
            return 0.0
        return 1.0 - (self.valid_packets / self.total_packets)

    @property
    def crc_error_rate(self) -> float:
        """Fraction of packets with CRC errors."""
        if self.total_packets == 0:
            return 0.0
        return self.crc_errors / self.total_packets
