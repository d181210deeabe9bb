"""Heading fusion filters."""

from .gravity import GravityTracker
from .magnetometer import (
    TiltCompensatedMagneticFilter,
    PlanarMagneticFilter,
    tilt_compensated_heading,
)
from .gyro import GyroIntegrator
from .complementary import ComplementaryFusion
from .aggregator import HeadingAggregator
from .engine import HeadingEngine

__all__ = [
    "GravityTracker",
    "TiltCompensatedMagneticFilter",
    "PlanarMagneticFilter",
    "tilt_compensated_heading",
    "GyroIntegrator",
    "ComplementaryFusion",
    "HeadingAggregator",
    "HeadingEngine",
]
