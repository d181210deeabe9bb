"""Heading estimation from IMU and positioning samples.

Publishes four headings: magnetic, true north, satellite course and a
gyro/magnetometer fused heading.
"""

from .core import Config, HeadingSnapshot, SensorKind, Vector3, GyroSample, PositionReport, load_config
from .communication import SensorHub
from .fusion import HeadingEngine, HeadingAggregator

__version__ = "1.0.0"

__all__ = [
    "Config",
    "HeadingSnapshot",
    "SensorKind",
    "Vector3",
    "GyroSample",
    "PositionReport",
    "load_config",
    "SensorHub",
    "HeadingEngine",
    "HeadingAggregator",
]
