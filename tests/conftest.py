"""Pytest fixtures for heading fusion tests."""

import math
import sys
from pathlib import Path
import pytest

parent_dir = Path(__file__).parent.parent
sys.path.insert(0, str(parent_dir))

from heading_fusion.core.config import Config
from heading_fusion.core.types import GyroSample, PositionReport, SensorKind, Vector3
from heading_fusion.communication.bus import SensorHub
from heading_fusion.fusion.aggregator import HeadingAggregator
from heading_fusion.fusion.engine import HeadingEngine


@pytest.fixture
def config() -> Config:
    """Create default configuration for tests."""
    return Config()


@pytest.fixture
def hub() -> SensorHub:
    return SensorHub()


@pytest.fixture
def engine(config) -> HeadingEngine:
    """Engine whose snapshots carry a fixed timestamp."""
    return HeadingEngine(config, aggregator=HeadingAggregator(clock=lambda: 0.0))


@pytest.fixture
def level_gravity() -> Vector3:
    """Device lying flat, z axis up."""
    return Vector3(0.0, 0.0, 1.0)


@pytest.fixture
def sample_sequence():
    """Short mixed sample stream: a device turning slowly on a table.

    Returns a list of (kind, sample) pairs in publication order.
    """
    samples = []
    for i in range(50):
        t = i * 0.02
        yaw = math.radians(5.0 * t)
        if i % 5 == 0:
            samples.append((SensorKind.ACCELEROMETER, Vector3(0.01, -0.02, 0.99)))
            samples.append((
                SensorKind.MAGNETOMETER,
                Vector3(-20.0 * math.sin(yaw), 20.0 * math.cos(yaw), 45.0),
            ))
        samples.append((SensorKind.GYROSCOPE, GyroSample(math.radians(5.0), t)))
        if i == 25:
            samples.append((
                SensorKind.POSITION,
                PositionReport(timestamp=t, true_heading=12.5, course=30.0, speed=2.0),
            ))
    return samples
