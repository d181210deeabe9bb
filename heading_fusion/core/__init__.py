"""Core module for heading fusion."""

from .types import (
    SensorKind,
    Vector3,
    GyroSample,
    PositionReport,
    HeadingSnapshot,
    ValidationResult,
    SensorStats,
)
from .angles import normalize, shortest_delta, circular_blend
from .events import EventChannel, Subscription
from .validation import SampleValidator
from .config import Config, ConfigError, load_config

__all__ = [
    "SensorKind",
    "Vector3",
    "GyroSample",
    "PositionReport",
    "HeadingSnapshot",
    "ValidationResult",
    "SensorStats",
    "normalize",
    "shortest_delta",
    "circular_blend",
    "EventChannel",
    "Subscription",
    "SampleValidator",
    "Config",
    "ConfigError",
    "load_config",
]
