"""Configuration management for heading fusion."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os

import yaml

MAGNETIC_MODES = ("tilt", "planar")


class ConfigError(ValueError):
    """Raised when a configuration value is out of range."""


@dataclass
class SensorConfig:
    """Nominal sample intervals requested from each sensor."""
    magnetometer_interval_ms: int = 100
    accelerometer_interval_ms: int = 100
    gyroscope_interval_ms: int = 20


@dataclass
class FilterConfig:
    """Heading filter gains."""
    lp_alpha: float = 0.15
    complementary_weight: float = 0.98
    magnetic_mode: str = "tilt"
    planar_alpha: float = 0.2
    planar_offset_deg: float = 90.0


@dataclass
class TimestampValidationConfig:
    """Gyro time step plausibility thresholds."""
    max_dt_s: float = 0.5
    min_dt_s: float = 0.001


@dataclass
class ValidationConfig:
    """Validation configuration."""
    timestamp: TimestampValidationConfig = field(default_factory=TimestampValidationConfig)


@dataclass
class UartConfig:
    """IMU UART configuration."""
    port: str = "/dev/ttyS0"
    baudrate: int = 115200
    timeout_s: float = 0.1


@dataclass
class GpsConfig:
    """Positioning receiver configuration."""
    enabled: bool = True
    port: str = "/dev/ttyAMA0"
    baudrate: int = 9600
    min_speed_ms: float = 0.5


@dataclass
class MonitoringConfig:
    """Sample rate monitoring configuration."""
    window_size: int = 500
    log_interval_s: float = 10.0


@dataclass
class WebConfig:
    """Web bridge configuration."""
    host: str = "0.0.0.0"
    port: int = 5000
    emit_rate_hz: int = 5


@dataclass
class Config:
    """Complete configuration for heading fusion."""
    sensor: SensorConfig = field(default_factory=SensorConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    uart: UartConfig = field(default_factory=UartConfig)
    gps: GpsConfig = field(default_factory=GpsConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    web: WebConfig = field(default_factory=WebConfig)

    def __post_init__(self):
        validate_config(self)


def validate_config(config: Config) -> None:
    """Check filter gains and rates.

    Raises:
        ConfigError: If any value is outside its allowed range.
    """
    flt = config.filter
    if not 0.0 < flt.lp_alpha <= 1.0:
        raise ConfigError(f"filter.lp_alpha must be in (0, 1], got {flt.lp_alpha}")
    if not 0.0 < flt.planar_alpha <= 1.0:
        raise ConfigError(f"filter.planar_alpha must be in (0, 1], got {flt.planar_alpha}")
    if not 0.0 <= flt.complementary_weight <= 1.0:
        raise ConfigError(
            f"filter.complementary_weight must be in [0, 1], got {flt.complementary_weight}"
        )
    if flt.magnetic_mode not in MAGNETIC_MODES:
        raise ConfigError(
            f"filter.magnetic_mode must be one of {MAGNETIC_MODES}, got {flt.magnetic_mode!r}"
        )
    if config.web.emit_rate_hz <= 0:
        raise ConfigError(f"web.emit_rate_hz must be positive, got {config.web.emit_rate_hz}")


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file. If None, uses
            ``HEADING_CONFIG_PATH`` or the bundled default.

    Returns:
        Configuration object with all settings.

    Raises:
        FileNotFoundError: If specified config file doesn't exist.
        ConfigError: If a value is out of range.
    """
    if config_path is None:
        env_path = os.environ.get("HEADING_CONFIG_PATH")
        if env_path:
            config_path = env_path
        else:
            default_path = Path(__file__).parent.parent.parent / "config" / "default.yaml"
            if default_path.exists():
                config_path = str(default_path)
            else:
                return Config()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return Config()

    return _build_config(data)


def _build_config(data: dict) -> Config:
    """Build Config object from dictionary."""
    val_data = data.get("validation", {})
    validation = ValidationConfig(
        timestamp=TimestampValidationConfig(**val_data.get("timestamp", {})),
    )

    return Config(
        sensor=SensorConfig(**data.get("sensor", {})),
        filter=FilterConfig(**data.get("filter", {})),
        validation=validation,
        uart=UartConfig(**data.get("uart", {})),
        gps=GpsConfig(**data.get("gps", {})),
        monitoring=MonitoringConfig(**data.get("monitoring", {})),
        web=WebConfig(**data.get("web", {})),
    )
