"""Per-sensor sample rate monitoring."""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional
import numpy as np

from ..core.config import Config
from ..core.events import Subscription
from ..core.types import SensorKind

logger = logging.getLogger(__name__)


@dataclass
class RateStats:
    """Arrival statistics for one sensor stream."""
    count: int
    rate_hz: float
    mean_dt_ms: float
    std_dt_ms: float
    max_dt_ms: float

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "count": self.count,
            "rate_hz": self.rate_hz,
            "mean_dt_ms": self.mean_dt_ms,
            "std_dt_ms": self.std_dt_ms,
            "max_dt_ms": self.max_dt_ms,
        }


class SampleRateMonitor:
    """Tracks how often each sensor stream delivers samples.

    Arrival times are kept in a sliding window per stream; the effective
    rate is derived from the mean interval over that window.
    """

    def __init__(self, config: Config, clock: Callable[[], float] = time.monotonic):
        """Initialize monitor.

        Args:
            config: System configuration with monitoring settings.
            clock: Arrival time source, in seconds.
        """
        self._mon_cfg = config.monitoring
        self._clock = clock

        window = self._mon_cfg.window_size
        self._arrivals: Dict[SensorKind, Deque[float]] = {
            kind: deque(maxlen=window) for kind in SensorKind
        }
        self._counts: Dict[SensorKind, int] = {kind: 0 for kind in SensorKind}
        self._subscriptions: List[Subscription] = []
        self._last_log_time: Optional[float] = None

    def attach(self, hub) -> None:
        """Record an arrival for every sample published on a hub."""
        for kind in SensorKind:
            self._subscriptions.append(
                hub.subscribe(kind, lambda _sample, kind=kind: self.record(kind))
            )

    def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.remove()
        self._subscriptions = []

    def record(self, kind: SensorKind, timestamp: Optional[float] = None) -> None:
        """Record one arrival.

        Args:
            kind: Stream the sample arrived on.
            timestamp: Arrival time; the monitor's clock if omitted.
        """
        kind = SensorKind(kind)
        self._arrivals[kind].append(self._clock() if timestamp is None else timestamp)
        self._counts[kind] += 1

    def get_stats(self) -> Dict[str, RateStats]:
        """Get rate statistics for every stream, keyed by stream name."""
        return {kind.value: self._stream_stats(kind) for kind in SensorKind}

    def _stream_stats(self, kind: SensorKind) -> RateStats:
        arrivals = self._arrivals[kind]
        if len(arrivals) < 2:
            return RateStats(
                count=self._counts[kind],
                rate_hz=0.0,
                mean_dt_ms=0.0,
                std_dt_ms=0.0,
                max_dt_ms=0.0,
            )

        dt_array = np.diff(np.array(arrivals)) * 1000.0
        mean_dt = float(np.mean(dt_array))

        return RateStats(
            count=self._counts[kind],
            rate_hz=1000.0 / mean_dt if mean_dt > 0 else 0.0,
            mean_dt_ms=mean_dt,
            std_dt_ms=float(np.std(dt_array)),
            max_dt_ms=float(np.max(dt_array)),
        )

    def maybe_log(self, rejections: Optional[Dict[str, dict]] = None) -> bool:
        """Log statistics if the log interval has elapsed.

        Args:
            rejections: Per-stream accepted/rejected counts, as returned by
                ``HeadingEngine.get_statistics``.

        Returns:
            True if a report was logged.
        """
        now = self._clock()
        if self._last_log_time is None:
            self._last_log_time = now
            return False
        if now - self._last_log_time < self._mon_cfg.log_interval_s:
            return False

        self.log_stats(rejections)
        self._last_log_time = now
        return True

    def log_stats(self, rejections: Optional[Dict[str, dict]] = None) -> None:
        for name, stats in self.get_stats().items():
            if stats.count == 0:
                continue
            rejected = 0
            if rejections and name in rejections:
                rejected = rejections[name].get("rejected", 0)
            logger.info(
                "%s: %d samples, rate=%.1f Hz, dt=%.2f+/-%.2f ms, rejected=%d",
                name,
                stats.count,
                stats.rate_hz,
                stats.mean_dt_ms,
                stats.std_dt_ms,
                rejected,
            )

    def reset(self) -> None:
        """Reset all metrics."""
        for arrivals in self._arrivals.values():
            arrivals.clear()
        self._counts = {kind: 0 for kind in SensorKind}
        self._last_log_time = None
