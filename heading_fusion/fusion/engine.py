"""Heading fusion engine.

Wires the gravity tracker, magnetic filter, gyro integrator and
complementary filter together and publishes their output through a
``HeadingAggregator``.

Data flow::

    accelerometer -> GravityTracker ----------+
                                              v
    magnetometer  -> magnetic filter -> magnetic reference -> Magnetic
                                              |
    gyroscope     -> GyroIntegrator -> ComplementaryFusion -> Calculated
    positioning   -----------------------------------------> True North, Satellite

Each sample handler is the single writer of its filter's state. Handlers
run to completion on the dispatching thread; cross-component reads are
snapshot reads of the latest value.
"""

import logging
from collections import Counter
from typing import Dict, Optional, Union

from ..core.config import Config
from ..core.events import Subscription
from ..core.types import (
    GyroSample,
    HeadingSnapshot,
    PositionReport,
    SensorKind,
    ValidationResult,
    Vector3,
)
from ..core.validation import SampleValidator
from .aggregator import HeadingAggregator
from .complementary import ComplementaryFusion
from .gravity import GravityTracker
from .gyro import GyroIntegrator
from .magnetometer import PlanarMagneticFilter, TiltCompensatedMagneticFilter

logger = logging.getLogger(__name__)


class HeadingEngine:
    """Real-time heading estimation from magnetometer, accelerometer,
    gyroscope and positioning samples.

    Usage:
        hub = SensorHub()
        engine = HeadingEngine(config)
        engine.attach(hub)

        hub.publish(SensorKind.ACCELEROMETER, Vector3(0.0, 0.0, 1.0))
        hub.publish(SensorKind.MAGNETOMETER, Vector3(20.0, 5.0, 45.0))
        print(engine.snapshot())
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        aggregator: Optional[HeadingAggregator] = None,
    ):
        """Initialize engine.

        Args:
            config: System configuration. Defaults are used if None.
            aggregator: Receiver of published headings. A new one is
                created if None.
        """
        if config is None:
            config = Config()

        self._config = config
        flt = config.filter

        self._gravity = GravityTracker()
        if flt.magnetic_mode == "planar":
            self._magnetic = PlanarMagneticFilter(
                alpha=flt.planar_alpha,
                offset_deg=flt.planar_offset_deg,
            )
        else:
            self._magnetic = TiltCompensatedMagneticFilter(
                self._gravity,
                lp_alpha=flt.lp_alpha,
            )
        self._gyro = GyroIntegrator()
        self._fusion = ComplementaryFusion(weight=flt.complementary_weight)
        self._aggregator = aggregator if aggregator is not None else HeadingAggregator()
        self._validator = SampleValidator(config)

        self._subscriptions: Dict[SensorKind, Subscription] = {}
        self._accepted: Counter = Counter()
        self._rejected: Counter = Counter()

        logger.info(
            "Heading engine created: mode=%s lp_alpha=%.2f weight=%.2f",
            flt.magnetic_mode, flt.lp_alpha, flt.complementary_weight
        )

    # ------------------------------------------------------------------
    # Sample handlers
    # ------------------------------------------------------------------

    def on_accelerometer(self, sample: Vector3) -> None:
        """Handle an accelerometer sample."""
        if not self._accept(SensorKind.ACCELEROMETER,
                            self._validator.validate_vector(sample, "accelerometer")):
            return
        self._gravity.on_accelerometer_sample(sample)

    def on_magnetometer(self, sample: Vector3) -> Optional[float]:
        """Handle a magnetometer sample.

        Returns:
            New magnetic heading, or None if the sample was rejected.
        """
        if not self._accept(SensorKind.MAGNETOMETER,
                            self._validator.validate_vector(sample, "magnetometer")):
            return None

        heading = self._magnetic.on_magnetometer_sample(sample)
        self._aggregator.update_magnetic(heading)
        return heading

    def on_gyroscope(
        self,
        sample: Union[GyroSample, Vector3, float],
        timestamp: Optional[float] = None,
    ) -> Optional[float]:
        """Handle a gyroscope sample.

        Args:
            sample: ``GyroSample``, full angular rate vector (z is used)
                or the vertical rate alone, in rad/s.
            timestamp: Sample time in seconds; required unless ``sample``
                is a ``GyroSample``.

        Returns:
            New calculated heading, or None if the sample was rejected.

        Raises:
            ValueError: If no timestamp is available.
        """
        if isinstance(sample, GyroSample):
            rate_z, now = sample.rate_z, sample.timestamp
        else:
            if timestamp is None:
                raise ValueError("timestamp is required for raw gyro rates")
            rate_z = sample.z if isinstance(sample, Vector3) else float(sample)
            now = timestamp

        check = self._validator.validate_rate(rate_z)
        time_check = self._validator.validate_timestamp(now, self._gyro.last_timestamp)
        for error in time_check.errors:
            check.add_error(error)

        previous = self._gyro.last_timestamp
        if check.is_valid and previous is not None and now >= previous:
            for error in self._validator.validate_step(rate_z, now - previous).errors:
                check.add_error(error)

        if not self._accept(SensorKind.GYROSCOPE, check):
            return None
        for warning in time_check.warnings:
            logger.debug("Gyro timing: %s", warning)

        integrated = self._gyro.on_gyro_sample(rate_z, now)
        fused = self._fusion.fuse(integrated, self._magnetic.heading)
        self._gyro.rebase(fused)
        self._aggregator.update_calculated(fused)
        return fused

    def on_position(self, report: PositionReport) -> None:
        """Handle a positioning report (true and satellite headings)."""
        self._accepted[SensorKind.POSITION] += 1
        if report.true_heading is not None or report.magnetic_heading is not None:
            self._aggregator.update_true_north(report.true_heading, report.magnetic_heading)
        if report.has_course:
            self._aggregator.update_satellite(report.course)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def attach(self, hub) -> Dict[SensorKind, Subscription]:
        """Register one handler per sensor stream on a hub.

        Args:
            hub: Object with ``subscribe(kind, handler) -> Subscription``.

        Returns:
            Subscription handle per sensor kind.
        """
        handlers = {
            SensorKind.ACCELEROMETER: self.on_accelerometer,
            SensorKind.MAGNETOMETER: self.on_magnetometer,
            SensorKind.GYROSCOPE: self.on_gyroscope,
            SensorKind.POSITION: self.on_position,
        }
        for kind, handler in handlers.items():
            if kind in self._subscriptions:
                self._subscriptions[kind].remove()
            self._subscriptions[kind] = hub.subscribe(kind, handler)

        logger.info("Heading engine attached to %d sensor streams", len(handlers))
        return dict(self._subscriptions)

    def detach(self, kind: SensorKind) -> None:
        """Stop processing one sensor stream. Other streams are unaffected."""
        subscription = self._subscriptions.pop(kind, None)
        if subscription is not None:
            subscription.remove()
            logger.info("Detached from %s stream", kind.value)

    def detach_all(self) -> None:
        """Stop processing every sensor stream."""
        for kind in list(self._subscriptions):
            self.detach(kind)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def snapshot(self) -> HeadingSnapshot:
        """Latest published headings."""
        return self._aggregator.snapshot()

    @property
    def aggregator(self) -> HeadingAggregator:
        return self._aggregator

    @property
    def gravity(self) -> Vector3:
        """Current gravity estimate."""
        return self._gravity.current_gravity()

    @property
    def magnetic_heading(self) -> float:
        """Current magnetic reference."""
        return self._magnetic.heading

    @property
    def calculated_heading(self) -> float:
        """Current fused heading."""
        return self._fusion.heading

    @property
    def subscriptions(self) -> Dict[SensorKind, Subscription]:
        return dict(self._subscriptions)

    def get_statistics(self) -> dict:
        """Accepted and rejected sample counts per sensor."""
        return {
            kind.value: {
                "accepted": self._accepted[kind],
                "rejected": self._rejected[kind],
            }
            for kind in SensorKind
        }

    def _accept(self, kind: SensorKind, result: ValidationResult) -> bool:
        if not result.is_valid:
            self._rejected[kind] += 1
            for error in result.errors:
                logger.warning("Rejected %s sample: %s", kind.value, error)
            return False
        self._accepted[kind] += 1
        return True
