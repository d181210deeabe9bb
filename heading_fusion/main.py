#!/usr/bin/env python3
"""Main entry point for heading fusion.

Runs the single-threaded estimation loop and outputs JSON-formatted
heading snapshots to stdout for web server integration.
"""

import argparse
import json
import logging
import signal
import sys
import time
from typing import Optional, TextIO

import yaml

from .core import Config, ConfigError, HeadingSnapshot, SensorKind, load_config
from .communication import (
    GpsReceiver,
    ImuUart,
    MockGpsReceiver,
    MockImuUart,
    PacketPublisher,
    ReplaySource,
    SampleRecorder,
    SensorHub,
    UartError,
)
from .fusion import HeadingEngine
from .monitoring import SampleRateMonitor

logger = logging.getLogger(__name__)

SHUTDOWN_REQUESTED = False


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global SHUTDOWN_REQUESTED
    SHUTDOWN_REQUESTED = True
    logger.info("Shutdown requested")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


class SampleClock:
    """Time of the most recent sample seen by the loop, in seconds."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class SnapshotEmitter:
    """Writes one JSON line per emit interval."""

    # sample times are sums of float periods
    TOLERANCE_S = 1e-9

    def __init__(self, interval_s: float, out: TextIO):
        self._interval = interval_s
        self._out = out
        self._last_emit: Optional[float] = None
        self.emit_count = 0

    def maybe_emit(self, snapshot: HeadingSnapshot, now: float) -> bool:
        if self._last_emit is not None:
            if now - self._last_emit < self._interval - self.TOLERANCE_S:
                return False
        print(json.dumps(snapshot.to_dict()), file=self._out, flush=True)
        self._last_emit = now
        self.emit_count += 1
        return True


def _open_gps(config: Config, use_mock: bool, clock: SampleClock):
    """Open the positioning receiver, or return None if unavailable."""
    if not config.gps.enabled:
        return None

    if use_mock:
        gps = MockGpsReceiver(clock=clock)
        gps.open()
        return gps

    gps = GpsReceiver(config)
    try:
        gps.open()
    except UartError as e:
        logger.warning("GPS unavailable, continuing without satellite heading: %s", e)
        return None
    return gps


def run_replay(
    config: Config,
    replay_path: str,
    record_path: Optional[str] = None,
    max_samples: Optional[int] = None,
    out: Optional[TextIO] = None,
) -> int:
    """Feed a recording through the engine.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    hub = SensorHub()
    engine = HeadingEngine(config)
    engine.attach(hub)
    clock = SampleClock()
    monitor = SampleRateMonitor(config, clock=clock)
    monitor.attach(hub)
    emitter = SnapshotEmitter(1.0 / config.web.emit_rate_hz, out or sys.stdout)

    recorder = SampleRecorder(record_path, clock=clock) if record_path else None
    count = 0

    try:
        source = ReplaySource(replay_path)
        if recorder is not None:
            recorder.open()
            recorder.attach(hub)

        logger.info("Replaying %s", replay_path)
        for kind, sample in source.samples():
            if SHUTDOWN_REQUESTED or (max_samples is not None and count >= max_samples):
                break

            timestamp = getattr(sample, "timestamp", None)
            if timestamp is not None:
                clock.now = timestamp

            hub.publish(kind, sample)
            count += 1

            if kind is SensorKind.GYROSCOPE:
                emitter.maybe_emit(engine.snapshot(), clock.now)

    except (FileNotFoundError, ValueError) as e:
        logger.error("Replay failed: %s", e)
        return 1

    finally:
        if recorder is not None:
            recorder.close()
        _log_final_statistics(engine, monitor)
        logger.info("  Samples replayed: %d", count)
        logger.info("  Snapshots emitted: %d", emitter.emit_count)

    return 0


def run_fusion_loop(
    config: Config,
    use_mock: bool = False,
    record_path: Optional[str] = None,
    max_packets: Optional[int] = None,
    realtime: bool = True,
    out: Optional[TextIO] = None,
) -> int:
    """Run the main heading estimation loop.

    Args:
        config: System configuration.
        use_mock: If True, use mock IMU and GPS for testing.
        record_path: Write every published sample to this CSV file.
        max_packets: Stop after this many IMU packets.
        realtime: Pace the mock IMU at the sensor rate.
        out: Stream receiving the JSON snapshots. Defaults to stdout.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    if use_mock:
        imu = MockImuUart(config, realtime=realtime)
    else:
        imu = ImuUart(config)

    hub = SensorHub()
    engine = HeadingEngine(config)
    engine.attach(hub)
    publisher = PacketPublisher(hub, config)
    clock = SampleClock()
    monitor = SampleRateMonitor(config, clock=clock)
    monitor.attach(hub)
    emitter = SnapshotEmitter(1.0 / config.web.emit_rate_hz, out or sys.stdout)

    recorder = SampleRecorder(record_path, clock=clock) if record_path else None
    gps = None
    packets = 0

    try:
        imu.open()
        clock.now = time.monotonic()
        gps = _open_gps(config, use_mock, clock)

        if recorder is not None:
            recorder.open()
            recorder.attach(hub)

        logger.info("Starting heading fusion")

        while not SHUTDOWN_REQUESTED:
            if max_packets is not None and packets >= max_packets:
                break

            packet = imu.read_packet(timeout_s=0.5)
            if packet is None:
                continue

            packets += 1
            clock.now = packet.timestamp
            publisher.publish(packet)

            if gps is not None:
                for report in gps.poll():
                    hub.publish(SensorKind.POSITION, report)

            emitter.maybe_emit(engine.snapshot(), packet.timestamp)
            monitor.maybe_log(engine.get_statistics())

    except UartError as e:
        logger.error("UART error: %s", e)
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")

    finally:
        imu.close()
        if gps is not None:
            gps.close()
        if recorder is not None:
            recorder.close()

        sensor_stats = imu.stats
        _log_final_statistics(engine, monitor)
        logger.info("  Packets: %d total, %d valid (%.1f%% lost)",
                    sensor_stats.total_packets, sensor_stats.valid_packets,
                    sensor_stats.packet_loss_rate * 100.0)
        logger.info("  CRC errors: %d", sensor_stats.crc_errors)
        if gps is not None:
            logger.info("  GPS reports: %d", gps.report_count)
        logger.info("  Snapshots emitted: %d", emitter.emit_count)

    return 0


def _log_final_statistics(engine: HeadingEngine, monitor: SampleRateMonitor) -> None:
    snapshot = engine.snapshot()
    logger.info("Final statistics:")
    logger.info("  Headings: %s", snapshot.rounded())
    for name, counts in engine.get_statistics().items():
        logger.info("  %s: %d accepted, %d rejected",
                    name, counts["accepted"], counts["rejected"])
    monitor.log_stats(engine.get_statistics())


def main(argv=None) -> int:
    """Application entry point.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        description="Heading estimation from IMU and positioning samples"
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use mock IMU and GPS for testing",
    )
    parser.add_argument(
        "--replay",
        type=str,
        default=None,
        metavar="FILE",
        help="Replay a recorded CSV file instead of reading sensors",
    )
    parser.add_argument(
        "--record",
        type=str,
        default=None,
        metavar="FILE",
        help="Record every sample to a CSV file",
    )
    parser.add_argument(
        "-n", "--max-packets",
        type=int,
        default=None,
        help="Stop after this many packets (or samples when replaying)",
    )
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except (ConfigError, TypeError, yaml.YAMLError) as e:
        logger.error("Failed to load configuration: %s", e)
        return 1

    if args.replay:
        return run_replay(
            config,
            args.replay,
            record_path=args.record,
            max_samples=args.max_packets,
        )

    return run_fusion_loop(
        config,
        use_mock=args.mock,
        record_path=args.record,
        max_packets=args.max_packets,
    )


if __name__ == "__main__":
    sys.exit(main())
