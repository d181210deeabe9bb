"""Sensor sources and sample dispatch."""

from .bus import SensorHub
from .uart import ImuUart, MockImuUart, ImuPacket, PacketPublisher, UartError
from .nmea import NmeaParser, NmeaError
from .gps import GpsReceiver, MockGpsReceiver
from .replay import SampleRecorder, ReplaySource, read_samples

__all__ = [
    "SensorHub",
    "ImuUart",
    "MockImuUart",
    "ImuPacket",
    "PacketPublisher",
    "UartError",
    "NmeaParser",
    "NmeaError",
    "GpsReceiver",
    "MockGpsReceiver",
    "SampleRecorder",
    "ReplaySource",
    "read_samples",
]
