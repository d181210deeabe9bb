"""Monitoring module for heading fusion."""

from .metrics import SampleRateMonitor, RateStats

__all__ = ["SampleRateMonitor", "RateStats"]
