"""Single-threaded dispatch of sensor samples to their handlers."""

import logging
from typing import Any, Callable, Dict

from ..core.events import EventChannel, Subscription
from ..core.types import SensorKind

logger = logging.getLogger(__name__)


class SensorHub:
    """Routes samples from sources to subscribed handlers.

    ``publish`` runs every handler of that sensor to completion before
    returning, so a source loop that publishes samples one at a time
    gives each handler exclusive access to its own state. Each sensor
    stream can be cancelled independently through its ``Subscription``.
    """

    def __init__(self):
        self._channels: Dict[SensorKind, EventChannel] = {
            kind: EventChannel(kind.value) for kind in SensorKind
        }
        self._published: Dict[SensorKind, int] = {kind: 0 for kind in SensorKind}

    def subscribe(self, kind: SensorKind, handler: Callable[[Any], Any]) -> Subscription:
        """Register a handler for one sensor stream.

        Args:
            kind: Sensor stream to listen to.
            handler: Called with each published sample.

        Returns:
            Handle that cancels the registration.
        """
        subscription = self._channels[SensorKind(kind)].subscribe(handler)
        logger.debug("Handler subscribed to %s", SensorKind(kind).value)
        return subscription

    def publish(self, kind: SensorKind, sample: Any) -> None:
        """Deliver a sample to every handler of its stream."""
        kind = SensorKind(kind)
        self._published[kind] += 1
        self._channels[kind].emit(sample)

    def subscriber_count(self, kind: SensorKind) -> int:
        return len(self._channels[SensorKind(kind)])

    @property
    def published_counts(self) -> Dict[SensorKind, int]:
        return dict(self._published)
