"""Listener registration with explicit cancellation handles."""

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class Subscription:
    """Handle returned for every registered listener.

    Calling ``remove()`` detaches the listener; no further events reach it.
    Removing twice is a no-op.
    """

    def __init__(self, channel: "EventChannel", listener: Listener, name: str = ""):
        self._channel = channel
        self._listener = listener
        self._name = name
        self._active = True

    @property
    def active(self) -> bool:
        """Whether the listener still receives events."""
        return self._active

    @property
    def name(self) -> str:
        return self._name

    def remove(self) -> None:
        """Detach the listener from its channel."""
        if not self._active:
            return
        self._active = False
        self._channel._discard(self)
        logger.debug("Subscription removed: %s", self._name or self._listener)

    def _deliver(self, *args: Any) -> None:
        if self._active:
            self._listener(*args)


class EventChannel:
    """Synchronous fan-out of events to registered listeners.

    Events are delivered in the caller's thread, in registration order,
    each listener running to completion before the next one.
    """

    def __init__(self, name: str = ""):
        self._name = name
        self._subscriptions: List[Subscription] = []

    def subscribe(self, listener: Listener) -> Subscription:
        """Register a listener.

        Args:
            listener: Callable invoked with the emitted arguments.

        Returns:
            Handle used to cancel the registration.
        """
        subscription = Subscription(self, listener, self._name)
        self._subscriptions.append(subscription)
        return subscription

    def emit(self, *args: Any) -> None:
        """Deliver an event to every active listener."""
        for subscription in list(self._subscriptions):
            subscription._deliver(*args)

    def _discard(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def __len__(self) -> int:
        return len(self._subscriptions)
