"""In-process event dispatcher used by channels.

Maps event names to ordered subscriber lists. Every registration gets its own
Subscription handle, so registering the same callable twice yields two
independent subscriptions and unsubscribing removes exactly one of them.
"""

from __future__ import annotations

import inspect
from typing import Any

from ..domain.exceptions import SubscriberError
from ..domain.models import ERROR_EVENT, MESSAGE_EVENT
from ..domain.types import Subscriber
from ..ports.logger import LoggerPort


class Subscription:
    """Handle for a single subscriber registration."""

    def __init__(self, dispatcher: EventDispatcher, event: str, callback: Subscriber):
        self._dispatcher = dispatcher
        self.event = event
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        """Whether the subscription still receives events."""
        return self._active

    def unsubscribe(self) -> None:
        """Remove this registration. Calling it again is a no-op."""
        if not self._active:
            return
        self._active = False
        self._dispatcher._remove(self)

    def __repr__(self) -> str:
        state = "active" if self._active else "inactive"
        return f"<Subscription event={self.event!r} {state}>"


class EventDispatcher:
    """Ordered event-name to subscriber registry."""

    def __init__(self, logger: LoggerPort | None = None, source: str | None = None):
        """Initialize the dispatcher.

        Args:
            logger: Logger for subscriber failures
            source: Name of the owning channel, used in error reports
        """
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._logger = logger
        self._source = source

    def subscribe(self, event: str | None, callback: Subscriber) -> Subscription:
        """Register a callback for an event.

        Args:
            event: Event name; None subscribes to the generic ``message`` event
            callback: Plain callable or coroutine function

        Returns:
            Subscription handle used to unsubscribe
        """
        if not callable(callback):
            raise TypeError(f"Subscriber must be callable, got {type(callback).__name__}")
        event = event or MESSAGE_EVENT
        subscription = Subscription(self, event, callback)
        self._subscriptions.setdefault(event, []).append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.event)
        if not subscriptions:
            return
        # Identity, not equality: the same callback may be registered twice
        for index, candidate in enumerate(subscriptions):
            if candidate is subscription:
                del subscriptions[index]
                break
        if not subscriptions:
            del self._subscriptions[subscription.event]

    def subscriber_count(self, event: str | None = None) -> int:
        """Count subscribers of one event, or of all events."""
        if event is not None:
            return len(self._subscriptions.get(event, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    def has_subscribers(self, event: str) -> bool:
        """Check if an event has any subscriber."""
        return bool(self._subscriptions.get(event))

    async def dispatch(self, event: str, *args: Any) -> int:
        """Invoke the subscribers of an event in registration order.

        Each subscriber finishes, including awaiting a returned awaitable,
        before the next one runs. Failures are logged and reported on the
        ``error`` event; a failing ``error`` subscriber is only logged.

        Returns:
            Number of subscribers invoked
        """
        # Snapshot so (un)subscribing from inside a callback is safe
        subscriptions = list(self._subscriptions.get(event, ()))
        invoked = 0
        for subscription in subscriptions:
            if not subscription.active:
                continue
            invoked += 1
            try:
                result = subscription.callback(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                if self._logger:
                    self._logger.exception(
                        f"Subscriber for '{event}' failed",
                        exc_info=e,
                        channel=self._source,
                        event=event,
                    )
                if event != ERROR_EVENT and self.has_subscribers(ERROR_EVENT):
                    await self.dispatch(ERROR_EVENT, SubscriberError(event, e, self._source))
        return invoked
