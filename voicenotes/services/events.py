"""Fire-and-forget publish/subscribe channel for batch progress.

Every subscriber owns a bounded queue. ``publish`` never waits: the event
is put on each current queue and dropped for any subscriber whose queue
is full, so a stalled consumer only loses its own events. Events are
delivered to whoever is subscribed at publish time; there is no replay
buffer.

Usage::

    broadcaster = ProgressBroadcaster()
    subscription = broadcaster.subscribe()
    broadcaster.publish(ProgressEvent(...))
    async for event in subscription:
        ...
    subscription.close()
"""

import asyncio
import logging

from voicenotes.core.models import BatchEvent

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


class Subscription:
    """One subscriber's private event queue.

    Iterate it (``async for event in subscription``) from the consumer's
    own task, or call :meth:`drain` to take whatever is already queued.
    """

    def __init__(self, broadcaster: "ProgressBroadcaster", maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue[BatchEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def offer(self, event: BatchEvent) -> bool:
        """Queue *event* without waiting; returns False if it was dropped."""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    async def get(self) -> BatchEvent:
        return await self._queue.get()

    def drain(self) -> list[BatchEvent]:
        """Remove and return every queued event."""
        events = []
        while not self._queue.empty():
            events.append(self._queue.get_nowait())
        return events

    def close(self) -> None:
        self._broadcaster.unsubscribe(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> BatchEvent:
        return await self.get()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ProgressBroadcaster:
    """Broadcasts progress and completion events to any number of subscribers."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, maxsize: int = DEFAULT_QUEUE_SIZE) -> Subscription:
        """Register a new subscriber with a queue holding up to *maxsize* events."""
        subscription = Subscription(self, maxsize=maxsize)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove *subscription*; unknown subscriptions are ignored."""
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    def publish(self, event: BatchEvent) -> None:
        """Queue *event* for every current subscriber without blocking."""
        for subscription in list(self._subscriptions):
            if not subscription.offer(event):
                logger.warning(
                    "Progress subscriber queue full; dropped %s event (%d dropped so far)",
                    event.type,
                    subscription.dropped,
                )


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_broadcaster: ProgressBroadcaster | None = None


def get_broadcaster() -> ProgressBroadcaster:
    """Return the process-wide broadcaster, creating it on first call."""
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = ProgressBroadcaster()
    return _broadcaster
