"""In-process event bus for live dashboard notifications.

Each observer owns an asyncio.Queue. ``publish`` is synchronous: it copies
the current subscription list and puts the event into every open queue
without awaiting, so an observer registered after ``publish`` returns never
sees that event, and each observer receives events in publish order. Nothing
is buffered for observers that are not subscribed.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from mikrotik_dashboard.domain.models import Event
from mikrotik_dashboard.infra.observability import metrics

logger = logging.getLogger(__name__)


class SubscriberLimitError(Exception):
    """Raised when the bus already has the maximum number of observers."""

    pass


@dataclass(eq=False)
class EventSubscription:
    """One observer of the event bus.

    Attributes:
        subscription_id: Unique identifier for this subscription
        client_id: Free-form label of the subscriber (e.g. remote address)
        queue: Pending events; ``None`` is the close marker
        created_at: Timestamp when subscription was created
        closed: Set once unsubscribed; publish skips closed subscriptions
    """

    subscription_id: str = field(default_factory=lambda: str(uuid4()))
    client_id: str = field(default="")
    queue: asyncio.Queue[Event | None] = field(default_factory=asyncio.Queue)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    closed: bool = False
    delivered: int = 0
    dropped: int = 0


class EventBus:
    """Publish/subscribe channel with snapshot-at-publish delivery.

    Example:
        bus = EventBus(max_subscribers=100, queue_size=1000)

        subscription = await bus.subscribe(client_id="10.0.0.5")
        async for event in bus.stream(subscription):
            send(event.to_wire())

        bus.publish(Event.log("Connecting to core-router"))
    """

    def __init__(self, max_subscribers: int = 100, queue_size: int = 1000) -> None:
        """Initialize the bus.

        Args:
            max_subscribers: Maximum concurrent observers (0 = unlimited)
            queue_size: Per-observer queue bound (0 = unbounded)
        """
        self.max_subscribers = max_subscribers
        self.queue_size = queue_size

        self._subscriptions: dict[str, EventSubscription] = {}
        self._subscription_lock = asyncio.Lock()

        self._total_published = 0
        self._total_delivered = 0
        self._total_dropped = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def subscribe(self, client_id: str = "") -> EventSubscription:
        """Register a new observer. It only receives events published from now on.

        Raises:
            SubscriberLimitError: If max_subscribers observers are already registered
        """
        async with self._subscription_lock:
            if self.max_subscribers and len(self._subscriptions) >= self.max_subscribers:
                raise SubscriberLimitError(
                    f"Subscriber limit reached: {len(self._subscriptions)} active "
                    f"(max: {self.max_subscribers})"
                )

            # One slot on top of the bound is reserved for the close marker
            maxsize = self.queue_size + 1 if self.queue_size > 0 else 0
            subscription = EventSubscription(
                client_id=client_id,
                queue=asyncio.Queue(maxsize=maxsize),
            )
            self._subscriptions[subscription.subscription_id] = subscription
            metrics.update_event_subscribers(len(self._subscriptions))

        logger.info(
            "Observer subscribed",
            extra={
                "subscription_id": subscription.subscription_id,
                "subscriber_count": len(self._subscriptions),
            },
        )
        return subscription

    def unsubscribe(self, subscription: EventSubscription) -> None:
        """Remove an observer. Safe to call more than once."""
        if subscription.closed:
            return

        subscription.closed = True
        self._subscriptions.pop(subscription.subscription_id, None)
        metrics.update_event_subscribers(len(self._subscriptions))

        # Wake a stream blocked on get()
        try:
            subscription.queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

        logger.info(
            "Observer unsubscribed",
            extra={
                "subscription_id": subscription.subscription_id,
                "subscriber_count": len(self._subscriptions),
            },
        )

    def publish(self, event: Event) -> int:
        """Deliver an event to every observer registered at call time.

        Never raises for observer-side problems: closed observers are
        skipped and a full queue drops that one delivery.

        Returns:
            Number of observers the event was queued for
        """
        snapshot = list(self._subscriptions.values())
        self._total_published += 1
        metrics.record_event_published(event.type.value, event.level.value)

        delivered = 0
        for subscription in snapshot:
            if subscription.closed:
                continue
            # Keep the last slot free for the close marker
            if self.queue_size > 0 and subscription.queue.qsize() >= self.queue_size:
                self._drop(subscription, event)
                continue
            try:
                subscription.queue.put_nowait(event)
            except asyncio.QueueFull:
                self._drop(subscription, event)
                continue
            subscription.delivered += 1
            delivered += 1

        self._total_delivered += delivered
        logger.debug(
            "Published event",
            extra={
                "event_type": event.type.value,
                "event_level": event.level.value,
                "device_id": event.device_id,
                "subscriber_count": delivered,
            },
        )
        return delivered

    def _drop(self, subscription: EventSubscription, event: Event) -> None:
        subscription.dropped += 1
        self._total_dropped += 1
        metrics.record_event_dropped(reason="queue_full")
        logger.warning(
            "Observer queue full, dropping event",
            extra={
                "subscription_id": subscription.subscription_id,
                "event_type": event.type.value,
                "dropped_count": subscription.dropped,
            },
        )

    async def stream(self, subscription: EventSubscription) -> AsyncIterator[Event]:
        """Yield events for one observer until it is unsubscribed.

        The subscription is removed when the consumer stops iterating,
        including on cancellation (client disconnect).
        """
        try:
            while not subscription.closed:
                event = await subscription.queue.get()
                if event is None or subscription.closed:
                    break
                yield event
        finally:
            self.unsubscribe(subscription)

    def close(self) -> None:
        """Unsubscribe every observer (shutdown)."""
        for subscription in list(self._subscriptions.values()):
            self.unsubscribe(subscription)

    def get_stats(self) -> dict[str, Any]:
        """Get bus statistics."""
        return {
            "subscribers": len(self._subscriptions),
            "max_subscribers": self.max_subscribers,
            "total_published": self._total_published,
            "total_delivered": self._total_delivered,
            "total_dropped": self._total_dropped,
        }
