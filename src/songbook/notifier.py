"""In-process publish/subscribe for resolved collection lists.

Subscriptions are keyed by capability signature. Each one owns a bounded
asyncio.Queue: publish() never suspends, and when a slow consumer's
queue is full the oldest pending update is dropped (only the latest
list matters).

A new subscription is primed with the last list published for its
signature, so a consumer that subscribes after the first resolution
still sees the current value before any later publish. There is no
other replay.
"""

import asyncio
import logging
import uuid
from collections.abc import Iterable

from src.songbook.access.enums import AccessLevel
from src.songbook.logging_utils import sanitize_for_log
from src.songbook.models.results import VisibleCollection

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 16

# Queued after the last update of a closed subscription
_CLOSED = object()


class Subscription:
    """Live feed of collection lists for one signature.

    Iterate with ``async for``; iteration ends after close().

    Attributes:
        subscription_id: Unique id of this subscription (UUID v4)
        subscriber_id: Owner id used by ChangeNotifier.unsubscribe_all
        signature: Signature whose updates are delivered
    """

    def __init__(
        self,
        notifier: "ChangeNotifier",
        signature: AccessLevel,
        subscriber_id: str,
        queue_size: int,
    ):
        self.subscription_id = str(uuid.uuid4())
        self.subscriber_id = subscriber_id
        self.signature = signature
        self._notifier = notifier
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of updates waiting to be consumed."""
        # A closed subscription holds exactly one end marker
        return self._queue.qsize() - (1 if self._closed else 0)

    def _offer(self, item: object) -> None:
        if self._queue.full():
            self._queue.get_nowait()
            if item is not _CLOSED:
                self.dropped += 1
        self._queue.put_nowait(item)

    def deliver(self, collections: tuple[VisibleCollection, ...]) -> None:
        if not self._closed:
            self._offer(collections)

    def get_nowait(self) -> list[VisibleCollection] | None:
        """Return the next pending update without waiting, or None."""
        if self._queue.empty():
            return None
        item = self._queue.get_nowait()
        if item is _CLOSED:
            # Keep the end marker for async iteration
            self._queue.put_nowait(item)
            return None
        return list(item)

    def close(self) -> None:
        """Stop delivery. Pending updates can still be drained."""
        if self._closed:
            return
        self._closed = True
        self._notifier._remove(self)  # noqa: SLF001
        self._offer(_CLOSED)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> list[VisibleCollection]:
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(item)
            raise StopAsyncIteration
        return list(item)


class ChangeNotifier:
    """Signature-keyed publish/subscribe channel.

    Single-process and in-memory: no persistence and no cross-process
    delivery. Safe to call from one event loop without locking since no
    method suspends.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        """Initialize notifier.

        Args:
            queue_size: Buffered updates per subscription
        """
        self._queue_size = queue_size
        self._subscriptions: dict[AccessLevel, list[Subscription]] = {}
        self._latest: dict[AccessLevel, tuple[VisibleCollection, ...]] = {}

    @property
    def subscriber_count(self) -> int:
        return sum(len(subs) for subs in self._subscriptions.values())

    def active_signatures(self) -> list[AccessLevel]:
        """Signatures with at least one open subscription, tier order."""
        return [sig for sig in AccessLevel if self._subscriptions.get(sig)]

    def latest(self, signature: AccessLevel) -> list[VisibleCollection] | None:
        """Last list published for a signature, if any."""
        latest = self._latest.get(signature)
        return list(latest) if latest is not None else None

    def subscribe(
        self, signature: AccessLevel, subscriber_id: str | None = None
    ) -> Subscription:
        """Open a subscription for a signature.

        The current value, when one exists, is already queued when this
        returns.

        Args:
            signature: Signature to follow
            subscriber_id: Owner id; defaults to the subscription's own id
        """
        subscription = Subscription(
            self,
            signature,
            subscriber_id or "",
            self._queue_size,
        )
        if not subscriber_id:
            subscription.subscriber_id = subscription.subscription_id

        self._subscriptions.setdefault(signature, []).append(subscription)

        latest = self._latest.get(signature)
        if latest is not None:
            subscription.deliver(latest)

        logger.info(
            "Collection subscription opened",
            extra={
                "signature": signature.value,
                "subscriber_id": sanitize_for_log(subscription.subscriber_id),
                "primed": latest is not None,
                "subscriber_count": self.subscriber_count,
            },
        )
        return subscription

    def publish(
        self, signature: AccessLevel, collections: Iterable[VisibleCollection]
    ) -> int:
        """Deliver a list to every subscription of a signature.

        Returns:
            Number of subscriptions the list was delivered to
        """
        snapshot = tuple(collections)
        self._latest[signature] = snapshot

        subscriptions = list(self._subscriptions.get(signature, ()))
        for subscription in subscriptions:
            subscription.deliver(snapshot)

        logger.debug(
            "Collection list published",
            extra={
                "signature": signature.value,
                "collection_count": len(snapshot),
                "delivered": len(subscriptions),
            },
        )
        return len(subscriptions)

    def forget(self, signatures: Iterable[AccessLevel] | None = None) -> None:
        """Drop remembered values so new subscriptions start unprimed.

        Args:
            signatures: Signatures to forget (default: all)
        """
        if signatures is None:
            self._latest = {}
            return
        for signature in signatures:
            self._latest.pop(signature, None)

    def unsubscribe_all(self, subscriber_id: str) -> int:
        """Close every subscription owned by a subscriber.

        Returns:
            Number of subscriptions closed
        """
        owned = [
            sub
            for subs in self._subscriptions.values()
            for sub in subs
            if sub.subscriber_id == subscriber_id
        ]
        for subscription in owned:
            subscription.close()

        if owned:
            logger.info(
                "Collection subscriptions closed",
                extra={
                    "subscriber_id": sanitize_for_log(subscriber_id),
                    "closed": len(owned),
                },
            )
        return len(owned)

    def close(self) -> None:
        """Close every subscription and forget published values."""
        for subs in list(self._subscriptions.values()):
            for subscription in list(subs):
                subscription.close()
        self._latest = {}

    def _remove(self, subscription: Subscription) -> None:
        subs = self._subscriptions.get(subscription.signature)
        if subs and subscription in subs:
            subs.remove(subscription)
            if not subs:
                del self._subscriptions[subscription.signature]
