"""Fan-out of full order-set snapshots to any number of live viewers.

Each subscriber receives its own deep copy of every snapshot, so no viewer can
observe another's mutations or a half-built list. Delivery order across
subscribers is whatever order ``publish`` is called in; nothing here sorts or
deduplicates.
"""
import asyncio
import logging
import threading
from typing import Callable, AsyncIterator, Optional

from qrdine.schemas.orders import OrderOut

logger = logging.getLogger(__name__)

Snapshot = list[OrderOut]


def _copy(snapshot: Snapshot) -> Snapshot:
    return [o.model_copy(deep=True) for o in snapshot]


class Subscription:
    def __init__(self, feed: "OrderFeed", callback: Callable[[Snapshot], None]):
        self._feed = feed
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._feed._remove(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.cancel()


class OrderFeed:
    def __init__(self):
        self._subs: list[Subscription] = []
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def subscribe(self, callback: Callable[[Snapshot], None], initial: Optional[Snapshot] = None) -> Subscription:
        sub = Subscription(self, callback)
        with self._lock:
            self._subs.append(sub)
        if initial is not None:
            self._deliver(sub, initial)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subs:
                self._subs.remove(sub)

    def _deliver(self, sub: Subscription, snapshot: Snapshot) -> None:
        try:
            sub.callback(_copy(snapshot))
        except Exception:
            # one broken viewer must not starve the others
            logger.exception("order feed subscriber raised; keeping subscription")

    def publish(self, snapshot: Snapshot) -> None:
        with self._lock:
            subs = list(self._subs)
        for sub in subs:
            if sub.active:
                self._deliver(sub, snapshot)

    async def stream(self, initial: Optional[Snapshot] = None) -> AsyncIterator[Snapshot]:
        """Async view of the feed for websocket handlers; unsubscribes on close."""
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[Snapshot] = asyncio.Queue()

        def _enqueue(snapshot: Snapshot) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, snapshot)

        sub = self.subscribe(_enqueue, initial=initial)
        try:
            while True:
                yield await queue.get()
        finally:
            sub.cancel()
