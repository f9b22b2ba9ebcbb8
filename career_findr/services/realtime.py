"""
Realtime Subscription Manager - live views over store collections.

A Subscription keeps the full current result set of a LiveQuery and hands
it to a callback every time the store reports a change. Callbacks always
receive the whole result set, never a diff.

Lifecycle:
    UNSUBSCRIBED -> SUBSCRIBING -> ACTIVE -> UNSUBSCRIBED

Guarantees:
- Snapshots are applied in sequence order. One that is not newer than the
  last applied snapshot is dropped.
- `unsubscribe()` is idempotent, and once it returns the callback never
  runs again, even for snapshots the store delivers late.
- A store error is logged and ends the subscription. Nothing retries; a
  client that wants the feed back opens a new subscription.
"""

import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

from pymongo.errors import PyMongoError

from career_findr.core.config import get_settings
from career_findr.db.mongodb import COLLECTIONS, LiveQuery, Snapshot, get_document_store

logger = logging.getLogger(__name__)

settings = get_settings()


class SubscriptionState(str, Enum):
    unsubscribed = "unsubscribed"
    subscribing = "subscribing"
    active = "active"


# ============================================================
# QUERY BUILDERS
# ============================================================

def notifications_query(user_id: Optional[str]) -> LiveQuery:
    return LiveQuery(
        collection=COLLECTIONS["notifications"],
        filters={"user_id": user_id},
        order_by=(("created_at", -1),),
        limit=settings.notification_feed_limit,
    )


def chats_query(user_id: Optional[str]) -> LiveQuery:
    return LiveQuery(
        collection=COLLECTIONS["chats"],
        filters={"participants": user_id},
        order_by=(("last_message_time", -1),),
    )


def messages_query(chat_id: Optional[str]) -> LiveQuery:
    return LiveQuery(
        collection=COLLECTIONS["messages"],
        filters={"chat_id": chat_id},
        order_by=(("timestamp", 1),),
    )


def events_query(user_id: Optional[str]) -> LiveQuery:
    return LiveQuery(
        collection=COLLECTIONS["events"],
        filters={"participant_ids": user_id},
        order_by=(("start_time", 1),),
    )


# ============================================================
# SUBSCRIPTION
# ============================================================

class Subscription:
    """One live query and the callback it feeds."""

    def __init__(
        self,
        store,
        query: LiveQuery,
        on_snapshot: Callable[[List[dict]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        on_close: Optional[Callable[["Subscription"], None]] = None,
    ):
        self.query = query
        self.state = SubscriptionState.unsubscribed
        self.documents: List[dict] = []
        self._store = store
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._on_close = on_close
        self._cancel: Optional[Callable[[], None]] = None
        self._last_sequence = 0
        # Re-entrant so a callback may unsubscribe from inside itself
        self._lock = threading.RLock()

    @property
    def is_active(self) -> bool:
        return self.state == SubscriptionState.active

    def start(self) -> "Subscription":
        if not self.query.is_bound:
            logger.debug("Query has no filter key, not subscribing",
                         extra={"collection": self.query.collection})
            return self

        with self._lock:
            if self.state != SubscriptionState.unsubscribed:
                return self
            self.state = SubscriptionState.subscribing

        try:
            cancel = self._store.listen(self.query, self._receive, self._fail)
        except PyMongoError as exc:
            self._fail(exc)
            return self

        with self._lock:
            if self.state == SubscriptionState.unsubscribed:
                # torn down while the listener was starting
                stale_cancel = cancel
            else:
                stale_cancel = None
                self._cancel = cancel
                self.state = SubscriptionState.active

        if stale_cancel:
            stale_cancel()
        return self

    def _receive(self, snapshot: Snapshot) -> None:
        with self._lock:
            if self.state == SubscriptionState.unsubscribed:
                return
            if snapshot.sequence <= self._last_sequence:
                logger.debug("Dropping out-of-order snapshot",
                             extra={"collection": self.query.collection, "sequence": snapshot.sequence})
                return
            self._last_sequence = snapshot.sequence
            self.documents = list(snapshot.documents)
            self.state = SubscriptionState.active
            # Under the lock, so no delivery can overlap or follow unsubscribe()
            self._on_snapshot(self.documents)

    def _fail(self, exc: Exception) -> None:
        logger.error("Subscription error: %s", exc, extra={"collection": self.query.collection})
        with self._lock:
            was_open = self.state != SubscriptionState.unsubscribed
            self._teardown()
            if was_open and self._on_error:
                self._on_error(exc)

    def unsubscribe(self) -> None:
        with self._lock:
            self._teardown()

    def _teardown(self) -> None:
        if self.state == SubscriptionState.unsubscribed and self._cancel is None:
            return
        self.state = SubscriptionState.unsubscribed
        cancel, self._cancel = self._cancel, None
        if cancel:
            cancel()
        if self._on_close:
            self._on_close(self)


# ============================================================
# MANAGER
# ============================================================

class RealtimeSubscriptionManager:
    """
    Opens subscriptions and keeps track of them so they can be torn down
    together on sign-out or shutdown.
    """

    def __init__(self, store=None):
        self.store = store if store is not None else get_document_store()
        self._subscriptions = {}
        self._lock = threading.Lock()

    def subscribe(
        self,
        query: LiveQuery,
        on_snapshot: Callable[[List[dict]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        owner: Optional[str] = None,
    ) -> Subscription:
        """Start a subscription. `owner` groups it for `unsubscribe_owner`."""
        subscription = Subscription(
            self.store, query, on_snapshot, on_error, on_close=self._forget
        )
        with self._lock:
            self._subscriptions[subscription] = owner
        subscription.start()
        if not subscription.query.is_bound:
            self._forget(subscription)
        return subscription

    def _forget(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions.pop(subscription, None)

    def active_count(self, owner: Optional[str] = None) -> int:
        with self._lock:
            return sum(
                1 for sub, sub_owner in self._subscriptions.items()
                if owner is None or sub_owner == owner
            )

    def unsubscribe_owner(self, owner: str) -> int:
        """Tear down every subscription opened for `owner` (e.g. on sign-out)."""
        with self._lock:
            owned = [sub for sub, sub_owner in self._subscriptions.items() if sub_owner == owner]
        for subscription in owned:
            subscription.unsubscribe()
        return len(owned)

    def unsubscribe_all(self) -> int:
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.unsubscribe()
        return len(subscriptions)


_manager: Optional[RealtimeSubscriptionManager] = None


def get_subscription_manager() -> RealtimeSubscriptionManager:
    """Process-wide manager (singleton pattern)."""
    global _manager
    if _manager is None:
        _manager = RealtimeSubscriptionManager()
    return _manager
