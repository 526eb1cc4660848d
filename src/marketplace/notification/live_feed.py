"""Transient in-process notification feed behind the live badge.

Most-recent-first and capped. It is not part of the durable store or of the
local snapshot: every reload starts again from the same three seed entries.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

LIVE_FEED_CAPACITY = 50


@dataclass
class LiveNotification:
    id: str
    order_id: str | None
    type: str
    message: str
    timestamp: datetime
    read: bool = False
    recipient_id: str | None = None


def _seed() -> list[LiveNotification]:
    now = datetime.now(UTC)
    return [
        LiveNotification(
            id="notif-1",
            order_id="ORD-001",
            type="seller_confirmed",
            message="Your order has been confirmed by the seller!",
            timestamp=now - timedelta(minutes=30),
        ),
        LiveNotification(
            id="notif-2",
            order_id="ORD-002",
            type="shipped",
            message="Your order is on the way! Track your delivery.",
            timestamp=now - timedelta(hours=2),
        ),
        LiveNotification(
            id="notif-3",
            order_id="ORD-003",
            type="delivered",
            message="Your order has been delivered!",
            timestamp=now - timedelta(days=1),
            read=True,
        ),
    ]


@dataclass
class LiveFeed:
    capacity: int = LIVE_FEED_CAPACITY
    _entries: deque = field(init=False)

    def __post_init__(self) -> None:
        self._entries = deque(_seed(), maxlen=self.capacity)

    def push(self, notification: LiveNotification) -> None:
        self._entries.appendleft(notification)

    def entries(self, recipient_id: str | None = None) -> list[LiveNotification]:
        if recipient_id is None:
            return list(self._entries)
        return [n for n in self._entries if n.recipient_id in (recipient_id, None)]

    def unread_count(self, recipient_id: str | None = None) -> int:
        return sum(1 for n in self.entries(recipient_id) if not n.read)

    def mark_read(self, notification_id: str) -> bool:
        for entry in self._entries:
            if entry.id == notification_id:
                entry.read = True
                return True
        return False

    def clear(self) -> None:
        self._entries.clear()


_feed: LiveFeed | None = None


def get_live_feed() -> LiveFeed:
    global _feed
    if _feed is None:
        _feed = LiveFeed()
    return _feed


def reset_live_feed() -> None:
    """Drop the feed; the next access reseeds it, as a reload would."""
    global _feed
    _feed = None
