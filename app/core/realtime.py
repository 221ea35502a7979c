"""
Typed change channels.

Each channel is keyed by (table, filter), mirroring a Supabase realtime
subscription such as ``posts`` + ``group_id=eq.<id>``. Services publish a
ChangeEvent after every successful mutation; subscribers consume events
from their own asyncio.Queue instead of mutating shared state in callbacks.
"""
import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from app.config import settings

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class SessionEventType(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


class ChangeEvent(BaseModel):
    table: str
    event_type: str
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None
    committed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def record(self) -> Dict[str, Any]:
        """The row the event is about: new for inserts/updates, old for deletes."""
        return self.new if self.new is not None else (self.old or {})


AUTH_CHANNEL = "auth"

ChannelKey = Tuple[str, Optional[str]]


def parse_filter(filter_expr: Optional[str]) -> Optional[Tuple[str, str]]:
    """Parse the Supabase realtime filter syntax ``column=eq.value``."""
    if not filter_expr:
        return None
    column, sep, rest = filter_expr.partition("=")
    if not sep or not rest.startswith("eq."):
        raise ValueError(f"Unsupported filter '{filter_expr}', expected column=eq.value")
    value = rest[len("eq."):]
    if not column or not value:
        raise ValueError(f"Unsupported filter '{filter_expr}', expected column=eq.value")
    return column, value


def matches(event: ChangeEvent, filter_expr: Optional[str]) -> bool:
    parsed = parse_filter(filter_expr)
    if parsed is None:
        return True
    column, value = parsed
    record = event.record()
    return column in record and str(record[column]) == value


class Subscription:
    def __init__(self, table: str, filter_expr: Optional[str], maxsize: int):
        self.table = table
        self.filter = filter_expr
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._loop = asyncio.get_running_loop()

    def deliver(self, event: ChangeEvent) -> None:
        self._loop.call_soon_threadsafe(self._put, event)

    def _put(self, event: ChangeEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Dropping {event.event_type} on {self.table}: subscriber queue full")

    async def get(self) -> ChangeEvent:
        return await self.queue.get()


class ChangeFeed:
    """Process-wide hub; one channel per watched (table, filter)."""

    def __init__(self, maxsize: Optional[int] = None):
        self.maxsize = maxsize or settings.realtime_queue_size
        self._channels: Dict[ChannelKey, List[Subscription]] = {}

    def subscribe(self, table: str, filter_expr: Optional[str] = None) -> Subscription:
        """Must be called from a running event loop."""
        parse_filter(filter_expr)
        subscription = Subscription(table, filter_expr, self.maxsize)
        self._channels.setdefault((table, filter_expr), []).append(subscription)
        logger.debug(f"Subscribed to {table} ({filter_expr or '*'})")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        key = (subscription.table, subscription.filter)
        subscribers = self._channels.get(key, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            self._channels.pop(key, None)

    def channel_count(self) -> int:
        return len(self._channels)

    def publish(self, event: ChangeEvent) -> int:
        """Fan the event out to every matching subscriber. Returns the number reached."""
        delivered = 0
        for (table, filter_expr), subscribers in list(self._channels.items()):
            if table != event.table or not matches(event, filter_expr):
                continue
            for subscription in list(subscribers):
                try:
                    subscription.deliver(event)
                    delivered += 1
                except RuntimeError as e:
                    # Subscriber's loop is closed
                    logger.warning(f"Removing dead subscriber on {table}: {e}")
                    self.unsubscribe(subscription)
        return delivered

    def emit(
        self,
        table: str,
        event_type: ChangeType,
        new: Optional[Dict[str, Any]] = None,
        old: Optional[Dict[str, Any]] = None
    ) -> int:
        return self.publish(ChangeEvent(table=table, event_type=event_type.value, new=new, old=old))

    def emit_session(self, event_type: SessionEventType, user_id: str) -> int:
        return self.publish(ChangeEvent(
            table=AUTH_CHANNEL,
            event_type=event_type.value,
            new={"user_id": user_id, "event": event_type.value},
        ))


change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    return change_feed
