"""In-process event bus and traveler notifications."""

from __future__ import annotations

import logging
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

TRAFFIC_ALERT = "traffic_alert"
WEATHER_CHANGE = "weather_change"
REROUTE = "reroute"

Listener = Callable[[Any], None]


class EventBus:
    """Synchronous topic-based fan-out; a failing listener never blocks the others."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, topic: str, listener: Listener) -> Callable[[], None]:
        self._listeners[topic].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[topic]:
                self._listeners[topic].remove(listener)

        return unsubscribe

    def publish(self, topic: str, payload: Any) -> None:
        for listener in list(self._listeners.get(topic, ())):
            try:
                listener(payload)
            except Exception:
                logger.exception("Listener for %s failed", topic)


@dataclass(frozen=True, slots=True)
class Notification:
    title: str
    body: str
    kind: str
    timestamp: float = field(default_factory=time.time)


class NotificationSink(Protocol):
    async def send(self, notification: Notification) -> None:
        ...


class InMemoryNotifier:
    """Keeps the most recent notifications so a UI shell can pick them up."""

    def __init__(self, maxlen: int = 100) -> None:
        self._items: deque[Notification] = deque(maxlen=maxlen)

    async def send(self, notification: Notification) -> None:
        self._items.append(notification)
        logger.info("Notification sent: %s - %s", notification.title, notification.body)

    def recent(self) -> list[Notification]:
        return list(self._items)
