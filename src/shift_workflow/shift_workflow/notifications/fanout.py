"""Real-time fan-out to connected clients.

Publishing is best-effort: `safe_publish` is the only place publish errors are
caught, and its result is used for logging only.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol

from ..common.serialization import to_payload

logger = logging.getLogger(__name__)

Listener = Callable[[str, str, str, Any], None]


def branch_room(branch_id: int) -> str:
    return f"branch:{branch_id}"


def user_room(user_id: int) -> str:
    return f"user:{user_id}"


class Publisher(Protocol):
    def publish(self, tenant: str, room: str, event: str, payload: Any) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class PublishResult:
    event: str
    room: str
    delivered: bool
    error: Optional[str] = None


class InProcessPublisher(Publisher):
    """Dispatches events to listeners registered in this process (e.g. a socket bridge)."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def publish(self, tenant: str, room: str, event: str, payload: Any) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(tenant, room, event, payload)


def safe_publish(publisher: Publisher, tenant: str, room: str, event: str, payload: Any) -> PublishResult:
    try:
        publisher.publish(tenant, room, event, to_payload(payload))
    except Exception as exc:  # fan-out must never fail the caller
        logger.warning("Fan-out %s to %s/%s failed: %s", event, tenant, room, exc)
        return PublishResult(event=event, room=room, delivered=False, error=str(exc))
    return PublishResult(event=event, room=room, delivered=True)
