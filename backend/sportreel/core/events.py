"""
In-process change feed for video records.

Mutators publish a VideoChange after their commit succeeds; live dashboard
subscriptions listen here instead of polling the database.
"""
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict
from uuid import UUID

logger = logging.getLogger(__name__)


class ChangeKind(str, enum.Enum):
    created = "created"
    updated = "updated"
    deleted = "deleted"


@dataclass(frozen=True)
class VideoChange:
    kind: ChangeKind
    video_id: UUID
    uploader_id: UUID


Listener = Callable[[VideoChange], None]


class VideoChangeHub:
    def __init__(self):
        self._listeners: Dict[int, Listener] = {}
        self._next_id = 0
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> int:
        """Register a listener and return the handle used to remove it."""
        with self._lock:
            handle = self._next_id
            self._next_id += 1
            self._listeners[handle] = listener
        return handle

    def unsubscribe(self, handle: int) -> None:
        with self._lock:
            self._listeners.pop(handle, None)

    def publish(self, change: VideoChange) -> None:
        with self._lock:
            listeners = list(self._listeners.values())
        logger.debug(f"Publishing {change.kind.value} for video {change.video_id} to {len(listeners)} listeners")
        for listener in listeners:
            try:
                listener(change)
            except Exception as e:
                # Listener errors stay with the listener; the publisher has already committed
                logger.error(f"Video change listener failed: {e}", exc_info=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)


video_changes = VideoChangeHub()
