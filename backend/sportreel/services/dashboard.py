import logging
import threading
from typing import Callable, List, Optional
from uuid import UUID
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sportreel.core.events import VideoChange, VideoChangeHub, video_changes
from sportreel.schemas.video import VideoResponse
from sportreel.services.videos import list_user_videos

logger = logging.getLogger(__name__)


class DashboardSubscription:
    """
    Live view of one uploader's videos.

    start() delivers the current list, then every committed change to one of
    the user's records delivers the list again, newest first. stop() ends
    delivery; it is safe to call more than once.

    Usage:
        subscription = DashboardSubscription(user.id, render, SessionLocal)
        subscription.start()
        ...
        subscription.stop()
    """

    def __init__(
        self,
        user_id: UUID,
        callback: Callable[[List[VideoResponse]], None],
        session_factory: Callable[[], Session],
        hub: VideoChangeHub = video_changes,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.user_id = user_id
        self.callback = callback
        self.session_factory = session_factory
        self.hub = hub
        self.on_error = on_error
        self._handle: Optional[int] = None
        self._lock = threading.Lock()
        # Held across query and callback so snapshots arrive in the order they were read
        self._deliver_lock = threading.RLock()

    @property
    def active(self) -> bool:
        return self._handle is not None

    def start(self) -> "DashboardSubscription":
        with self._lock:
            if self._handle is not None:
                return self
            # Subscribe before the first read so no change slips between the two
            self._handle = self.hub.subscribe(self._on_change)
        logger.info(f"Dashboard subscription started for user {self.user_id}")
        self._deliver()
        return self

    def stop(self) -> None:
        with self._deliver_lock, self._lock:
            if self._handle is None:
                return
            self.hub.unsubscribe(self._handle)
            self._handle = None
        logger.info(f"Dashboard subscription stopped for user {self.user_id}")

    def __enter__(self) -> "DashboardSubscription":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _on_change(self, change: VideoChange) -> None:
        if change.uploader_id == self.user_id:
            self._deliver()

    def _deliver(self) -> None:
        with self._deliver_lock:
            if not self.active:
                return
            db = self.session_factory()
            try:
                videos = [VideoResponse.model_validate(video) for video in list_user_videos(db, self.user_id)]
            except SQLAlchemyError as e:
                logger.error(f"Error fetching dashboard videos for user {self.user_id}: {e}", exc_info=True)
                if self.on_error:
                    self.on_error(e)
                return
            finally:
                db.close()
            self.callback(videos)
