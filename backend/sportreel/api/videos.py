import logging
from typing import Callable, List
from uuid import UUID
from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.orm import Session
from sportreel.api.deps import get_current_user, get_storage
from sportreel.core.config import settings
from sportreel.core.database import get_db, get_session_factory
from sportreel.models.user import User
from sportreel.schemas.video import VideoResponse, VideoUpdate
from sportreel.services.aws import S3Client
from sportreel.services.videos import delete_video, get_video, increment_views, iter_feed, update_video

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/videos", response_model=List[VideoResponse])
def list_videos(response: Response, db: Session = Depends(get_db)):
    """Public feed: every video, newest first."""
    response.headers["Cache-Control"] = f"public, max-age={settings.feed_revalidate_seconds}"
    return [VideoResponse.model_validate(video) for video in iter_feed(db)]


@router.get("/videos/{video_id}", response_model=VideoResponse)
def watch_video(
    video_id: UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Watch page data. Counts a view after the response is sent."""
    video = VideoResponse.model_validate(get_video(db, video_id))
    background_tasks.add_task(increment_views, video_id, session_factory)
    return video


@router.patch("/videos/{video_id}", response_model=VideoResponse)
def edit_video(
    video_id: UUID,
    changes: VideoUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return update_video(db, video_id, current_user, changes)


@router.delete("/videos/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_video(
    video_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: S3Client = Depends(get_storage),
):
    delete_video(db, video_id, current_user, storage)
    return None
