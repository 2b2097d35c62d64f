"""
Read and mutate video records.

Readers:
- iter_feed: every record, newest first, streamed from the database
- list_user_videos: one uploader's records, sorted in Python

Mutators publish to the change hub after commit so live dashboards follow.
Multi-step deletes are not transactional: a record deleted before a storage
failure stays deleted.
"""
import logging
from typing import Callable, Iterator, List
from uuid import UUID
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sportreel.core.errors import NotFoundError, PermissionDeniedError, StorageError, ValidationError, WriteError
from sportreel.core.events import ChangeKind, VideoChange, VideoChangeHub, video_changes
from sportreel.models.user import User
from sportreel.models.video import Video
from sportreel.processing.validation import check_description, check_sport, check_title, parse_sport
from sportreel.schemas.video import VideoUpdate
from sportreel.services.aws import S3Client

logger = logging.getLogger(__name__)

FEED_BATCH_SIZE = 100


def iter_feed(db: Session) -> Iterator[Video]:
    """Yield all videos ordered by upload date, newest first. Each call runs a new query."""
    query = db.query(Video).order_by(Video.uploadDate.desc()).yield_per(FEED_BATCH_SIZE)
    for video in query:
        yield video


def list_user_videos(db: Session, user_id: UUID) -> List[Video]:
    """An uploader's videos, newest first. Sorted here so the query needs only the uploaderId index."""
    videos = db.query(Video).filter(Video.uploaderId == user_id).all()
    videos.sort(key=lambda video: video.uploadDate, reverse=True)
    return videos


def get_video(db: Session, video_id: UUID) -> Video:
    video = db.query(Video).filter(Video.id == video_id).first()
    if not video:
        raise NotFoundError(f"Video {video_id} not found")
    return video


def increment_views(
    video_id: UUID,
    session_factory: Callable[[], Session],
    hub: VideoChangeHub = video_changes,
) -> None:
    """
    Add one view to a video.

    Runs after the watch response has gone out. The increment is a single
    UPDATE ... SET views = views + 1, so concurrent watches never lose counts.
    Failures are logged and dropped.
    """
    db = session_factory()
    try:
        updated = (
            db.query(Video)
            .filter(Video.id == video_id)
            .update({Video.views: Video.views + 1}, synchronize_session=False)
        )
        db.commit()
        if not updated:
            logger.warning(f"View increment skipped, video {video_id} no longer exists")
            return
        uploader_id = db.query(Video.uploaderId).filter(Video.id == video_id).scalar()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to increment views for video {video_id}: {e}", exc_info=True)
        return
    finally:
        db.close()
    if uploader_id is not None:
        hub.publish(VideoChange(ChangeKind.updated, video_id, uploader_id))


def _get_owned_video(db: Session, video_id: UUID, user: User, action: str) -> Video:
    video = get_video(db, video_id)
    if video.uploaderId != user.id and user.role != "admin":
        raise PermissionDeniedError(f"Not authorized to {action} this video")
    return video


def update_video(
    db: Session,
    video_id: UUID,
    user: User,
    changes: VideoUpdate,
    hub: VideoChangeHub = video_changes,
) -> Video:
    """Apply a partial edit of title, description and sport. Nothing else on the record moves."""
    video = _get_owned_video(db, video_id, user, "update")

    errors = {}
    if changes.title is not None:
        check_title(changes.title, errors)
    if changes.description is not None:
        check_description(changes.description, errors)
    if changes.sport is not None:
        check_sport(changes.sport, errors)
    if errors:
        raise ValidationError(errors)

    if changes.title is not None:
        video.title = changes.title.strip()
    if changes.description is not None:
        video.description = changes.description.strip()
    if changes.sport is not None:
        video.sport = parse_sport(changes.sport)

    try:
        db.commit()
        db.refresh(video)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error updating video {video_id}: {e}")
        raise WriteError("Failed to update video") from e

    logger.info(f"Video {video_id} updated by {user.id}")
    hub.publish(VideoChange(ChangeKind.updated, video.id, video.uploaderId))
    return video


def delete_video(
    db: Session,
    video_id: UUID,
    user: User,
    storage: S3Client,
    hub: VideoChangeHub = video_changes,
) -> None:
    """
    Remove a record and both of its stored objects.

    The record goes first. Each object deletion is attempted even if the
    other fails; any storage failure is reported afterwards as one
    StorageError. Nothing is restored on failure.
    """
    video = _get_owned_video(db, video_id, user, "delete")
    uploader_id = video.uploaderId
    object_urls = [video.videoUrl, video.thumbnailUrl]

    try:
        db.delete(video)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error deleting video {video_id}: {e}")
        raise WriteError("Failed to delete video") from e

    logger.info(f"Video record {video_id} deleted by {user.id}")
    hub.publish(VideoChange(ChangeKind.deleted, video_id, uploader_id))

    failures = []
    for url in object_urls:
        try:
            storage.delete_object(storage.key_from_url(url))
        except StorageError as e:
            logger.warning(f"Stored object for video {video_id} not removed: {e.message}")
            failures.append(e.message)
    if failures:
        raise StorageError(f"Video deleted but stored files remain: {'; '.join(failures)}")
