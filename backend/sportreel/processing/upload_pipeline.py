"""
Upload pipeline: validate a draft, push the video and thumbnail to object
storage side by side, then write the one record that points at both.

Nothing touches the network until the whole draft validates. If either
upload fails no record is written; an object that did finish stays in the
bucket. Re-submitting the same draft creates new objects and a new record.
"""
import asyncio
import enum
import logging
import os
import re
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union
from uuid import UUID
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sportreel.core.errors import StorageError, UploadError, ValidationError, WriteError
from sportreel.core.events import ChangeKind, VideoChange, VideoChangeHub, video_changes
from sportreel.models.user import User
from sportreel.models.video import Sport, Video
from sportreel.processing.validation import (
    check_description,
    check_sport,
    check_thumbnail_image,
    check_title,
    check_video_file,
    parse_sport,
)
from sportreel.services.aws import S3Client, s3_client
from sportreel.services.openai_service import decode_data_uri

logger = logging.getLogger(__name__)

THUMBNAIL_FILENAME = "thumbnail.png"
MISSING_THUMBNAIL = "Thumbnail is missing. Please upload one or generate one with AI."


@dataclass
class MediaFile:
    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class UploadedThumbnail:
    file: MediaFile


@dataclass
class GeneratedThumbnail:
    data_uri: str  # as returned by generate_thumbnail


ThumbnailSource = Union[UploadedThumbnail, GeneratedThumbnail]


@dataclass
class UploadDraft:
    """
    Form state for one upload.

    The thumbnail is a single slot: choosing a file discards a generated
    image and generating an image discards a chosen file.
    """

    title: str = ""
    description: str = ""
    sport: Union[Sport, str, None] = None
    video: Optional[MediaFile] = None
    thumbnail: Optional[ThumbnailSource] = None

    def choose_thumbnail_file(self, file: MediaFile) -> None:
        self.thumbnail = UploadedThumbnail(file)

    def use_generated_thumbnail(self, data_uri: str) -> None:
        self.thumbnail = GeneratedThumbnail(data_uri)

    def clear_thumbnail(self) -> None:
        self.thumbnail = None


@dataclass
class PreparedUpload:
    title: str
    description: str
    sport: Sport
    video: MediaFile
    thumbnail_data: bytes
    thumbnail_type: str


class UploadStatus(str, enum.Enum):
    idle = "idle"
    uploading = "uploading"
    finalizing = "finalizing"
    done = "done"
    failed = "failed"


@dataclass
class UploadProgress:
    """Combined status of the two transfers, updated from the upload threads."""

    status: UploadStatus = UploadStatus.idle
    video_percent: float = 0.0
    thumbnail_percent: float = 0.0
    on_change: Optional[Callable[["UploadProgress"], None]] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def combined(self) -> float:
        return (self.video_percent + self.thumbnail_percent) / 2

    def set_status(self, status: UploadStatus) -> None:
        with self._lock:
            self.status = status
        self._notify()

    def video_progress(self, percent: float) -> None:
        with self._lock:
            self.video_percent = max(self.video_percent, percent)
        self._notify()

    def thumbnail_progress(self, percent: float) -> None:
        with self._lock:
            self.thumbnail_percent = max(self.thumbnail_percent, percent)
        self._notify()

    def _notify(self) -> None:
        if self.on_change:
            self.on_change(self)


def validate_draft(draft: UploadDraft) -> PreparedUpload:
    """
    Check every field of a draft and collect all failures at once.

    Raises:
        ValidationError: with one message per failing field
    """
    errors = {}
    check_title(draft.title, errors)
    check_description(draft.description, errors)
    check_sport(draft.sport, errors)

    if draft.video is None:
        errors["video"] = "Video is required."
    else:
        check_video_file(draft.video.content_type, draft.video.size, errors)

    thumbnail_data = None
    thumbnail_type = None
    source = draft.thumbnail
    if source is None:
        errors["thumbnail"] = MISSING_THUMBNAIL
    elif isinstance(source, UploadedThumbnail):
        check_thumbnail_image(source.file.content_type, source.file.data, errors)
        thumbnail_data, thumbnail_type = source.file.data, source.file.content_type
    elif isinstance(source, GeneratedThumbnail):
        try:
            thumbnail_data, thumbnail_type = decode_data_uri(source.data_uri)
        except ValidationError as e:
            errors.update(e.errors)
        else:
            check_thumbnail_image(thumbnail_type, thumbnail_data, errors)
    else:
        raise TypeError(f"Unsupported thumbnail source: {type(source).__name__}")

    if errors:
        raise ValidationError(errors)

    return PreparedUpload(
        title=draft.title.strip(),
        description=draft.description.strip(),
        sport=parse_sport(draft.sport),
        video=draft.video,
        thumbnail_data=thumbnail_data,
        thumbnail_type=thumbnail_type,
    )


def upload_scope(user_id: UUID) -> str:
    """Storage prefix unique to one upload: user, millisecond timestamp and a random suffix."""
    return f"users/{user_id}/videos/{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def safe_filename(filename: Optional[str]) -> str:
    """Video object name within an upload scope. Never equal to THUMBNAIL_FILENAME."""
    name = os.path.basename(filename or "").strip()
    name = re.sub(r"[^A-Za-z0-9._-]", "_", name)
    if not name or name.strip(".") == "":
        return "video.mp4"
    if name == THUMBNAIL_FILENAME:
        return f"video-{name}"
    return name


async def publish_video(
    db: Session,
    user: User,
    draft: UploadDraft,
    storage: S3Client = s3_client,
    progress: Optional[UploadProgress] = None,
    hub: VideoChangeHub = video_changes,
) -> Video:
    """
    Upload a draft's video and thumbnail concurrently and create its record.

    Raises:
        ValidationError: before any upload starts
        UploadError: either object failed to upload; no record was written
        WriteError: both objects are stored but the record insert failed
    """
    progress = progress or UploadProgress()
    prepared = validate_draft(draft)

    scope = upload_scope(user.id)
    video_key = f"{scope}/{safe_filename(prepared.video.filename)}"
    thumbnail_key = f"{scope}/{THUMBNAIL_FILENAME}"

    progress.set_status(UploadStatus.uploading)
    logger.info(f"Uploading video and thumbnail for user {user.id} under {scope}")
    try:
        video_url, thumbnail_url = await asyncio.gather(
            asyncio.to_thread(
                storage.upload_bytes,
                prepared.video.data,
                video_key,
                prepared.video.content_type,
                progress.video_progress,
            ),
            asyncio.to_thread(
                storage.upload_bytes,
                prepared.thumbnail_data,
                thumbnail_key,
                prepared.thumbnail_type,
                progress.thumbnail_progress,
            ),
        )
    except StorageError:
        progress.set_status(UploadStatus.failed)
        raise
    except Exception as e:
        progress.set_status(UploadStatus.failed)
        logger.error(f"Unexpected upload failure under {scope}: {e}", exc_info=True)
        raise UploadError(f"Upload failed: {e}") from e

    progress.set_status(UploadStatus.finalizing)
    video = Video(
        uploaderId=user.id,
        title=prepared.title,
        description=prepared.description,
        sport=prepared.sport,
        videoUrl=video_url,
        thumbnailUrl=thumbnail_url,
        views=0,
        likes=0,
    )
    try:
        db.add(video)
        db.commit()
        db.refresh(video)
    except SQLAlchemyError as e:
        db.rollback()
        progress.set_status(UploadStatus.failed)
        logger.error(f"Database error saving video under {scope}: {e}")
        raise WriteError("Failed to save video record") from e

    progress.set_status(UploadStatus.done)
    logger.info(f"Video record created: {video.id}, video_url: {video_url}")
    # Subscribers query the database; keep that off the event loop
    await asyncio.to_thread(hub.publish, VideoChange(ChangeKind.created, video.id, video.uploaderId))
    return video
