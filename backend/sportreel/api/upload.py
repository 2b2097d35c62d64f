import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session
from sportreel.api.deps import get_current_user, get_storage
from sportreel.core.database import get_db
from sportreel.core.errors import ValidationError
from sportreel.models.user import User
from sportreel.processing.upload_pipeline import MediaFile, UploadDraft, UploadProgress, publish_video
from sportreel.schemas.video import ThumbnailRequest, ThumbnailResponse, VideoResponse
from sportreel.services.aws import S3Client
from sportreel.services.openai_service import generate_thumbnail

logger = logging.getLogger(__name__)
router = APIRouter()


def _is_present(upload: Optional[UploadFile]) -> bool:
    # Browsers submit an empty part with no filename for an untouched file input
    return upload is not None and bool(upload.filename)


async def _read_media(upload: UploadFile) -> MediaFile:
    return MediaFile(filename=upload.filename, content_type=upload.content_type, data=await upload.read())


def _log_progress(progress: UploadProgress) -> None:
    logger.debug(f"Upload {progress.status.value}: {progress.combined:.0f}%")


@router.post("/thumbnails/generate", response_model=ThumbnailResponse)
def create_thumbnail(request: ThumbnailRequest, current_user: User = Depends(get_current_user)):
    """Generate a thumbnail from a prompt. The result is submitted later as thumbnail_data_uri."""
    logger.info(f"Thumbnail generation requested by {current_user.id}")
    return ThumbnailResponse(thumbnailDataUri=generate_thumbnail(request.prompt))


@router.post("/videos", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def upload_video(
    title: str = Form(""),
    description: str = Form(""),
    sport: str = Form(""),
    video: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    thumbnail_data_uri: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: S3Client = Depends(get_storage),
):
    """Upload a video with either a thumbnail file or a previously generated thumbnail."""
    logger.info(f"Upload request from {current_user.id}: {video.filename if video else None}")

    if _is_present(thumbnail) and thumbnail_data_uri:
        raise ValidationError({"thumbnail": "Choose either an uploaded thumbnail or a generated one, not both."})

    draft = UploadDraft(title=title, description=description, sport=sport)
    if _is_present(video):
        draft.video = await _read_media(video)
    if _is_present(thumbnail):
        draft.choose_thumbnail_file(await _read_media(thumbnail))
    elif thumbnail_data_uri:
        draft.use_generated_thumbnail(thumbnail_data_uri)

    record = await publish_video(db, current_user, draft, storage=storage, progress=UploadProgress(on_change=_log_progress))
    return record
