"""
Field validators shared by the upload orchestrator and the edit mutator
"""
import io
from typing import Dict, Optional, Union
from PIL import Image, UnidentifiedImageError
from sportreel.core.config import settings
from sportreel.models.video import Sport

IMAGE_FORMATS = {"JPEG", "PNG", "WEBP"}


def parse_sport(value: Union[Sport, str, None]) -> Optional[Sport]:
    """Map a submitted value onto the closed Sport set, or None if it is not a member."""
    if isinstance(value, Sport):
        return value
    for sport in Sport:
        if value == sport.value:
            return sport
    return None


def check_title(title: Optional[str], errors: Dict[str, str]) -> None:
    if title is None or len(title.strip()) < settings.min_title_length:
        errors["title"] = f"Title must be at least {settings.min_title_length} characters."


def check_description(description: Optional[str], errors: Dict[str, str]) -> None:
    if description is None or len(description.strip()) < settings.min_description_length:
        errors["description"] = f"Description must be at least {settings.min_description_length} characters."


def check_sport(sport: Union[Sport, str, None], errors: Dict[str, str]) -> None:
    if parse_sport(sport) is None:
        errors["sport"] = f"Sport must be one of: {', '.join(s.value for s in Sport)}."


def _megabytes(size: int) -> str:
    return f"{size // (1024 * 1024)}MB"


def check_video_file(content_type: Optional[str], size: int, errors: Dict[str, str]) -> None:
    """Video must be non-empty, within max_video_size and of an allowed MIME type"""
    if content_type not in settings.allowed_video_types:
        errors["video"] = "Please upload a video in MP4 format."
    elif size <= 0:
        errors["video"] = "Video file is empty."
    elif size > settings.max_video_size:
        errors["video"] = f"Max file size is {_megabytes(settings.max_video_size)}."


def check_thumbnail_image(content_type: Optional[str], data: bytes, errors: Dict[str, str]) -> None:
    """Thumbnail must be an allowed MIME type, within max_thumbnail_size, and decode as an image"""
    if content_type not in settings.allowed_thumbnail_types:
        errors["thumbnail"] = "Only .jpg, .png, and .webp formats are supported for thumbnails."
    elif not data:
        errors["thumbnail"] = "Thumbnail file is empty."
    elif len(data) > settings.max_thumbnail_size:
        errors["thumbnail"] = f"Max thumbnail file size is {_megabytes(settings.max_thumbnail_size)}."
    elif image_format(data) not in IMAGE_FORMATS:
        errors["thumbnail"] = "Thumbnail is not a readable JPEG, PNG or WEBP image."


def image_format(data: bytes) -> Optional[str]:
    """PIL format name of an encoded image, or None if it does not decode."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
            return image.format
    except (UnidentifiedImageError, OSError, SyntaxError):
        return None
