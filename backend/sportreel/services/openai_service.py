import base64
import binascii
import logging
import re
from typing import Tuple
from openai import OpenAI
from sportreel.core.config import settings
from sportreel.core.errors import GenerationError, ValidationError

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = "Generate a video thumbnail based on the following prompt: {prompt}"

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>[A-Za-z0-9+/=\s]+)$")


def decode_data_uri(data_uri: str) -> Tuple[bytes, str]:
    """
    Split a base64 data URI into its bytes and MIME type.

    Raises:
        ValidationError: if the URI is not a base64 data URI or the payload is empty
    """
    match = _DATA_URI_RE.match(data_uri.strip()) if data_uri else None
    if not match:
        raise ValidationError({"thumbnail": "Generated thumbnail is not a base64 data URI."})
    try:
        data = base64.b64decode(match.group("payload"), validate=False)
    except (binascii.Error, ValueError):
        raise ValidationError({"thumbnail": "Generated thumbnail payload is not valid base64."})
    if not data:
        raise ValidationError({"thumbnail": "Generated thumbnail is empty."})
    return data, match.group("mime")


def generate_thumbnail(prompt: str) -> str:
    """
    Generate a thumbnail image from a text prompt.

    Args:
        prompt: Free-text description of the desired thumbnail

    Returns:
        The image as a data URI (data:image/png;base64,...)

    Raises:
        GenerationError: empty prompt, missing API key, SDK failure, or no image in the response
    """
    if not prompt or not prompt.strip():
        raise GenerationError("A prompt is required to generate a thumbnail.")

    if not settings.openai_api_key:
        logger.warning("OpenAI API key not configured. Cannot generate thumbnails.")
        raise GenerationError("Thumbnail generation is not configured.")

    request = {
        "model": settings.thumbnail_model,
        "prompt": PROMPT_TEMPLATE.format(prompt=prompt.strip()),
        "n": 1,
        "size": settings.thumbnail_size,
    }
    # DALL-E models answer with hosted URLs unless asked for base64
    if settings.thumbnail_model.startswith("dall-e"):
        request["response_format"] = "b64_json"

    try:
        client = OpenAI(api_key=settings.openai_api_key, timeout=60.0)
        logger.info("Calling OpenAI API to generate thumbnail...")
        response = client.images.generate(**request)
    except Exception as e:
        logger.error(f"Error generating thumbnail with OpenAI: {e}", exc_info=True)
        raise GenerationError("Failed to generate thumbnail.") from e

    images = response.data or []
    b64_payload = images[0].b64_json if images else None
    if not b64_payload:
        logger.error("OpenAI response contained no image data")
        raise GenerationError("Failed to generate thumbnail.")

    logger.info("Successfully generated thumbnail")
    return f"data:image/png;base64,{b64_payload}"
