from uuid import UUID
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from sportreel.models.video import Sport


class VideoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    sport: Sport
    videoUrl: str
    thumbnailUrl: str
    uploaderId: UUID
    uploadDate: datetime
    views: int = 0
    likes: int = 0


class VideoUpdate(BaseModel):
    """Partial edit. Lengths are checked by the mutator so errors come back per field."""

    title: Optional[str] = None
    description: Optional[str] = None
    sport: Optional[str] = None


class ThumbnailRequest(BaseModel):
    prompt: str = Field(..., description="Text describing the desired thumbnail")


class ThumbnailResponse(BaseModel):
    thumbnailDataUri: str  # data:<mime>;base64,<payload>
