"""Request models for audio upload and comments."""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class UploadAudioRequest(BaseModel):
    """Metadata for an audio whose files were already stored on the media host."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str
    category: str
    tags: Union[List[str], str, None] = None  # list or comma separated
    thumbnail_url: str = Field(alias="thumbnailUrl")
    audio_url: str = Field(alias="audioUrl")
    duration: Optional[float] = None


class CommentRequest(BaseModel):
    content: Optional[str] = None
