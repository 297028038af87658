"""Audio upload: records metadata for media already stored on the media host."""

import logging
import re
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Union

from ..errors import NotFound, Unauthorized, ValidationError
from ..utils import new_id, to_audio_card, to_iso, unique, utc_now
from .audio_store import AudioStore
from .user_store import UserStore

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"^[a-z0-9_-]+$")


def normalize_tags(tags: Union[None, str, Iterable[str]]) -> List[str]:
    """Lowercase slugs; accepts a list or a comma-separated string. Duplicates dropped."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    out = []
    for t in tags:
        slug = (t or "").strip().lower()
        if not slug:
            continue
        if not TAG_PATTERN.match(slug):
            raise ValidationError(f"Invalid tag {t!r}: use letters, digits, '-' or '_'.")
        out.append(slug)
    return unique(out)


def _required(value: Optional[str], label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{label} is required")
    return value


class UploadService:
    def __init__(
        self,
        audio_store: AudioStore,
        user_store: UserStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.audios = audio_store
        self.users = user_store
        self._clock = clock

    def upload_audio(
        self,
        author_id: Optional[str],
        title: str,
        description: str,
        category: str,
        thumbnail_url: str,
        audio_url: str,
        tags: Union[None, str, Iterable[str]] = None,
        duration: Optional[float] = None,
    ) -> Dict:
        if not author_id:
            raise Unauthorized("Unauthorized. Please log in.")
        author = self.users.get_by_id(author_id)
        if not author:
            raise NotFound("User not found.")
        if duration is not None and duration < 0:
            raise ValidationError("duration must be non-negative")
        now = to_iso(self._clock())
        audio = self.audios.create({
            "id": new_id(),
            "author_id": author_id,
            "title": _required(title, "Title"),
            "description": _required(description, "Description"),
            "category": _required(category, "Category"),
            "tags": normalize_tags(tags),
            "thumbnail_url": _required(thumbnail_url, "Thumbnail"),
            "audio_url": _required(audio_url, "Audio file"),
            "comment_ids": [],
            "likes": [],
            "view_count": 0,
            "viewed_by": [],
            "duration": duration,
            "created_at": now,
            "updated_at": now,
        })
        logger.info("[uploads] audio=%s author=%s title=%r", audio["id"], author_id, audio["title"])
        return to_audio_card(audio, author)
