"""
Listing service: filtered, sorted, paginated audio listings.

A listing session is pinned to a query horizon (firstQueryTime): the first
page fixes it at "now", later pages pass it back, and only audios created
at-or-before it are counted, so uploads made while a user pages through the
catalog never shift page boundaries.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..errors import NotFound, ValidationError
from ..utils import parse_timestamp, require_id, to_audio_card, to_comment_card, to_iso, utc_now
from .audio_store import SORT_LATEST, SORT_POPULARITY, AudioQuery, AudioStore
from .comment_store import CommentStore
from .user_store import UserStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 6
MAX_LIMIT = 50


@dataclass
class AudioPage:
    audios: List[Dict] = field(default_factory=list)
    total_pages: int = 0
    total_audios: int = 0
    first_query_time: str = ""
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT


class ListingService:
    """Read-only queries over the audio catalog with author/comment joins."""

    def __init__(
        self,
        audio_store: AudioStore,
        user_store: UserStore,
        comment_store: CommentStore,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.audios = audio_store
        self.users = user_store
        self.comments = comment_store
        self.default_limit = default_limit
        self.max_limit = max_limit
        self._clock = clock

    def _with_authors(self, audios: List[Dict]) -> List[Dict]:
        authors = self.users.get_many([a.get("author_id") for a in audios if a.get("author_id")])
        return [to_audio_card(a, authors.get(a.get("author_id"))) for a in audios]

    def list_audios(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        author: Optional[str] = None,
        sort: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        first_query_time: Optional[str] = None,
    ) -> AudioPage:
        page = DEFAULT_PAGE if page is None else page
        limit = self.default_limit if limit is None else limit
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive integers.")
        limit = min(limit, self.max_limit)

        if first_query_time:
            horizon = to_iso(parse_timestamp(first_query_time))
        else:
            horizon = to_iso(self._clock())

        author_id = (author or "").strip() or None
        if author_id:
            require_id(author_id, "author ID")

        query = AudioQuery(
            created_before=horizon,
            author_id=author_id,
            category=(category or "").strip() or None,
            search=(search or "").strip() or None,
            sort=SORT_POPULARITY if sort == SORT_POPULARITY else SORT_LATEST,
        )
        audios, total = self.audios.query(query, offset=(page - 1) * limit, limit=limit)
        return AudioPage(
            audios=self._with_authors(audios),
            total_pages=math.ceil(total / limit),
            total_audios=total,
            first_query_time=horizon,
            page=page,
            limit=limit,
        )

    def get_audio(self, audio_id: str) -> Dict:
        """One audio with its author and comments (newest first) populated."""
        require_id(audio_id, "audio ID")
        audio = self.audios.get_by_id(audio_id)
        if not audio:
            raise NotFound("Audio not found")
        comments = list(self.comments.get_many(audio.get("comment_ids") or []).values())
        comments.sort(key=lambda c: c.get("created_at") or "", reverse=True)
        author_ids = [audio.get("author_id")] + [c.get("author_id") for c in comments]
        people = self.users.get_many([i for i in author_ids if i])
        return to_audio_card(
            audio,
            people.get(audio.get("author_id")),
            comments=[to_comment_card(c, people.get(c.get("author_id"))) for c in comments],
        )

    def search_catalog(self, text: Optional[str]) -> List[Dict]:
        """All audios matching text, most viewed then most liked first."""
        query = AudioQuery(search=(text or "").strip() or None, sort=SORT_POPULARITY)
        _, total = self.audios.query(query, offset=0, limit=1)
        if not total:
            raise NotFound("No audio found matching the criteria")
        audios, _ = self.audios.query(query, offset=0, limit=total)
        audios.sort(key=lambda a: (int(a.get("view_count") or 0), len(a.get("likes") or [])), reverse=True)
        return self._with_authors(audios)
