"""
Engagement service: like / bookmark toggles, first-view-only view counting,
and comments.

Toggles are set-membership flips: the current membership decides between an
add-if-absent and a remove-if-present store operation, both idempotent, so
rapid duplicate requests converge and the like count (the size of the set)
always agrees with the set. Every operation takes the authenticated user id
explicitly.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from ..errors import NotFound, Unauthorized, ValidationError
from ..utils import new_id, require_id, to_audio_card, to_comment_card, to_iso, utc_now
from .audio_store import AudioStore
from .comment_store import CommentStore
from .population import populate_account
from .user_store import UserStore

logger = logging.getLogger(__name__)


@dataclass
class LikeResult:
    liked: bool
    audio_id: str
    user_id: str
    total_likes: int
    user: Dict


@dataclass
class BookmarkResult:
    bookmarked: bool
    audio_id: str
    user: Dict


@dataclass
class ViewResult:
    recorded: bool
    audio: Optional[Dict] = None


class EngagementService:
    def __init__(
        self,
        audio_store: AudioStore,
        user_store: UserStore,
        comment_store: CommentStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.audios = audio_store
        self.users = user_store
        self.comments = comment_store
        self._clock = clock

    def _now(self) -> str:
        return to_iso(self._clock())

    def _load_pair(self, audio_id: str, user_id: Optional[str], action: str):
        if not user_id:
            raise Unauthorized(f"You must be logged in to {action}.")
        require_id(audio_id, "audio ID")
        audio = self.audios.get_by_id(audio_id)
        if not audio:
            raise NotFound("Audio not found.")
        user = self.users.get_by_id(user_id)
        if not user:
            raise NotFound("User not found.")
        return audio, user

    def _drop_if_deleted(self, audio_id: str, undo: Callable[[], object]) -> None:
        """Undo a just-added account reference if the audio was deleted meanwhile."""
        if self.audios.get_by_id(audio_id) is None:
            undo()
            raise NotFound("Audio not found.")

    def toggle_like(self, audio_id: str, user_id: Optional[str]) -> LikeResult:
        """Flip user_id's membership in the audio's likes and mirror it into liked_audios."""
        audio, _ = self._load_pair(audio_id, user_id, "like or unlike audio")
        already_liked = user_id in (audio.get("likes") or [])
        if already_liked:
            updated = self.audios.remove_like(audio_id, user_id)
        else:
            updated = self.audios.add_like(audio_id, user_id)
        if updated is None:
            raise NotFound("Audio not found.")
        if already_liked:
            user = self.users.remove_liked_audio(user_id, audio_id)
        else:
            user = self.users.add_liked_audio(user_id, audio_id, self._now())
            self._drop_if_deleted(audio_id, lambda: self.users.remove_liked_audio(user_id, audio_id))
        if user is None:
            raise NotFound("User not found.")
        logger.info("[engagement] like audio=%s user=%s liked=%s", audio_id, user_id, not already_liked)
        return LikeResult(
            liked=not already_liked,
            audio_id=audio_id,
            user_id=user_id,
            total_likes=len(updated.get("likes") or []),
            user=populate_account(user, self.audios, self.users),
        )

    def toggle_bookmark(self, audio_id: str, user_id: Optional[str]) -> BookmarkResult:
        """Flip audio_id's membership in the user's saved_audios."""
        _, user = self._load_pair(audio_id, user_id, "save or unsave audios")
        already_saved = any(r.get("audio_id") == audio_id for r in user.get("saved_audios") or [])
        if already_saved:
            user = self.users.remove_saved_audio(user_id, audio_id)
        else:
            user = self.users.add_saved_audio(user_id, audio_id, self._now())
            self._drop_if_deleted(audio_id, lambda: self.users.remove_saved_audio(user_id, audio_id))
        if user is None:
            raise NotFound("User not found.")
        logger.info("[engagement] bookmark audio=%s user=%s saved=%s", audio_id, user_id, not already_saved)
        return BookmarkResult(
            bookmarked=not already_saved,
            audio_id=audio_id,
            user=populate_account(user, self.audios, self.users),
        )

    def record_view(self, audio_id: str, user_id: Optional[str]) -> ViewResult:
        """Count a view once per user; repeated calls leave the audio unchanged."""
        if not user_id:
            raise Unauthorized("You must be logged in to record a view.")
        require_id(audio_id, "audio ID")
        audio, recorded = self.audios.record_view(audio_id, user_id, self._now())
        if audio is None:
            raise NotFound("Audio not found")
        if not recorded:
            return ViewResult(recorded=False)
        author = self.users.get_by_id(audio["author_id"]) if audio.get("author_id") else None
        logger.info("[engagement] view audio=%s user=%s count=%s", audio_id, user_id, audio.get("view_count"))
        return ViewResult(recorded=True, audio=to_audio_card(audio, author))

    def add_comment(self, audio_id: str, user_id: Optional[str], text: Optional[str]) -> Dict:
        """Create a comment on audio_id and return it with its author populated."""
        if not user_id:
            raise Unauthorized("Unauthorized: User not logged in")
        content = text.strip() if isinstance(text, str) else ""
        if not content:
            raise ValidationError("Comment content is required and must be a non-empty string")
        require_id(audio_id, "audio ID")
        if not self.audios.get_by_id(audio_id):
            raise NotFound("Audio not found")
        author = self.users.get_by_id(user_id)
        if not author:
            raise NotFound("User not found.")
        now = self._now()
        comment = self.comments.create({
            "id": new_id(),
            "content": content,
            "author_id": user_id,
            "audio_id": audio_id,
            "created_at": now,
            "updated_at": now,
        })
        if self.audios.append_comment(audio_id, comment["id"]) is None:
            # audio deleted between the check and the append
            self.comments.delete_for_audios([audio_id])
            raise NotFound("Audio not found")
        logger.info("[engagement] comment audio=%s user=%s comment=%s", audio_id, user_id, comment["id"])
        return to_comment_card(comment, author)
