"""Explicit reference joins between the flat stores (no lazy traversal)."""

from typing import Dict

from ..utils import to_account
from .audio_store import AudioStore
from .user_store import UserStore


def populate_account(user: Dict, audio_store: AudioStore, user_store: UserStore) -> Dict:
    """Account view with saved/liked audio references resolved to {id, title, thumbnailUrl, author}."""
    audio_ids = [r["audio_id"] for r in (user.get("saved_audios") or []) + (user.get("liked_audios") or [])]
    audios = audio_store.get_many(audio_ids) if audio_ids else {}
    author_ids = [a.get("author_id") for a in audios.values() if a.get("author_id")]
    authors = user_store.get_many(author_ids) if author_ids else {}
    return to_account(user, audios, authors)
