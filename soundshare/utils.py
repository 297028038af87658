"""Pure helpers: ids, timestamps, and API card formatting."""

import re
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from .errors import ValidationError

ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def new_id() -> str:
    return uuid.uuid4().hex


def is_valid_id(value: Optional[str]) -> bool:
    return bool(value) and bool(ID_PATTERN.match(value))


def require_id(value: Optional[str], what: str = "id") -> str:
    """Return value if it is a well-formed id, else raise ValidationError."""
    if not is_valid_id(value):
        raise ValidationError(f"Invalid {what}.")
    return value


def to_iso(dt: datetime) -> str:
    """Fixed-width UTC ISO string (millisecond precision) so lexical order is chronological."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted); naive values are taken as UTC."""
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid timestamp: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ---------------------------------------------------------------------------
# API cards (camelCase, password never included)
# ---------------------------------------------------------------------------


def author_summary(user: Optional[Dict]) -> Optional[Dict]:
    """Reduce a user record to the fields exposed next to content."""
    if not user:
        return None
    return {
        "id": user["id"],
        "name": user.get("name", ""),
        "profileImage": user.get("profile_image", ""),
    }


def to_audio_card(audio: Dict, author: Optional[Dict] = None, comments: Optional[List[Dict]] = None) -> Dict:
    """Format an audio record for the API. comments replaces comment ids when populated."""
    return {
        "id": audio["id"],
        "author": author_summary(author) if author else {"id": audio.get("author_id")},
        "title": audio.get("title", ""),
        "description": audio.get("description", ""),
        "category": audio.get("category", ""),
        "tags": list(audio.get("tags") or []),
        "thumbnailUrl": audio.get("thumbnail_url", ""),
        "audioUrl": audio.get("audio_url", ""),
        "comments": comments if comments is not None else list(audio.get("comment_ids") or []),
        "likes": list(audio.get("likes") or []),
        "totalLikes": len(audio.get("likes") or []),
        "viewCount": int(audio.get("view_count") or 0),
        "viewedBy": [
            {"userId": v.get("user_id"), "timestamp": v.get("timestamp")}
            for v in audio.get("viewed_by") or []
        ],
        "duration": audio.get("duration"),
        "createdAt": audio.get("created_at"),
        "updatedAt": audio.get("updated_at"),
    }


def to_comment_card(comment: Dict, author: Optional[Dict]) -> Dict:
    return {
        "id": comment["id"],
        "content": comment.get("content", ""),
        "author": author_summary(author),
        "audio": comment.get("audio_id"),
        "createdAt": comment.get("created_at"),
        "updatedAt": comment.get("updated_at"),
    }


def to_public_user(user: Dict) -> Dict:
    """Profile fields only (no password, no engagement lists)."""
    return {
        "id": user["id"],
        "username": user.get("username", ""),
        "name": user.get("name", ""),
        "email": user.get("email", ""),
        "profileImage": user.get("profile_image", ""),
        "gender": user.get("gender"),
    }


def _audio_ref(audio: Optional[Dict], authors_by_id: Dict[str, Dict]) -> Optional[Dict]:
    if not audio:
        return None
    return {
        "id": audio["id"],
        "title": audio.get("title", ""),
        "thumbnailUrl": audio.get("thumbnail_url", ""),
        "author": author_summary(authors_by_id.get(audio.get("author_id"))),
    }


def to_account(user: Dict, audios_by_id: Dict[str, Dict], authors_by_id: Dict[str, Dict]) -> Dict:
    """Full account view: profile plus populated savedAudios / likedAudios."""
    out = to_public_user(user)
    out["savedAudios"] = [
        {
            "audioId": entry["audio_id"],
            "savedAt": entry.get("saved_at"),
            "audio": _audio_ref(audios_by_id.get(entry["audio_id"]), authors_by_id),
        }
        for entry in user.get("saved_audios") or []
    ]
    out["likedAudios"] = [
        {
            "audioId": entry["audio_id"],
            "likedAt": entry.get("liked_at"),
            "audio": _audio_ref(audios_by_id.get(entry["audio_id"]), authors_by_id),
        }
        for entry in user.get("liked_audios") or []
    ]
    out["createdAt"] = user.get("created_at")
    return out


def unique(values: Iterable[str]) -> List[str]:
    """Deduplicate preserving first-seen order."""
    seen = set()
    out = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out
