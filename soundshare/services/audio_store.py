"""
Audio store: audio records plus their engagement sub-fields.

Engagement fields (likes, viewed_by, view_count, comment_ids) are only ever
changed through the single-document operations below (add-to-set, pull,
conditional append + increment), never by writing back a document that was
read earlier. Implementations: JSON file / in-memory (local, tests) and
Firestore (production).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple, Union

from .firestore_base import commit_in_batches, firestore_client, store_call
from .json_collection import JsonCollection

SORT_LATEST = "latest"
SORT_POPULARITY = "popularity"

SEARCH_FIELDS = ("title", "description", "category")


@dataclass
class AudioQuery:
    """Filter/sort clause for a listing query. All set fields are ANDed."""

    created_before: Optional[str] = None  # ISO horizon, inclusive
    author_id: Optional[str] = None
    category: Optional[str] = None
    search: Optional[str] = None
    sort: str = SORT_LATEST


def matches_search(audio: Dict, text: Optional[str]) -> bool:
    """Case-insensitive substring match on title, description, category or any tag."""
    if not text:
        return True
    needle = text.casefold()
    for f in SEARCH_FIELDS:
        if needle in (audio.get(f) or "").casefold():
            return True
    return any(needle in (t or "").casefold() for t in audio.get("tags") or [])


def matches_query(audio: Dict, q: AudioQuery) -> bool:
    if q.created_before and (audio.get("created_at") or "") > q.created_before:
        return False
    if q.author_id and audio.get("author_id") != q.author_id:
        return False
    if q.category and audio.get("category") != q.category:
        return False
    return matches_search(audio, q.search)


def sort_audios(audios: List[Dict], sort: str) -> List[Dict]:
    """Newest first by default; popularity = most viewed first. Ties: newest, then id."""
    ordered = sorted(audios, key=lambda a: a["id"], reverse=True)
    ordered.sort(key=lambda a: a.get("created_at") or "", reverse=True)
    if sort == SORT_POPULARITY:
        ordered.sort(key=lambda a: int(a.get("view_count") or 0), reverse=True)
    return ordered


def _has_viewed(audio: Dict, user_id: str) -> bool:
    return any(v.get("user_id") == user_id for v in audio.get("viewed_by") or [])


class AudioStore(Protocol):
    """Protocol for audio persistence. Implement for JSON file or Firestore."""

    def create(self, audio: Dict) -> Dict:
        """Insert a new audio document (must carry its id). Returns the stored document."""
        ...

    def get_by_id(self, audio_id: str) -> Optional[Dict]:
        ...

    def get_many(self, audio_ids: List[str]) -> Dict[str, Dict]:
        """Return id -> audio for the ids that exist."""
        ...

    def query(self, q: AudioQuery, offset: int, limit: int) -> Tuple[List[Dict], int]:
        """Return (page of matching audios sorted per q.sort, total matching count)."""
        ...

    def add_like(self, audio_id: str, user_id: str) -> Optional[Dict]:
        """Add user_id to likes if absent. Returns the updated audio or None if missing."""
        ...

    def remove_like(self, audio_id: str, user_id: str) -> Optional[Dict]:
        """Remove user_id from likes if present. Returns the updated audio or None if missing."""
        ...

    def record_view(self, audio_id: str, user_id: str, timestamp: str) -> Tuple[Optional[Dict], bool]:
        """
        Atomically append {user_id, timestamp} to viewed_by and increment view_count,
        unless user_id already viewed. Returns (audio, recorded); audio is None if missing.
        """
        ...

    def append_comment(self, audio_id: str, comment_id: str) -> Optional[Dict]:
        ...

    def remove_like_everywhere(self, user_id: str) -> int:
        """Pull user_id from the likes of every audio. Returns how many audios changed."""
        ...

    def delete_by_author(self, author_id: str) -> List[str]:
        """Delete all audios of an author. Returns the deleted ids."""
        ...


class JsonAudioStore:
    """Audio store backed by a JSON file (e.g. data/audios.json); path=None keeps it in memory."""

    def __init__(self, path: Optional[Union[Path, str]] = None):
        self._table = JsonCollection("audios", path)

    def create(self, audio: Dict) -> Dict:
        return self._table.insert(audio)

    def get_by_id(self, audio_id: str) -> Optional[Dict]:
        return self._table.get(audio_id)

    def get_many(self, audio_ids: List[str]) -> Dict[str, Dict]:
        return self._table.get_many(audio_ids)

    def query(self, q: AudioQuery, offset: int, limit: int) -> Tuple[List[Dict], int]:
        matched = sort_audios(self._table.find(lambda a: matches_query(a, q)), q.sort)
        return matched[offset : offset + limit], len(matched)

    def add_like(self, audio_id: str, user_id: str) -> Optional[Dict]:
        def _add(doc: Dict) -> bool:
            likes = doc.setdefault("likes", [])
            if user_id in likes:
                return False
            likes.append(user_id)
            return True

        return self._table.update(audio_id, _add)

    def remove_like(self, audio_id: str, user_id: str) -> Optional[Dict]:
        def _pull(doc: Dict) -> bool:
            likes = doc.get("likes") or []
            if user_id not in likes:
                return False
            doc["likes"] = [u for u in likes if u != user_id]
            return True

        return self._table.update(audio_id, _pull)

    def record_view(self, audio_id: str, user_id: str, timestamp: str) -> Tuple[Optional[Dict], bool]:
        recorded = False

        def _view(doc: Dict) -> bool:
            nonlocal recorded
            if _has_viewed(doc, user_id):
                return False
            doc.setdefault("viewed_by", []).append({"user_id": user_id, "timestamp": timestamp})
            doc["view_count"] = int(doc.get("view_count") or 0) + 1
            doc["updated_at"] = timestamp
            recorded = True
            return True

        audio = self._table.update(audio_id, _view)
        return audio, recorded

    def append_comment(self, audio_id: str, comment_id: str) -> Optional[Dict]:
        def _append(doc: Dict) -> bool:
            doc.setdefault("comment_ids", []).append(comment_id)
            return True

        return self._table.update(audio_id, _append)

    def remove_like_everywhere(self, user_id: str) -> int:
        def _pull(doc: Dict) -> bool:
            doc["likes"] = [u for u in doc.get("likes") or [] if u != user_id]
            return True

        return self._table.update_where(lambda d: user_id in (d.get("likes") or []), _pull)

    def delete_by_author(self, author_id: str) -> List[str]:
        return self._table.delete_where(lambda d: d.get("author_id") == author_id)


class FirestoreAudioStore:
    """
    Audio store backed by Firestore 'audios' collection. Document ID = audio id.

    Likes use ArrayUnion / ArrayRemove; view recording runs in a transaction so
    the viewed_by append and the view_count increment commit together.
    Firestore has no substring match, so search and sort run on the documents
    returned by the equality + horizon query.
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        credentials_path: Optional[Union[Path, str]] = None,
        collection: str = "audios",
    ):
        self._db = firestore_client(project_id, credentials_path)
        self._coll = self._db.collection(collection)

    def _doc_to_audio(self, doc) -> Dict:
        d = doc.to_dict()
        d["id"] = doc.id
        return d

    @store_call
    def create(self, audio: Dict) -> Dict:
        data = {k: v for k, v in audio.items() if k != "id"}
        self._coll.document(audio["id"]).create(data)
        return dict(audio)

    @store_call
    def get_by_id(self, audio_id: str) -> Optional[Dict]:
        doc = self._coll.document(audio_id).get()
        return self._doc_to_audio(doc) if doc.exists else None

    @store_call
    def get_many(self, audio_ids: List[str]) -> Dict[str, Dict]:
        refs = [self._coll.document(i) for i in dict.fromkeys(audio_ids)]
        if not refs:
            return {}
        return {doc.id: self._doc_to_audio(doc) for doc in self._db.get_all(refs) if doc.exists}

    @store_call
    def query(self, q: AudioQuery, offset: int, limit: int) -> Tuple[List[Dict], int]:
        from google.cloud.firestore_v1.base_query import FieldFilter

        query = self._coll
        if q.author_id:
            query = query.where(filter=FieldFilter("author_id", "==", q.author_id))
        if q.category:
            query = query.where(filter=FieldFilter("category", "==", q.category))
        if q.created_before:
            query = query.where(filter=FieldFilter("created_at", "<=", q.created_before))
        docs = [self._doc_to_audio(d) for d in query.stream()]
        matched = sort_audios([d for d in docs if matches_search(d, q.search)], q.sort)
        return matched[offset : offset + limit], len(matched)

    @store_call
    def add_like(self, audio_id: str, user_id: str) -> Optional[Dict]:
        from firebase_admin import firestore

        ref = self._coll.document(audio_id)
        if not ref.get().exists:
            return None
        ref.update({"likes": firestore.ArrayUnion([user_id])})
        return self.get_by_id(audio_id)

    @store_call
    def remove_like(self, audio_id: str, user_id: str) -> Optional[Dict]:
        from firebase_admin import firestore

        ref = self._coll.document(audio_id)
        if not ref.get().exists:
            return None
        ref.update({"likes": firestore.ArrayRemove([user_id])})
        return self.get_by_id(audio_id)

    @store_call
    def record_view(self, audio_id: str, user_id: str, timestamp: str) -> Tuple[Optional[Dict], bool]:
        from firebase_admin import firestore

        ref = self._coll.document(audio_id)

        @firestore.transactional
        def _apply(txn) -> Tuple[bool, bool]:
            snap = ref.get(transaction=txn)
            if not snap.exists:
                return False, False
            if _has_viewed(snap.to_dict(), user_id):
                return True, False
            txn.update(ref, {
                "viewed_by": firestore.ArrayUnion([{"user_id": user_id, "timestamp": timestamp}]),
                "view_count": firestore.Increment(1),
                "updated_at": timestamp,
            })
            return True, True

        exists, recorded = _apply(self._db.transaction())
        if not exists:
            return None, False
        return self.get_by_id(audio_id), recorded

    @store_call
    def append_comment(self, audio_id: str, comment_id: str) -> Optional[Dict]:
        from firebase_admin import firestore

        ref = self._coll.document(audio_id)
        if not ref.get().exists:
            return None
        ref.update({"comment_ids": firestore.ArrayUnion([comment_id])})
        return self.get_by_id(audio_id)

    @store_call
    def remove_like_everywhere(self, user_id: str) -> int:
        from firebase_admin import firestore
        from google.cloud.firestore_v1.base_query import FieldFilter

        query = self._coll.where(filter=FieldFilter("likes", "array_contains", user_id))
        refs = [doc.reference for doc in query.stream()]
        return commit_in_batches(
            self._db, refs, lambda batch, ref: batch.update(ref, {"likes": firestore.ArrayRemove([user_id])})
        )

    @store_call
    def delete_by_author(self, author_id: str) -> List[str]:
        from google.cloud.firestore_v1.base_query import FieldFilter

        query = self._coll.where(filter=FieldFilter("author_id", "==", author_id))
        refs = [doc.reference for doc in query.stream()]
        commit_in_batches(self._db, refs, lambda batch, ref: batch.delete(ref))
        return [ref.id for ref in refs]
