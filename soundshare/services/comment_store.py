"""
Comment store: immutable comment records linked to an audio and an author.
Persistence to JSON file or Firestore depending on DATA_SOURCE.
"""

from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

from .firestore_base import commit_in_batches, firestore_client, store_call
from .json_collection import JsonCollection


class CommentStore(Protocol):
    """Protocol for comment persistence. Comments are created, read, and cascade-deleted only."""

    def create(self, comment: Dict) -> Dict:
        ...

    def get_by_id(self, comment_id: str) -> Optional[Dict]:
        ...

    def get_many(self, comment_ids: List[str]) -> Dict[str, Dict]:
        ...

    def delete_for_audios(self, audio_ids: List[str]) -> int:
        """Delete every comment attached to one of audio_ids. Returns how many were deleted."""
        ...


class JsonCommentStore:
    """Comment store backed by a JSON file (e.g. data/comments.json)."""

    def __init__(self, path: Optional[Union[Path, str]] = None):
        self._table = JsonCollection("comments", path)

    def create(self, comment: Dict) -> Dict:
        return self._table.insert(comment)

    def get_by_id(self, comment_id: str) -> Optional[Dict]:
        return self._table.get(comment_id)

    def get_many(self, comment_ids: List[str]) -> Dict[str, Dict]:
        return self._table.get_many(comment_ids)

    def delete_for_audios(self, audio_ids: List[str]) -> int:
        ids = set(audio_ids)
        if not ids:
            return 0
        return len(self._table.delete_where(lambda c: c.get("audio_id") in ids))


class FirestoreCommentStore:
    """Comment store backed by Firestore 'comments' collection."""

    def __init__(
        self,
        project_id: Optional[str] = None,
        credentials_path: Optional[Union[Path, str]] = None,
        collection: str = "comments",
    ):
        self._db = firestore_client(project_id, credentials_path)
        self._coll = self._db.collection(collection)

    def _doc_to_comment(self, doc) -> Dict:
        d = doc.to_dict()
        d["id"] = doc.id
        return d

    @store_call
    def create(self, comment: Dict) -> Dict:
        self._coll.document(comment["id"]).create({k: v for k, v in comment.items() if k != "id"})
        return dict(comment)

    @store_call
    def get_by_id(self, comment_id: str) -> Optional[Dict]:
        doc = self._coll.document(comment_id).get()
        return self._doc_to_comment(doc) if doc.exists else None

    @store_call
    def get_many(self, comment_ids: List[str]) -> Dict[str, Dict]:
        refs = [self._coll.document(i) for i in dict.fromkeys(comment_ids)]
        if not refs:
            return {}
        return {doc.id: self._doc_to_comment(doc) for doc in self._db.get_all(refs) if doc.exists}

    @store_call
    def delete_for_audios(self, audio_ids: List[str]) -> int:
        from google.cloud.firestore_v1.base_query import FieldFilter

        refs = []
        # "in" filters accept at most 30 values
        ids = list(dict.fromkeys(audio_ids))
        for start in range(0, len(ids), 30):
            chunk = ids[start : start + 30]
            query = self._coll.where(filter=FieldFilter("audio_id", "in", chunk))
            refs.extend(doc.reference for doc in query.stream())
        return commit_in_batches(self._db, refs, lambda batch, ref: batch.delete(ref))
