"""
User store: account records with embedded engagement-reference lists
(saved_audios, liked_audios). Persistence to JSON file or Firestore depending
on DATA_SOURCE. Document ID = user id; email is stored lowercased.
"""

from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

from .firestore_base import commit_in_batches, firestore_client, store_call
from .json_collection import JsonCollection

SAVED = ("saved_audios", "saved_at")
LIKED = ("liked_audios", "liked_at")


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _add_ref(doc: Dict, field: str, time_key: str, audio_id: str, timestamp: str) -> bool:
    refs = doc.setdefault(field, [])
    if any(r.get("audio_id") == audio_id for r in refs):
        return False
    refs.append({"audio_id": audio_id, time_key: timestamp})
    return True


def _remove_refs(doc: Dict, field: str, audio_ids: set) -> bool:
    refs = doc.get(field) or []
    kept = [r for r in refs if r.get("audio_id") not in audio_ids]
    if len(kept) == len(refs):
        return False
    doc[field] = kept
    return True


class UserStore(Protocol):
    """Protocol for user persistence. Implement for JSON file or Firestore."""

    def create(self, user: Dict) -> Dict:
        """Insert a new user document (must carry its id). Returns the stored document."""
        ...

    def get_by_id(self, user_id: str) -> Optional[Dict]:
        """Return user dict if exists, else None."""
        ...

    def get_many(self, user_ids: List[str]) -> Dict[str, Dict]:
        """Return id -> user for the ids that exist."""
        ...

    def get_by_email(self, email: str) -> Optional[Dict]:
        ...

    def get_by_username(self, username: str) -> Optional[Dict]:
        ...

    def update(self, user_id: str, fields: Dict) -> Optional[Dict]:
        """Set the given top-level fields. Returns updated user or None if not found."""
        ...

    def delete(self, user_id: str) -> bool:
        ...

    def add_liked_audio(self, user_id: str, audio_id: str, liked_at: str) -> Optional[Dict]:
        """Add {audio_id, liked_at} to liked_audios unless audio_id is already there."""
        ...

    def remove_liked_audio(self, user_id: str, audio_id: str) -> Optional[Dict]:
        ...

    def add_saved_audio(self, user_id: str, audio_id: str, saved_at: str) -> Optional[Dict]:
        """Add {audio_id, saved_at} to saved_audios unless audio_id is already there."""
        ...

    def remove_saved_audio(self, user_id: str, audio_id: str) -> Optional[Dict]:
        ...

    def pull_audio_references(self, audio_ids: List[str]) -> int:
        """Remove audio_ids from every user's saved_audios and liked_audios. Returns users changed."""
        ...


class JsonUserStore:
    """User store backed by a JSON file (e.g. data/users.json); path=None keeps it in memory."""

    def __init__(self, path: Optional[Union[Path, str]] = None):
        self._table = JsonCollection("users", path)

    def create(self, user: Dict) -> Dict:
        user = dict(user)
        user["email"] = _normalize_email(user.get("email", ""))
        return self._table.insert(user)

    def get_by_id(self, user_id: str) -> Optional[Dict]:
        return self._table.get(user_id)

    def get_many(self, user_ids: List[str]) -> Dict[str, Dict]:
        return self._table.get_many(user_ids)

    def get_by_email(self, email: str) -> Optional[Dict]:
        key = _normalize_email(email)
        if not key:
            return None
        return self._table.find_one(lambda u: u.get("email") == key)

    def get_by_username(self, username: str) -> Optional[Dict]:
        name = username.strip()
        if not name:
            return None
        return self._table.find_one(lambda u: u.get("username") == name)

    def update(self, user_id: str, fields: Dict) -> Optional[Dict]:
        fields = dict(fields)
        if "email" in fields:
            fields["email"] = _normalize_email(fields["email"])

        def _set(doc: Dict) -> bool:
            doc.update(fields)
            return True

        return self._table.update(user_id, _set)

    def delete(self, user_id: str) -> bool:
        return self._table.delete(user_id)

    def add_liked_audio(self, user_id: str, audio_id: str, liked_at: str) -> Optional[Dict]:
        return self._table.update(user_id, lambda d: _add_ref(d, *LIKED, audio_id, liked_at))

    def remove_liked_audio(self, user_id: str, audio_id: str) -> Optional[Dict]:
        return self._table.update(user_id, lambda d: _remove_refs(d, LIKED[0], {audio_id}))

    def add_saved_audio(self, user_id: str, audio_id: str, saved_at: str) -> Optional[Dict]:
        return self._table.update(user_id, lambda d: _add_ref(d, *SAVED, audio_id, saved_at))

    def remove_saved_audio(self, user_id: str, audio_id: str) -> Optional[Dict]:
        return self._table.update(user_id, lambda d: _remove_refs(d, SAVED[0], {audio_id}))

    def pull_audio_references(self, audio_ids: List[str]) -> int:
        ids = set(audio_ids)
        if not ids:
            return 0

        def _pull(doc: Dict) -> bool:
            saved = _remove_refs(doc, SAVED[0], ids)
            liked = _remove_refs(doc, LIKED[0], ids)
            return saved or liked

        return self._table.update_where(lambda d: True, _pull)


class FirestoreUserStore:
    """
    User store backed by Firestore 'users' collection.

    Reference lists hold maps ({audio_id, saved_at}), which ArrayRemove can only
    match by full value, so add/remove run as transactions on the user document.
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        credentials_path: Optional[Union[Path, str]] = None,
        collection: str = "users",
    ):
        self._db = firestore_client(project_id, credentials_path)
        self._coll = self._db.collection(collection)

    def _doc_to_user(self, doc) -> Dict:
        d = doc.to_dict()
        d["id"] = doc.id
        return d

    def _find_one(self, field: str, value: str) -> Optional[Dict]:
        from google.cloud.firestore_v1.base_query import FieldFilter

        query = self._coll.where(filter=FieldFilter(field, "==", value)).limit(1)
        for doc in query.stream():
            return self._doc_to_user(doc)
        return None

    def _mutate(self, user_id: str, mutate) -> Optional[Dict]:
        """Run mutate(doc_dict) -> changed inside a transaction on users/{user_id}."""
        from firebase_admin import firestore

        ref = self._coll.document(user_id)

        @firestore.transactional
        def _apply(txn) -> bool:
            snap = ref.get(transaction=txn)
            if not snap.exists:
                return False
            d = snap.to_dict()
            if mutate(d):
                txn.update(ref, {"saved_audios": d.get("saved_audios", []), "liked_audios": d.get("liked_audios", [])})
            return True

        if not _apply(self._db.transaction()):
            return None
        return self.get_by_id(user_id)

    @store_call
    def create(self, user: Dict) -> Dict:
        user = dict(user)
        user["email"] = _normalize_email(user.get("email", ""))
        self._coll.document(user["id"]).create({k: v for k, v in user.items() if k != "id"})
        return user

    @store_call
    def get_by_id(self, user_id: str) -> Optional[Dict]:
        doc = self._coll.document(user_id).get()
        return self._doc_to_user(doc) if doc.exists else None

    @store_call
    def get_many(self, user_ids: List[str]) -> Dict[str, Dict]:
        refs = [self._coll.document(i) for i in dict.fromkeys(user_ids)]
        if not refs:
            return {}
        return {doc.id: self._doc_to_user(doc) for doc in self._db.get_all(refs) if doc.exists}

    @store_call
    def get_by_email(self, email: str) -> Optional[Dict]:
        key = _normalize_email(email)
        return self._find_one("email", key) if key else None

    @store_call
    def get_by_username(self, username: str) -> Optional[Dict]:
        name = username.strip()
        return self._find_one("username", name) if name else None

    @store_call
    def update(self, user_id: str, fields: Dict) -> Optional[Dict]:
        fields = dict(fields)
        if "email" in fields:
            fields["email"] = _normalize_email(fields["email"])
        doc_ref = self._coll.document(user_id)
        if not doc_ref.get().exists:
            return None
        doc_ref.update(fields)
        return self.get_by_id(user_id)

    @store_call
    def delete(self, user_id: str) -> bool:
        doc_ref = self._coll.document(user_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True

    @store_call
    def add_liked_audio(self, user_id: str, audio_id: str, liked_at: str) -> Optional[Dict]:
        return self._mutate(user_id, lambda d: _add_ref(d, *LIKED, audio_id, liked_at))

    @store_call
    def remove_liked_audio(self, user_id: str, audio_id: str) -> Optional[Dict]:
        return self._mutate(user_id, lambda d: _remove_refs(d, LIKED[0], {audio_id}))

    @store_call
    def add_saved_audio(self, user_id: str, audio_id: str, saved_at: str) -> Optional[Dict]:
        return self._mutate(user_id, lambda d: _add_ref(d, *SAVED, audio_id, saved_at))

    @store_call
    def remove_saved_audio(self, user_id: str, audio_id: str) -> Optional[Dict]:
        return self._mutate(user_id, lambda d: _remove_refs(d, SAVED[0], {audio_id}))

    @store_call
    def pull_audio_references(self, audio_ids: List[str]) -> int:
        ids = set(audio_ids)
        if not ids:
            return 0
        changed = []
        for doc in self._coll.stream():
            d = doc.to_dict()
            saved = _remove_refs(d, SAVED[0], ids)
            liked = _remove_refs(d, LIKED[0], ids)
            if saved or liked:
                changed.append((doc.reference, d))
        updates = {ref.path: d for ref, d in changed}
        return commit_in_batches(
            self._db,
            [ref for ref, _ in changed],
            lambda batch, ref: batch.update(ref, {
                "saved_audios": updates[ref.path].get("saved_audios", []),
                "liked_audios": updates[ref.path].get("liked_audios", []),
            }),
        )
