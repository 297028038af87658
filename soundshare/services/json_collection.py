"""
JSON-file document table shared by the local stores.

Documents are kept in memory keyed by id and written back to a JSON file after
every mutation (path=None keeps them in memory only). All reads and writes go
through one re-entrant lock, so a callback passed to ``update`` runs as a
single atomic read-modify-write against the table.
"""

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union

from ..errors import StoreFailure

logger = logging.getLogger(__name__)


class JsonCollection:
    """Id-keyed table of dict documents, optionally persisted to a JSON file."""

    def __init__(self, name: str, path: Optional[Union[Path, str]] = None):
        self.name = name
        self._path = Path(path) if path else None
        self._docs: Dict[str, Dict] = {}
        self.lock = threading.RLock()
        if self._path:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("[JsonStore] could not read %s (%s), starting empty", self._path, e)
            self._docs = {}
            return
        docs = data.get(self.name, data) if isinstance(data, dict) else data
        if isinstance(docs, list):
            for d in docs:
                if d.get("id"):
                    self._docs[d["id"]] = d
        elif isinstance(docs, dict):
            for doc_id, d in docs.items():
                d["id"] = doc_id
                self._docs[doc_id] = d

    def _save(self) -> None:
        if not self._path:
            return
        out = {self.name: list(self._docs.values())}
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            with open(tmp, "w") as f:
                json.dump(out, f, indent=2)
            tmp.replace(self._path)
        except OSError as e:
            logger.error("[JsonStore] write failed for %s: %s", self._path, e)
            raise StoreFailure(f"Failed to persist {self.name}: {e}")

    def get(self, doc_id: str) -> Optional[Dict]:
        with self.lock:
            doc = self._docs.get(doc_id)
            return copy.deepcopy(doc) if doc else None

    def get_many(self, doc_ids: List[str]) -> Dict[str, Dict]:
        with self.lock:
            return {i: copy.deepcopy(self._docs[i]) for i in doc_ids if i in self._docs}

    def find(self, predicate: Callable[[Dict], bool]) -> List[Dict]:
        with self.lock:
            return [copy.deepcopy(d) for d in self._docs.values() if predicate(d)]

    def find_one(self, predicate: Callable[[Dict], bool]) -> Optional[Dict]:
        with self.lock:
            for d in self._docs.values():
                if predicate(d):
                    return copy.deepcopy(d)
        return None

    def insert(self, doc: Dict) -> Dict:
        with self.lock:
            if doc["id"] in self._docs:
                raise StoreFailure(f"Duplicate id in {self.name}: {doc['id']}")
            self._docs[doc["id"]] = copy.deepcopy(doc)
            self._save()
            return copy.deepcopy(doc)

    def update(self, doc_id: str, mutate: Callable[[Dict], bool]) -> Optional[Dict]:
        """
        Apply mutate(doc) in place under the lock. mutate returns True when it
        changed the document (triggers a save). Returns a copy of the document
        after the call, or None if it does not exist.
        """
        with self.lock:
            doc = self._docs.get(doc_id)
            if doc is None:
                return None
            if mutate(doc):
                self._save()
            return copy.deepcopy(doc)

    def update_where(self, predicate: Callable[[Dict], bool], mutate: Callable[[Dict], bool]) -> int:
        """Apply mutate to every matching document; returns how many changed."""
        with self.lock:
            changed = 0
            for d in self._docs.values():
                if predicate(d) and mutate(d):
                    changed += 1
            if changed:
                self._save()
            return changed

    def delete(self, doc_id: str) -> bool:
        with self.lock:
            if self._docs.pop(doc_id, None) is None:
                return False
            self._save()
            return True

    def delete_where(self, predicate: Callable[[Dict], bool]) -> List[str]:
        with self.lock:
            ids = [i for i, d in self._docs.items() if predicate(d)]
            for i in ids:
                del self._docs[i]
            if ids:
                self._save()
            return ids

    def __len__(self) -> int:
        with self.lock:
            return len(self._docs)

    def __iter__(self) -> Iterator[Dict]:
        with self.lock:
            return iter([copy.deepcopy(d) for d in self._docs.values()])
