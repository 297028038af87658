"""
Shared Firebase app / Firestore client for the Firestore-backed stores.

All stores reuse the same Firebase app (same credentials_path and project_id),
initialized once on first use.
"""

import functools
import logging
from pathlib import Path
from typing import Optional, Union

from ..errors import StoreFailure

logger = logging.getLogger(__name__)

# Firestore batch writes are limited to 500 operations
BATCH_SIZE = 500


def firestore_client(
    project_id: Optional[str] = None,
    credentials_path: Optional[Union[Path, str]] = None,
):
    """Initialize the default Firebase app if needed and return a Firestore client."""
    import firebase_admin
    from firebase_admin import credentials, firestore

    if not firebase_admin._apps:
        if credentials_path:
            cred = credentials.Certificate(str(Path(credentials_path).resolve()))
            opts = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, opts)
        else:
            firebase_admin.initialize_app(options={"projectId": project_id} if project_id else None)
    return firestore.client()


def store_call(fn):
    """Translate Google API errors raised inside a store method into StoreFailure."""

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        from google.api_core import exceptions as gexc

        try:
            return fn(self, *args, **kwargs)
        except gexc.GoogleAPICallError as e:
            logger.error("[%s] %s failed: %s", type(self).__name__, fn.__name__, e)
            raise StoreFailure(str(e))

    return wrapper


def commit_in_batches(db, refs, apply) -> int:
    """Run apply(batch, ref) for each ref, committing every BATCH_SIZE operations."""
    count = 0
    batch = db.batch()
    pending = 0
    for ref in refs:
        apply(batch, ref)
        pending += 1
        count += 1
        if pending >= BATCH_SIZE:
            batch.commit()
            batch = db.batch()
            pending = 0
    if pending:
        batch.commit()
    return count
