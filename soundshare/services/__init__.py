"""Backing logic: stores and the listing / engagement / account services."""

from .audio_store import (
    SORT_LATEST,
    SORT_POPULARITY,
    AudioQuery,
    AudioStore,
    FirestoreAudioStore,
    JsonAudioStore,
)
from .comment_store import CommentStore, FirestoreCommentStore, JsonCommentStore
from .user_store import FirestoreUserStore, JsonUserStore, UserStore
from .listing_service import AudioPage, ListingService
from .engagement_service import BookmarkResult, EngagementService, LikeResult, ViewResult
from .account_service import AccountService, hash_password, verify_password
from .upload_service import UploadService, normalize_tags

__all__ = [
    "SORT_LATEST",
    "SORT_POPULARITY",
    "AudioQuery",
    "AudioStore",
    "FirestoreAudioStore",
    "JsonAudioStore",
    "CommentStore",
    "FirestoreCommentStore",
    "JsonCommentStore",
    "FirestoreUserStore",
    "JsonUserStore",
    "UserStore",
    "AudioPage",
    "ListingService",
    "BookmarkResult",
    "EngagementService",
    "LikeResult",
    "ViewResult",
    "AccountService",
    "hash_password",
    "verify_password",
    "UploadService",
    "normalize_tags",
]
