"""Application state: stores and the services built on them."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .config import ServerConfig, get_config
from .services import (
    AccountService,
    EngagementService,
    FirestoreAudioStore,
    FirestoreCommentStore,
    FirestoreUserStore,
    JsonAudioStore,
    JsonCommentStore,
    JsonUserStore,
    ListingService,
    UploadService,
)
from .utils import utc_now

logger = logging.getLogger(__name__)


class AppState:
    """Global application state."""

    def __init__(self, config: ServerConfig, clock: Callable[[], datetime] = utc_now):
        self.config = config
        self.clock = clock

        # Stores: Firestore when configured and usable, else JSON files (or memory)
        self.audio_store, self.user_store, self.comment_store = self._create_stores(config)
        logger.info("[startup] Stores: %s", type(self.audio_store).__name__)

        self.listing = ListingService(
            self.audio_store,
            self.user_store,
            self.comment_store,
            default_limit=config.default_page_limit,
            max_limit=config.max_page_limit,
            clock=clock,
        )
        self.engagement = EngagementService(self.audio_store, self.user_store, self.comment_store, clock=clock)
        self.accounts = AccountService(self.audio_store, self.user_store, self.comment_store, clock=clock)
        self.uploads = UploadService(self.audio_store, self.user_store, clock=clock)

    def _create_stores(self, config: ServerConfig):
        """Create (audio, user, comment) stores from config."""
        if config.data_source == "firebase":
            cred_path = Path(config.firebase_credentials_path) if config.firebase_credentials_path else None
            if not cred_path or not cred_path.is_file():
                logger.warning(
                    "[startup] Firestore stores skipped: credentials path not found or not a file: %s", cred_path
                )
            else:
                try:
                    kwargs = {"project_id": config.firebase_project_id, "credentials_path": cred_path}
                    return (
                        FirestoreAudioStore(**kwargs),
                        FirestoreUserStore(**kwargs),
                        FirestoreCommentStore(**kwargs),
                    )
                except Exception as e:
                    logger.warning("[startup] Firestore store init failed: %s, using JSON files", e)
            config.data_source = "json"
            config.ensure_directories()

        if config.data_source == "memory":
            return JsonAudioStore(), JsonUserStore(), JsonCommentStore()

        data_dir = Path(config.data_dir)
        logger.info("[startup] JSON data dir: %s", data_dir)
        return (
            JsonAudioStore(data_dir / "audios.json"),
            JsonUserStore(data_dir / "users.json"),
            JsonCommentStore(data_dir / "comments.json"),
        )


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        config = get_config()
        _state = AppState(config)
    return _state


def set_state(state: Optional[AppState]) -> None:
    """Replace the global state (None resets it to lazy construction)."""
    global _state
    _state = state
