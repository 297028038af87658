"""
Client state cache: the last fetched listing page, the audio being viewed,
and the logged-in account, each loaded and failing independently.

Like and bookmark actions are optimistic. An OptimisticAction moves
IDLE -> PENDING when the local flip is applied, then to CONFIRMED when the
server answers (server values win) or ROLLED_BACK when the call fails (the
snapshot taken before the flip is restored and the error is recorded on the
affected resource only).
"""

import copy
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .api import ApiError

logger = logging.getLogger(__name__)


class ActionState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


_TRANSITIONS = {
    ActionState.IDLE: {ActionState.PENDING},
    ActionState.PENDING: {ActionState.CONFIRMED, ActionState.ROLLED_BACK},
    ActionState.CONFIRMED: set(),
    ActionState.ROLLED_BACK: set(),
}


@dataclass
class OptimisticAction:
    kind: str  # "like" | "bookmark"
    audio_id: str
    state: ActionState = ActionState.IDLE
    error: Optional[str] = None
    snapshot: Dict[str, Any] = field(default_factory=dict, repr=False)

    def advance(self, to: ActionState) -> None:
        if to not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"{self.kind} action cannot go from {self.state.value} to {to.value}")
        self.state = to


@dataclass
class ResourceState:
    data: Any = None
    loading: bool = False
    error: Optional[str] = None

    def start(self) -> None:
        self.loading = True
        self.error = None

    def succeed(self, data: Any) -> None:
        self.data = data
        self.loading = False
        self.error = None

    def fail(self, message: str) -> None:
        self.loading = False
        self.error = message

    def invalidate(self) -> None:
        self.data = None
        self.loading = False
        self.error = None


@dataclass(frozen=True)
class ListingQuery:
    search: Optional[str] = None
    category: Optional[str] = None
    author: Optional[str] = None
    sort: Optional[str] = None
    limit: int = 6


class ClientStateCache:
    """
    Per-session cache over a SoundshareClient (or any object with the same
    methods). Errors from the client are ApiError; they never propagate out of
    the cache, they land in the affected resource's ``error``.
    """

    def __init__(self, client):
        self.client = client
        self.listing = ResourceState()
        self.audio = ResourceState()
        self.account = ResourceState()
        self._listing_query: Optional[ListingQuery] = None
        self._first_query_time: Optional[str] = None

    # -- loading ----------------------------------------------------------

    @property
    def user_id(self) -> Optional[str]:
        return self.account.data.get("id") if self.account.data else None

    def load_listing(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        author: Optional[str] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 6,
    ) -> None:
        """Fetch one listing page; page 1 or changed filters start a new query horizon."""
        query = ListingQuery(search, category, author, sort, limit)
        if page == 1 or query != self._listing_query:
            self._first_query_time = None
        self.listing.start()
        try:
            data = self.client.list_audios(
                search=search, category=category, author=author, sort=sort,
                page=page, limit=limit, first_query_time=self._first_query_time,
            )
        except ApiError as e:
            self.listing.fail(e.message)
            return
        self._listing_query = query
        self._first_query_time = data.get("firstQueryTime")
        self.listing.succeed({
            "audios": data.get("audios", []),
            "page": data.get("page", page),
            "totalPages": data.get("totalPages", 0),
            "totalAudios": data.get("totalAudios", 0),
            "firstQueryTime": self._first_query_time,
        })

    def load_audio(self, audio_id: str) -> None:
        self.audio.start()
        try:
            data = self.client.get_audio(audio_id)
        except ApiError as e:
            self.audio.fail(e.message)
            return
        self.audio.succeed(data.get("audio"))

    def load_account(self) -> None:
        self.account.start()
        try:
            data = self.client.authenticate()
        except ApiError as e:
            self.account.fail(e.message)
            return
        self.account.succeed(data.get("user"))

    def login(self, email: str, password: str) -> bool:
        self.account.start()
        try:
            self.client.login(email, password)
        except ApiError as e:
            self.account.fail(e.message)
            return False
        self.load_account()
        return self.account.error is None

    def logout(self) -> None:
        try:
            self.client.logout()
        except ApiError as e:
            self.account.fail(e.message)
            return
        self.account.invalidate()

    def invalidate(self, resource: str) -> None:
        """Drop one of "listing", "audio", "account"."""
        getattr(self, resource).invalidate()
        if resource == "listing":
            self._listing_query = None
            self._first_query_time = None

    # -- derived ----------------------------------------------------------

    def is_bookmarked(self, audio_id: str) -> bool:
        saved = (self.account.data or {}).get("savedAudios") or []
        return any(entry.get("audioId") == audio_id for entry in saved)

    def is_liked(self, audio_id: str) -> bool:
        cards = self._cards(audio_id)
        return bool(cards) and self.user_id in (cards[0].get("likes") or [])

    def _cards(self, audio_id: str) -> List[Dict]:
        """Every cached copy of an audio card (current audio and listing entries)."""
        cards = []
        if self.audio.data and self.audio.data.get("id") == audio_id:
            cards.append(self.audio.data)
        for card in (self.listing.data or {}).get("audios", []):
            if card.get("id") == audio_id:
                cards.append(card)
        return cards

    # -- optimistic actions -------------------------------------------------

    def toggle_like(self, audio_id: str) -> OptimisticAction:
        action = OptimisticAction("like", audio_id)
        user_id = self.user_id
        if not user_id:
            action.error = "Please log in to like audio."
            return action

        cards = self._cards(audio_id)
        action.snapshot = {
            "cards": [(card, list(card.get("likes") or []), card.get("totalLikes", 0)) for card in cards],
        }
        liked_now = not self.is_liked(audio_id)
        for card in cards:
            likes = [u for u in card.get("likes") or [] if u != user_id]
            if liked_now:
                likes.append(user_id)
            card["likes"] = likes
            card["totalLikes"] = max(0, int(card.get("totalLikes") or 0) + (1 if liked_now else -1))
        action.advance(ActionState.PENDING)

        try:
            data = self.client.toggle_like(audio_id)
        except ApiError as e:
            for card, likes, total in action.snapshot["cards"]:
                card["likes"] = likes
                card["totalLikes"] = total
            self._fail_for(audio_id, e.message)
            action.error = e.message
            action.advance(ActionState.ROLLED_BACK)
            logger.info("like rolled back audio=%s: %s", audio_id, e.message)
            return action

        for card in self._cards(audio_id):
            likes = [u for u in card.get("likes") or [] if u != user_id]
            if data.get("liked"):
                likes.append(user_id)
            card["likes"] = likes
            card["totalLikes"] = data.get("totalLikes", len(likes))
        if data.get("user"):
            self.account.succeed(data["user"])
        action.advance(ActionState.CONFIRMED)
        return action

    def toggle_bookmark(self, audio_id: str) -> OptimisticAction:
        action = OptimisticAction("bookmark", audio_id)
        if not self.user_id:
            action.error = "Please log in to bookmark audios!"
            return action

        account = self.account.data
        saved = account.get("savedAudios") or []
        action.snapshot = {"savedAudios": copy.deepcopy(saved)}
        if self.is_bookmarked(audio_id):
            account["savedAudios"] = [s for s in saved if s.get("audioId") != audio_id]
        else:
            account["savedAudios"] = saved + [{"audioId": audio_id, "savedAt": None, "audio": None}]
        action.advance(ActionState.PENDING)

        try:
            data = self.client.toggle_bookmark(audio_id)
        except ApiError as e:
            account["savedAudios"] = action.snapshot["savedAudios"]
            self.account.error = e.message
            action.error = e.message
            action.advance(ActionState.ROLLED_BACK)
            logger.info("bookmark rolled back audio=%s: %s", audio_id, e.message)
            return action

        if data.get("user"):
            self.account.succeed(data["user"])
        action.advance(ActionState.CONFIRMED)
        return action

    def _fail_for(self, audio_id: str, message: str) -> None:
        """Record an error on whichever resource shows audio_id."""
        if self.audio.data and self.audio.data.get("id") == audio_id:
            self.audio.error = message
        else:
            self.listing.error = message

    # -- confirmed-only actions ---------------------------------------------

    def record_view(self, audio_id: str) -> bool:
        """Report a play; returns True if the server counted a new view."""
        try:
            data = self.client.mark_viewed(audio_id)
        except ApiError as e:
            self._fail_for(audio_id, e.message)
            return False
        audio = data.get("audio")
        if not audio:
            return False
        for card in self._cards(audio_id):
            card["viewCount"] = audio.get("viewCount", card.get("viewCount", 0))
            card["viewedBy"] = audio.get("viewedBy", card.get("viewedBy", []))
        return True

    def add_comment(self, audio_id: str, content: str) -> Optional[Dict]:
        try:
            data = self.client.add_comment(audio_id, content)
        except ApiError as e:
            self._fail_for(audio_id, e.message)
            return None
        comment = data.get("comment")
        if comment and self.audio.data and self.audio.data.get("id") == audio_id:
            comments = self.audio.data.get("comments") or []
            self.audio.data["comments"] = [comment] + comments
        return comment
