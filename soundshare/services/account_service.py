"""
Account lifecycle: signup, login, profile read/update, and account deletion.

Deleting an account cascades: the user's audios and the comments on them are
removed, every other account drops its saved/liked references to those
audios, and the user is pulled from the likes of the audios that remain.
"""

import logging
import re
from datetime import datetime
from typing import Callable, Dict, Optional

from passlib.context import CryptContext

from ..errors import Forbidden, NotFound, Unauthorized, ValidationError
from ..utils import new_id, require_id, to_iso, to_public_user, utc_now
from .audio_store import AudioStore
from .comment_store import CommentStore
from .population import populate_account
from .user_store import UserStore

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")
MIN_USERNAME = 3
MIN_NAME, MAX_NAME = 3, 30
MIN_PASSWORD = 6


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def _validate_username(username: str) -> str:
    name = (username or "").strip()
    if len(name) < MIN_USERNAME:
        raise ValidationError(f"Username must be at least {MIN_USERNAME} characters.")
    return name


def _validate_name(name: str) -> str:
    name = (name or "").strip()
    if len(name) < MIN_NAME:
        raise ValidationError(f"Name can't be less than {MIN_NAME} characters")
    if len(name) > MAX_NAME:
        raise ValidationError(f"Name can't exceed {MAX_NAME} characters")
    return name


def _validate_email(email: str) -> str:
    email = (email or "").strip()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Please enter a valid email.")
    return email


def _validate_password(password: str) -> str:
    if not password or len(password) < MIN_PASSWORD:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD} characters.")
    return password


class AccountService:
    def __init__(
        self,
        audio_store: AudioStore,
        user_store: UserStore,
        comment_store: CommentStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.audios = audio_store
        self.users = user_store
        self.comments = comment_store
        self._clock = clock

    def signup(
        self,
        username: str,
        name: str,
        email: str,
        password: str,
        gender: Optional[str] = None,
        profile_image: str = "",
    ) -> Dict:
        """Create an account. Returns the public user (no password, no lists)."""
        username = _validate_username(username)
        name = _validate_name(name)
        email = _validate_email(email)
        _validate_password(password)
        if self.users.get_by_email(email):
            raise ValidationError("Email already registered")
        if self.users.get_by_username(username):
            raise ValidationError("Username already taken")
        now = to_iso(self._clock())
        user = self.users.create({
            "id": new_id(),
            "username": username,
            "name": name,
            "email": email,
            "password_hash": hash_password(password),
            "profile_image": profile_image or "",
            "gender": (gender or "").strip() or None,
            "saved_audios": [],
            "liked_audios": [],
            "created_at": now,
            "updated_at": now,
        })
        logger.info("[accounts] signup user=%s username=%s", user["id"], username)
        return to_public_user(user)

    def login(self, email: str, password: str) -> Dict:
        user = self.users.get_by_email(email or "")
        if not user or not verify_password(password or "", user.get("password_hash", "")):
            raise Unauthorized("Invalid email or password")
        return to_public_user(user)

    def get_account(self, user_id: Optional[str]) -> Dict:
        """Authenticated user's account with saved/liked audios populated."""
        if not user_id:
            raise Unauthorized("User not authenticated")
        user = self.users.get_by_id(user_id)
        if not user:
            raise NotFound("User not found")
        return populate_account(user, self.audios, self.users)

    def update_account(self, caller_id: Optional[str], target_id: str, fields: Dict) -> Dict:
        """
        Update the caller's own profile. fields may carry username, name, email,
        password, gender, profile_image; empty values are ignored.
        """
        if not caller_id:
            raise Unauthorized("User not authenticated")
        require_id(target_id, "user ID")
        if caller_id != target_id:
            raise Forbidden("Unauthorized. You can only update your own account.")
        user = self.users.get_by_id(target_id)
        if not user:
            raise NotFound("User not found.")

        updates: Dict = {}
        username = (fields.get("username") or "").strip()
        if username and username != user.get("username"):
            username = _validate_username(username)
            if self.users.get_by_username(username):
                raise ValidationError("Username already taken.")
            updates["username"] = username
        email = (fields.get("email") or "").strip()
        if email and email.lower() != user.get("email"):
            email = _validate_email(email)
            if self.users.get_by_email(email):
                raise ValidationError("Email already registered.")
            updates["email"] = email
        if fields.get("name"):
            updates["name"] = _validate_name(fields["name"])
        if fields.get("gender"):
            updates["gender"] = fields["gender"].strip()
        if fields.get("password"):
            updates["password_hash"] = hash_password(_validate_password(fields["password"]))
        if fields.get("profile_image"):
            updates["profile_image"] = fields["profile_image"].strip()

        if not updates:
            raise ValidationError("No valid fields provided to update.")
        updates["updated_at"] = to_iso(self._clock())
        updated = self.users.update(target_id, updates)
        if not updated:
            raise NotFound("User not found.")
        logger.info("[accounts] update user=%s fields=%s", target_id, sorted(updates))
        return to_public_user(updated)

    def delete_account(self, caller_id: Optional[str], target_id: str) -> None:
        """Delete the caller's account and everything that references its content."""
        if not caller_id:
            raise Unauthorized("User not authenticated")
        require_id(target_id, "user ID")
        if caller_id != target_id:
            raise Forbidden("Unauthorized. You can only delete your own account.")
        if not self.users.get_by_id(target_id):
            raise NotFound("User not found.")

        audio_ids = self.audios.delete_by_author(target_id)
        comments_deleted = self.comments.delete_for_audios(audio_ids)
        users_changed = self.users.pull_audio_references(audio_ids)
        likes_pulled = self.audios.remove_like_everywhere(target_id)
        self.users.delete(target_id)
        logger.info(
            "[accounts] delete user=%s audios=%d comments=%d accounts_cleaned=%d likes_pulled=%d",
            target_id, len(audio_ids), comments_deleted, users_changed, likes_pulled,
        )
