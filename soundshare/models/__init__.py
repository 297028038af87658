"""Pydantic request models for the API."""

from .audios import CommentRequest, UploadAudioRequest
from .users import LoginRequest, SignupRequest, UpdateUserRequest

__all__ = [
    "CommentRequest",
    "UploadAudioRequest",
    "LoginRequest",
    "SignupRequest",
    "UpdateUserRequest",
]
