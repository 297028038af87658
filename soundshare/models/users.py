"""Request models for the account endpoints."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str
    name: str
    email: str
    password: str
    gender: Optional[str] = None
    profile_image: Optional[str] = Field(default=None, alias="profileImage")


class LoginRequest(BaseModel):
    email: str
    password: str


class UpdateUserRequest(BaseModel):
    """All fields optional; only non-empty ones are applied."""

    model_config = ConfigDict(populate_by_name=True)

    username: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    gender: Optional[str] = None
    profile_image: Optional[str] = Field(default=None, alias="profileImage")
