"""Python client for the Soundshare API and the per-session state cache built on it."""

from .api import ApiError, SoundshareClient
from .cache import ActionState, ClientStateCache, ListingQuery, OptimisticAction, ResourceState

__all__ = [
    "ApiError",
    "SoundshareClient",
    "ActionState",
    "ClientStateCache",
    "ListingQuery",
    "OptimisticAction",
    "ResourceState",
]
