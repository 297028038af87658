"""
Soundshare API Server

Usage: uvicorn soundshare.app:app --reload --port 8000
"""

from .config import ServerConfig, get_config, reload_config
from .errors import (
    Forbidden,
    NotFound,
    SoundshareError,
    StoreFailure,
    Unauthorized,
    ValidationError,
)

__version__ = "1.0.0"

__all__ = [
    "ServerConfig",
    "get_config",
    "reload_config",
    "SoundshareError",
    "ValidationError",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "StoreFailure",
]
