"""
Server Configuration

Loads configuration from environment variables and provides defaults.
Supports loading from .env file using python-dotenv.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Single .env at project root for the API server and tooling
root_env = Path(__file__).resolve().parent.parent / ".env"
if root_env.exists():
    load_dotenv(root_env)

DATA_SOURCES = ("memory", "json", "firebase")
DEFAULT_SESSION_SECRET = "change-me-in-production"


def _bool_env(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None or not v.strip():
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    """Server configuration."""

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # Data source: "memory" | "json" | "firebase"
    data_source: str = "json"
    # When data_source=json: directory holding users.json, audios.json, comments.json
    data_dir: Path = Path(__file__).parent.parent / "data"
    # When data_source=firebase: path to service account JSON and optional project id
    firebase_credentials_path: Optional[Path] = None
    firebase_project_id: Optional[str] = None

    # Session cookie
    session_secret: str = DEFAULT_SESSION_SECRET
    session_cookie: str = "token"
    session_max_age: int = 7 * 24 * 60 * 60
    cookie_secure: bool = False

    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])

    # Listing pagination
    default_page_limit: int = 6
    max_page_limit: int = 50

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        base_dir = Path(__file__).parent.parent
        data_source = os.getenv("DATA_SOURCE", "").strip().lower() or "json"
        if data_source not in DATA_SOURCES:
            data_source = "json"

        def _path_env(key: str, default: Optional[Path] = None) -> Optional[Path]:
            v = os.getenv(key)
            if not v:
                return default
            p = Path(v)
            return p if p.is_absolute() else (base_dir / p).resolve()

        origins = os.getenv("CORS_ORIGINS", "http://localhost:5173")
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            data_source=data_source,
            data_dir=_path_env("DATA_DIR", base_dir / "data"),
            firebase_credentials_path=_path_env("FIREBASE_CREDENTIALS_PATH") or _path_env("GOOGLE_APPLICATION_CREDENTIALS"),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID") or None,
            session_secret=os.getenv("SESSION_SECRET", DEFAULT_SESSION_SECRET),
            session_max_age=int(os.getenv("SESSION_MAX_AGE", str(7 * 24 * 60 * 60))),
            cookie_secure=_bool_env("COOKIE_SECURE"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            default_page_limit=int(os.getenv("DEFAULT_PAGE_LIMIT", "6")),
            max_page_limit=int(os.getenv("MAX_PAGE_LIMIT", "50")),
        )

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate the configuration.

        Returns:
            (is_valid, list_of_errors)
        """
        errors = []

        if self.data_source not in DATA_SOURCES:
            errors.append(f"Unknown data source: {self.data_source}")

        if self.data_source == "firebase":
            cred = self.firebase_credentials_path
            if not cred:
                errors.append("DATA_SOURCE=firebase requires FIREBASE_CREDENTIALS_PATH")
            elif not Path(cred).is_file():
                errors.append(f"Firebase credentials file not found: {cred}")

        if self.default_page_limit < 1:
            errors.append("DEFAULT_PAGE_LIMIT must be positive")
        if self.max_page_limit < self.default_page_limit:
            errors.append("MAX_PAGE_LIMIT must be >= DEFAULT_PAGE_LIMIT")

        return len(errors) == 0, errors

    def ensure_directories(self):
        """Create required directories if they don't exist."""
        if self.data_source == "json":
            self.data_dir.mkdir(parents=True, exist_ok=True)


# Global config instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
        _config.ensure_directories()
    return _config


def reload_config() -> ServerConfig:
    """Reload configuration from environment."""
    global _config
    _config = None
    return get_config()
