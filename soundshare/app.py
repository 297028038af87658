"""
Soundshare API: FastAPI app factory.

Use: uvicorn soundshare.app:app
Or:  python -m soundshare
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .config import DEFAULT_SESSION_SECRET, ServerConfig, get_config
from .errors import SoundshareError
from .routes import register_routes
from .state import AppState, get_state, set_state

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _error_body(message: str) -> dict:
    return {"success": False, "message": message}


async def _soundshare_error(request: Request, exc: SoundshareError):
    if exc.status_code >= 500:
        logger.error("[api] %s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))


async def _validation_error(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content=_error_body("; ".join(parts) or "Invalid request"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    state = get_state()
    config = state.config
    ok, errors = config.validate()
    for err in errors:
        logger.warning("[startup] config: %s", err)
    if config.session_secret == DEFAULT_SESSION_SECRET:
        logger.warning("[startup] SESSION_SECRET is the default value; set it in .env outside development")
    logger.info("[startup] Soundshare API ready (data_source=%s)", config.data_source)
    yield
    logger.info("Shutting down Soundshare API")


def create_app(state: Optional[AppState] = None) -> FastAPI:
    """Build FastAPI app with CORS, sessions, error handlers and routes."""
    if state is not None:
        set_state(state)
    config: ServerConfig = state.config if state is not None else get_config()
    configure_logging(config.log_level)

    app = FastAPI(
        title="Soundshare API",
        description="Audio sharing: catalog listing, likes, bookmarks, views and comments",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session_secret,
        session_cookie=config.session_cookie,
        max_age=config.session_max_age,
        same_site="strict",
        https_only=config.cookie_secure,
    )
    app.add_exception_handler(SoundshareError, _soundshare_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    register_routes(app)
    return app


app = create_app()
