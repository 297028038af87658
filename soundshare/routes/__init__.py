"""Register all route modules on the FastAPI app."""

from fastapi import FastAPI

from .root import router as root_router
from .audios import router as audios_router
from .users import router as users_router
from .search import router as search_router


def register_routes(app: FastAPI) -> None:
    """Attach all API routers to the app."""
    app.include_router(root_router)
    app.include_router(audios_router, prefix="/api/audios", tags=["audios"])
    app.include_router(users_router, prefix="/api/users", tags=["users"])
    app.include_router(search_router, prefix="/api/searches", tags=["search"])
