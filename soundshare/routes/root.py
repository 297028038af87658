"""Root and health endpoints."""

from fastapi import APIRouter

from ..state import get_state

router = APIRouter()


@router.get("/")
def root():
    state = get_state()
    return {
        "name": "Soundshare API",
        "version": "1.0.0",
        "data_source": state.config.data_source,
        "endpoints": {
            "audios": ["/api/audios", "/api/audios/{id}", "/api/audios/{id}/like", "/api/audios/{id}/bookmark",
                       "/api/audios/{id}/viewed", "/api/audios/{id}/comment"],
            "users": ["/api/users/signup", "/api/users/login", "/api/users/logout", "/api/users/authenticate",
                      "/api/users/{id}"],
            "search": ["/api/searches/search"],
        },
    }


@router.get("/api/health")
def health():
    state = get_state()
    return {
        "status": "healthy",
        "stores": {
            "audios": type(state.audio_store).__name__,
            "users": type(state.user_store).__name__,
            "comments": type(state.comment_store).__name__,
        },
    }
