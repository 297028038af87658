"""
Session helpers over Starlette's signed-cookie SessionMiddleware.

Routes resolve the caller's user id here and hand it to services explicitly;
services never look at the request or the session.
"""

from typing import Optional

from fastapi import Request

from .errors import Unauthorized

SESSION_USER_KEY = "user_id"


def current_user_id(request: Request) -> Optional[str]:
    """User id stored in the session cookie, or None when not logged in."""
    user_id = request.session.get(SESSION_USER_KEY)
    return user_id if isinstance(user_id, str) and user_id else None


def require_user_id(request: Request) -> str:
    """FastAPI dependency: the logged-in user's id, or 401."""
    user_id = current_user_id(request)
    if not user_id:
        raise Unauthorized("Unauthorized. Please log in.")
    return user_id


def start_session(request: Request, user_id: str) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user_id


def end_session(request: Request) -> None:
    request.session.clear()
