"""Account endpoints: signup, login/logout, current user, profile update and deletion."""

from fastapi import APIRouter, Depends, Request

from ..auth import end_session, require_user_id, start_session
from ..models import LoginRequest, SignupRequest, UpdateUserRequest
from ..state import get_state

router = APIRouter()


@router.post("/signup", status_code=201)
def signup(body: SignupRequest, request: Request):
    """Create an account and log it in (session cookie)."""
    user = get_state().accounts.signup(
        username=body.username,
        name=body.name,
        email=body.email,
        password=body.password,
        gender=body.gender,
        profile_image=body.profile_image or "",
    )
    start_session(request, user["id"])
    return {"success": True, "message": "Account created successfully", "user": user}


@router.post("/login")
def login(body: LoginRequest, request: Request):
    user = get_state().accounts.login(body.email, body.password)
    start_session(request, user["id"])
    return {"success": True, "message": "Logged in successfully", "user": user}


@router.post("/logout")
def logout(request: Request, user_id: str = Depends(require_user_id)):
    end_session(request)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/authenticate")
def authenticate(user_id: str = Depends(require_user_id)):
    """Current user with saved and liked audios populated."""
    return {"success": True, "user": get_state().accounts.get_account(user_id)}


# Must be after literal paths like /authenticate so {target_id} does not match them.
@router.put("/{target_id}")
def update_user(target_id: str, body: UpdateUserRequest, user_id: str = Depends(require_user_id)):
    user = get_state().accounts.update_account(user_id, target_id, body.model_dump(exclude_none=True))
    return {"success": True, "message": "User updated successfully", "user": user}


@router.delete("/{target_id}")
def delete_user(target_id: str, request: Request, user_id: str = Depends(require_user_id)):
    get_state().accounts.delete_account(user_id, target_id)
    end_session(request)
    return {"success": True, "message": "User account and associated data deleted successfully."}
