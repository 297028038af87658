"""Audio catalog and engagement endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth import require_user_id
from ..models import CommentRequest, UploadAudioRequest
from ..state import get_state

router = APIRouter()


@router.get("")
def list_audios(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    author: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="'popularity' for most viewed first; newest first otherwise"),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    first_query_time: Optional[str] = Query(None, alias="firstQueryTime"),
):
    """
    Paginated catalog. The first call returns a firstQueryTime; pass it back
    with later pages so uploads made in between do not shift the pages.
    """
    result = get_state().listing.list_audios(
        search=search,
        category=category,
        author=author,
        sort=sort,
        page=page,
        limit=limit,
        first_query_time=first_query_time,
    )
    return {
        "success": True,
        "message": "Audios fetched successfully",
        "firstQueryTime": result.first_query_time,
        "page": result.page,
        "limit": result.limit,
        "totalPages": result.total_pages,
        "totalAudios": result.total_audios,
        "audios": result.audios,
    }


@router.post("", status_code=201)
def upload_audio(request: UploadAudioRequest, user_id: str = Depends(require_user_id)):
    audio = get_state().uploads.upload_audio(
        user_id,
        title=request.title,
        description=request.description,
        category=request.category,
        thumbnail_url=request.thumbnail_url,
        audio_url=request.audio_url,
        tags=request.tags,
        duration=request.duration,
    )
    return {"success": True, "message": "Audio uploaded successfully", "audio": audio}


@router.get("/{audio_id}")
def get_audio(audio_id: str):
    audio = get_state().listing.get_audio(audio_id)
    return {"success": True, "message": "Audio successfully fetched", "audio": audio}


@router.put("/{audio_id}/like")
def toggle_like(audio_id: str, user_id: str = Depends(require_user_id)):
    result = get_state().engagement.toggle_like(audio_id, user_id)
    return {
        "success": True,
        "message": "Audio successfully liked." if result.liked else "Like removed from this audio.",
        "liked": result.liked,
        "audioId": result.audio_id,
        "userId": result.user_id,
        "totalLikes": result.total_likes,
        "user": result.user,
    }


@router.put("/{audio_id}/bookmark")
def toggle_bookmark(audio_id: str, user_id: str = Depends(require_user_id)):
    result = get_state().engagement.toggle_bookmark(audio_id, user_id)
    return {
        "success": True,
        "message": "Audio added to your saved list." if result.bookmarked else "Audio removed from your saved list.",
        "bookmarked": result.bookmarked,
        "user": result.user,
        "audioId": result.audio_id,
    }


@router.put("/{audio_id}/viewed")
def mark_viewed(audio_id: str, user_id: str = Depends(require_user_id)):
    result = get_state().engagement.record_view(audio_id, user_id)
    if not result.recorded:
        return {"success": True, "message": "already viewed"}
    return {"success": True, "message": "Audio updated as viewed", "audio": result.audio}


@router.post("/{audio_id}/comment", status_code=201)
def add_comment(audio_id: str, request: CommentRequest, user_id: str = Depends(require_user_id)):
    comment = get_state().engagement.add_comment(audio_id, user_id, request.content)
    return {"success": True, "message": "Comment added successfully", "comment": comment}
