"""Catalog-wide search (no pagination or query horizon)."""

from typing import Optional

from fastapi import APIRouter, Query

from ..state import get_state

router = APIRouter()


@router.get("/search")
def search_all_content(q: Optional[str] = Query(None, description="Search keyword")):
    """Audios matching q in title, description, category or tags; most viewed first."""
    results = get_state().listing.search_catalog(q)
    return {"success": True, "message": "Audio content retrieved successfully", "data": results}
