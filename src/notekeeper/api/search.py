"""Search API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.cache import NoteCache, get_note_cache
from ..core.schemas.notes import NoteSearchResponse
from ..core.services import SearchService
from ..database import get_db_session
from ..middleware.auth import get_current_user_id

router = APIRouter(prefix="/search", tags=["search"])


@router.get("/notes", response_model=NoteSearchResponse)
async def search_notes(
    q: str = Query(..., min_length=1, max_length=200, description="Text to look for in title or content"),
    current_user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    cache: NoteCache = Depends(get_note_cache),
):
    """Search the caller's notes."""
    search_service = SearchService(session, cache)
    return await search_service.search_notes(current_user_id, q)
