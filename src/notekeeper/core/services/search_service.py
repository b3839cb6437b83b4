"""Search service implementation."""

import logging
import time
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import NoteCache, normalize_query
from ..exceptions import ValidationError
from ..repositories.note_repository import NoteRepository
from ..schemas.notes import NoteListItem, NoteSearchResponse
from .interfaces import ISearchService
from .note_service import list_item

logger = logging.getLogger(__name__)


class SearchService(ISearchService):
    """Substring search over the caller's own live notes, cached per query."""

    def __init__(self, session: AsyncSession, cache: NoteCache = None):
        self.session = session
        self.cache = cache
        self.note_repo = NoteRepository(session)

    async def search_notes(self, user_id: UUID, query: str) -> NoteSearchResponse:
        query = normalize_query(query)
        if not query:
            raise ValidationError("Search query cannot be empty", field="q")

        start = time.perf_counter()
        items = await self.cache.get_search(user_id, query) if self.cache else None
        cached = items is not None
        if items is None:
            notes = await self.note_repo.search_notes(user_id, query)
            items = [list_item(note) for note in notes]
            if self.cache:
                await self.cache.set_search(user_id, query, items)

        logger.debug(
            "Search finished",
            extra={
                "user_id": str(user_id),
                "results": len(items),
                "cached": cached,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return NoteSearchResponse(
            query=query,
            total=len(items),
            results=[NoteListItem.model_validate(item) for item in items],
        )
