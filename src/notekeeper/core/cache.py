"""Note cache: key scheme and invalidation rules on top of RedisClient.

Keys::

    note:{note_id}                 single note snapshot
    note:{note_id}:versions        version history, newest first
    user:{user_id}:notes           notes owned by the user
    user:{user_id}:shared          notes shared with the user
    user:{user_id}:search:{query}  search results for one query

Reads are read-through: a miss (or any Redis failure) falls back to the
database. Invalidation runs after commit and before the mutation returns;
a failed invalidation is logged and left to TTL expiry.
"""

import json
import logging
from typing import Any, Iterable, List, Optional
from uuid import UUID

from ..config import get_settings
from .redis_client import RedisClient, get_redis_client

logger = logging.getLogger(__name__)


def note_key(note_id: UUID) -> str:
    return f"note:{note_id}"


def versions_key(note_id: UUID) -> str:
    return f"note:{note_id}:versions"


def user_notes_key(user_id: UUID) -> str:
    return f"user:{user_id}:notes"


def user_shared_key(user_id: UUID) -> str:
    return f"user:{user_id}:shared"


def normalize_query(query: str) -> str:
    return " ".join(query.lower().split())


def search_key(user_id: UUID, query: str) -> str:
    return f"user:{user_id}:search:{normalize_query(query)}"


def search_pattern(user_id: UUID) -> str:
    return f"user:{user_id}:search:*"


class NoteCache:
    """Cache of JSON snapshots for notes, histories, collections and searches."""

    def __init__(
        self,
        client: RedisClient,
        default_ttl: Optional[int] = None,
        search_ttl: Optional[int] = None,
    ):
        settings = get_settings()
        self.client = client
        self.default_ttl = default_ttl or settings.cache_default_ttl
        self.search_ttl = search_ttl or settings.cache_search_ttl

    async def get_json(self, key: str) -> Optional[Any]:
        raw = await self.client.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Dropping undecodable cache entry", extra={"cache_key": key})
            await self.client.delete(key)
            return None

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cannot serialize cache value for {key}: {e}")
            return False
        return await self.client.set(key, payload, ttl or self.default_ttl)

    # read-through helpers

    async def get_note(self, note_id: UUID) -> Optional[dict]:
        return await self.get_json(note_key(note_id))

    async def set_note(self, note_id: UUID, snapshot: dict) -> bool:
        return await self.set_json(note_key(note_id), snapshot)

    async def get_versions(self, note_id: UUID) -> Optional[List[dict]]:
        return await self.get_json(versions_key(note_id))

    async def set_versions(self, note_id: UUID, versions: List[dict]) -> bool:
        return await self.set_json(versions_key(note_id), versions)

    async def get_user_notes(self, user_id: UUID) -> Optional[List[dict]]:
        return await self.get_json(user_notes_key(user_id))

    async def set_user_notes(self, user_id: UUID, notes: List[dict]) -> bool:
        return await self.set_json(user_notes_key(user_id), notes)

    async def get_shared_notes(self, user_id: UUID) -> Optional[List[dict]]:
        return await self.get_json(user_shared_key(user_id))

    async def set_shared_notes(self, user_id: UUID, notes: List[dict]) -> bool:
        return await self.set_json(user_shared_key(user_id), notes)

    async def get_search(self, user_id: UUID, query: str) -> Optional[List[dict]]:
        return await self.get_json(search_key(user_id, query))

    async def set_search(self, user_id: UUID, query: str, results: List[dict]) -> bool:
        return await self.set_json(search_key(user_id, query), results, self.search_ttl)

    # invalidation

    async def invalidate(self, *keys: str) -> bool:
        ok = await self.client.delete(*keys)
        if not ok:
            logger.warning("Cache invalidation failed", extra={"cache_keys": list(keys)})
        return ok

    async def invalidate_searches(self, user_id: UUID) -> bool:
        ok = await self.client.delete_pattern(search_pattern(user_id))
        if not ok:
            logger.warning("Search cache invalidation failed", extra={"user_id": str(user_id)})
        return ok

    async def invalidate_collection(self, user_id: UUID, include_search: bool = True) -> bool:
        """Drop a user's own note collection and, optionally, their searches."""
        ok = await self.invalidate(user_notes_key(user_id))
        if include_search:
            ok = await self.invalidate_searches(user_id) and ok
        return ok

    async def invalidate_shared(self, user_ids: Iterable[UUID]) -> bool:
        keys = [user_shared_key(uid) for uid in set(user_ids)]
        if not keys:
            return True
        return await self.invalidate(*keys)

    async def invalidate_note(
        self,
        note_id: UUID,
        owner_id: UUID,
        caller_id: Optional[UUID] = None,
        recipient_ids: Iterable[UUID] = (),
        include_search: bool = True,
    ) -> bool:
        """Invalidate everything a mutation of one note can make stale.

        Covers the note, its history, the owner's and caller's collections,
        the shared collections of everyone the note is shared with and,
        unless disabled, the owner's cached searches.
        """
        keys = [note_key(note_id), versions_key(note_id), user_notes_key(owner_id)]
        if caller_id is not None and caller_id != owner_id:
            keys.append(user_notes_key(caller_id))
        keys.extend(user_shared_key(uid) for uid in set(recipient_ids))

        ok = await self.invalidate(*keys)
        if include_search:
            ok = await self.invalidate_searches(owner_id) and ok
        return ok


def get_note_cache() -> NoteCache:
    """FastAPI dependency returning a cache bound to the shared Redis client."""
    return NoteCache(get_redis_client())
