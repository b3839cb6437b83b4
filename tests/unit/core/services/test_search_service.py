"""Tests for SearchService and the freshness of cached search results."""

import pytest

from notekeeper.core.cache import search_key
from notekeeper.core.exceptions import ValidationError
from notekeeper.core.schemas.notes import NoteCreate, NoteUpdate
from notekeeper.core.services.note_service import NoteService
from notekeeper.core.services.search_service import SearchService


@pytest.fixture
def notes(session, cache):
    return NoteService(session, cache)


@pytest.fixture
def search(session, cache):
    return SearchService(session, cache)


class TestSearchService:
    async def test_finds_title_and_content_matches(self, notes, search, alice):
        await notes.create_note(alice.id, NoteCreate(title="Groceries", content="Milk"))
        await notes.create_note(alice.id, NoteCreate(title="Recipes", content="pancakes need milk"))
        await notes.create_note(alice.id, NoteCreate(title="Work", content="quarterly report"))

        response = await search.search_notes(alice.id, "MILK")

        assert response.query == "milk"
        assert response.total == 2
        assert {r.title for r in response.results} == {"Groceries", "Recipes"}

    async def test_only_own_notes(self, notes, search, alice, bob):
        await notes.create_note(bob.id, NoteCreate(title="Milk run"))

        assert (await search.search_notes(alice.id, "milk")).total == 0

    async def test_blank_query_rejected(self, search, alice):
        with pytest.raises(ValidationError):
            await search.search_notes(alice.id, "   ")

    async def test_results_are_cached_under_normalized_query(self, notes, search, alice, fake_redis):
        await notes.create_note(alice.id, NoteCreate(title="Groceries"))

        await search.search_notes(alice.id, "  Groceries ")

        assert search_key(alice.id, "groceries") in fake_redis.store
        assert fake_redis.ttls[search_key(alice.id, "groceries")] == 120

    async def test_update_invalidates_cached_search(self, notes, search, alice):
        created = await notes.create_note(alice.id, NoteCreate(title="Groceries", content="milk"))
        assert (await search.search_notes(alice.id, "bread")).total == 0

        await notes.update_note(created.id, alice.id, NoteUpdate(content="bread", version=1))

        assert (await search.search_notes(alice.id, "bread")).total == 1

    async def test_delete_invalidates_cached_search(self, notes, search, alice):
        created = await notes.create_note(alice.id, NoteCreate(title="Groceries"))
        assert (await search.search_notes(alice.id, "groceries")).total == 1

        await notes.delete_note(created.id, alice.id, 1)

        assert (await search.search_notes(alice.id, "groceries")).total == 0

    async def test_create_invalidates_cached_search(self, notes, search, alice):
        assert (await search.search_notes(alice.id, "groceries")).total == 0

        await notes.create_note(alice.id, NoteCreate(title="Groceries"))

        assert (await search.search_notes(alice.id, "groceries")).total == 1
