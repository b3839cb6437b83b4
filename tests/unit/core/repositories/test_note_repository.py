"""
Tests for NoteRepository against a real SQLite database.
"""

import pytest

from notekeeper.core.models.note import Note
from notekeeper.core.models.share import Share
from notekeeper.core.repositories.note_repository import NoteRepository


@pytest.fixture
def repo(session):
    return NoteRepository(session)


async def add_note(session, owner, title="Title", content="Body", **kwargs):
    note = Note(owner_id=owner.id, title=title, content=content, **kwargs)
    session.add(note)
    await session.commit()
    return note


class TestNoteRepository:
    async def test_get_by_id_hides_soft_deleted(self, repo, session, alice):
        note = await add_note(session, alice, is_deleted=True)

        assert await repo.get_by_id(note.id) is None
        found = await repo.get_by_id(note.id, include_deleted=True)
        assert found.id == note.id

    async def test_compare_and_set_success(self, repo, session, alice):
        note = await add_note(session, alice)

        assert await repo.compare_and_set(note.id, 1, title="New", content="Text") is True
        await session.commit()

        await session.refresh(note)
        assert (note.version, note.title, note.content) == (2, "New", "Text")

    async def test_compare_and_set_stale_version(self, repo, session, alice):
        note = await add_note(session, alice, version=3)

        assert await repo.compare_and_set(note.id, 2, title="New", content="Text") is False
        await session.commit()

        await session.refresh(note)
        assert (note.version, note.title) == (3, "Title")

    async def test_compare_and_set_marks_deleted(self, repo, session, alice):
        note = await add_note(session, alice)

        await repo.compare_and_set(note.id, 1, title=note.title, content=note.content, is_deleted=True)
        await session.commit()

        assert await repo.get_by_id(note.id) is None

    async def test_get_for_update_sees_fresh_state(self, repo, session, session_factory, alice):
        note = await add_note(session, alice)
        await session.commit()

        async with session_factory() as other:
            await NoteRepository(other).compare_and_set(note.id, 1, title="Elsewhere", content="")
            await other.commit()

        locked = await repo.get_for_update(note.id)
        assert locked.version == 2
        assert locked.title == "Elsewhere"
        await session.rollback()

    async def test_list_user_notes_pagination(self, repo, session, alice, bob):
        for i in range(5):
            await add_note(session, alice, title=f"Note {i}")
        await add_note(session, alice, title="Gone", is_deleted=True)
        await add_note(session, bob, title="Not mine")

        page, total = await repo.list_user_notes(alice.id, page=2, per_page=2)
        everything, _ = await repo.list_user_notes(alice.id, per_page=0)

        assert total == 5
        assert len(page) == 2
        assert len(everything) == 5
        assert "Gone" not in {n.title for n in everything}

    async def test_list_shared_with(self, repo, session, alice, bob):
        note = await add_note(session, alice, title="Shared")
        hidden = await add_note(session, alice, title="Deleted share", is_deleted=True)
        session.add_all(
            [
                Share(note_id=note.id, shared_by_user_id=alice.id, shared_with_user_id=bob.id, permission="write"),
                Share(note_id=hidden.id, shared_by_user_id=alice.id, shared_with_user_id=bob.id),
            ]
        )
        await session.commit()

        rows = await repo.list_shared_with(bob.id)

        assert len(rows) == 1
        shared_note, permission, owner_username = rows[0]
        assert shared_note.id == note.id
        assert permission == "write"
        assert owner_username == "alice"

    async def test_search_is_case_insensitive_and_owner_scoped(self, repo, session, alice, bob):
        await add_note(session, alice, title="Groceries", content="Milk and eggs")
        await add_note(session, alice, title="Work", content="Buy MILK for the office")
        await add_note(session, alice, title="Old", content="milk", is_deleted=True)
        await add_note(session, bob, title="Milk", content="")

        results = await repo.search_notes(alice.id, "milk")

        assert {n.title for n in results} == {"Groceries", "Work"}

    async def test_delete(self, repo, session, alice):
        note = await add_note(session, alice)

        assert await repo.delete(note.id) == 1
        await session.commit()
        assert await repo.get_by_id(note.id, include_deleted=True) is None
