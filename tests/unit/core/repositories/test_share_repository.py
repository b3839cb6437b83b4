"""
Tests for ShareRepository and the access check it provides.
"""

import uuid

import pytest

from notekeeper.core.models.note import Note
from notekeeper.core.models.share import Share
from notekeeper.core.repositories.share_repository import ShareRepository


@pytest.fixture
def repo(session):
    return ShareRepository(session)


@pytest.fixture
async def note(session, alice):
    note = Note(owner_id=alice.id, title="Plan", content="")
    session.add(note)
    await session.commit()
    return note


async def share(repo, session, note, by, to, permission="read"):
    created = await repo.add(
        Share(note_id=note.id, shared_by_user_id=by.id, shared_with_user_id=to.id, permission=permission)
    )
    await session.commit()
    return created


class TestShareRepository:
    async def test_add_loads_relationships(self, repo, session, note, alice, bob):
        created = await share(repo, session, note, alice, bob, "write")

        assert created.note.title == "Plan"
        assert created.shared_with_user.username == "bob"
        assert created.can_write is True

    async def test_recipient_ids(self, repo, session, note, alice, bob, carol):
        await share(repo, session, note, alice, bob)
        await share(repo, session, note, alice, carol)

        assert set(await repo.recipient_ids(note.id)) == {bob.id, carol.id}

    async def test_delete_for_note(self, repo, session, note, alice, bob):
        await share(repo, session, note, alice, bob)

        assert await repo.delete_for_note(note.id) == 1
        await session.commit()
        assert await repo.list_note_shares(note.id) == []


class TestCheckNoteAccess:
    async def test_owner(self, repo, note, alice):
        access = await repo.check_note_access(note.id, alice.id)
        assert access == {
            "exists": True,
            "is_owner": True,
            "permission": "owner",
            "can_read": True,
            "can_write": True,
        }

    async def test_read_share(self, repo, session, note, alice, bob):
        await share(repo, session, note, alice, bob, "read")

        access = await repo.check_note_access(note.id, bob.id)
        assert access["permission"] == "read"
        assert access["can_read"] is True
        assert access["can_write"] is False

    async def test_write_share(self, repo, session, note, alice, bob):
        await share(repo, session, note, alice, bob, "write")

        access = await repo.check_note_access(note.id, bob.id)
        assert access["can_write"] is True
        assert access["is_owner"] is False

    async def test_stranger(self, repo, note, carol):
        access = await repo.check_note_access(note.id, carol.id)
        assert access["exists"] is True
        assert access["can_read"] is False

    async def test_missing_note(self, repo, alice):
        access = await repo.check_note_access(uuid.uuid4(), alice.id)
        assert access["exists"] is False
        assert access["can_read"] is False
