"""
Tests for NoteService: permissions and read-through caching.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notekeeper.core.cache import note_key, user_notes_key, user_shared_key, versions_key
from notekeeper.core.exceptions import ForbiddenError, NotFoundError, StorageFailureError, UpdateConflictError
from notekeeper.core.models.note import Note
from notekeeper.core.models.share import Share
from notekeeper.core.schemas.notes import NoteCreate, NoteUpdate, ResolveConflictRequest
from notekeeper.core.services.note_service import NoteService
from notekeeper.core.services.unit_of_work import atomic_write
from notekeeper.database import build_engine


@pytest.fixture
def service(session, cache):
    return NoteService(session, cache)


@pytest.fixture
async def note(service, alice):
    return await service.create_note(alice.id, NoteCreate(title="Groceries", content="milk"))


async def share_with(session, note, owner, user, permission="read"):
    session.add(
        Share(note_id=note.id, shared_by_user_id=owner.id, shared_with_user_id=user.id, permission=permission)
    )
    await session.commit()


class TestCreateAndGet:
    async def test_create_returns_owner_view(self, note, alice):
        assert note.version == 1
        assert note.owner_id == alice.id
        assert note.is_owned is True
        assert note.can_edit is True

    async def test_get_populates_cache(self, service, note, alice, fake_redis):
        fetched = await service.get_note(note.id, alice.id)

        assert fetched.title == "Groceries"
        assert note_key(note.id) in fake_redis.store

    async def test_get_is_served_from_cache(self, service, cache, note, alice):
        await service.get_note(note.id, alice.id)
        snapshot = await cache.get_note(note.id)
        await cache.set_note(note.id, {**snapshot, "title": "From cache"})

        assert (await service.get_note(note.id, alice.id)).title == "From cache"

    async def test_stranger_gets_not_found(self, service, note, bob):
        with pytest.raises(NotFoundError):
            await service.get_note(note.id, bob.id)

    async def test_read_share_view(self, service, session, note, alice, bob):
        await share_with(session, note, alice, bob, "read")

        fetched = await service.get_note(note.id, bob.id)

        assert fetched.is_owned is False
        assert fetched.can_edit is False

    async def test_soft_deleted_note_is_hidden(self, service, note, alice):
        await service.delete_note(note.id, alice.id, 1)

        with pytest.raises(NotFoundError):
            await service.get_note(note.id, alice.id)


class TestWritePermissions:
    async def test_read_only_user_cannot_update(self, service, session, note, alice, bob):
        await share_with(session, note, alice, bob, "read")

        with pytest.raises(ForbiddenError, match="read access"):
            await service.update_note(note.id, bob.id, NoteUpdate(content="x", version=1))

    async def test_write_share_can_update_revert_and_resolve(self, service, session, note, alice, bob):
        await share_with(session, note, alice, bob, "write")

        updated = await service.update_note(note.id, bob.id, NoteUpdate(content="eggs", version=1))
        reverted = await service.revert_note(note.id, bob.id, 1)
        resolved = await service.resolve_conflict(
            note.id, bob.id, ResolveConflictRequest(
                title="Groceries", content="both", server_version=3, resolution_strategy="merge"
            )
        )

        assert updated.version == 2
        assert updated.is_owned is False
        assert reverted.message == "Successfully reverted to version 1"
        assert reverted.note.content == "milk"
        assert resolved.message == "Conflict successfully resolved"
        assert resolved.note.version == 4

    async def test_only_owner_deletes(self, service, session, note, alice, bob):
        await share_with(session, note, alice, bob, "write")

        with pytest.raises(ForbiddenError, match="Only the owner"):
            await service.delete_note(note.id, bob.id, 1)
        with pytest.raises(ForbiddenError):
            await service.permanently_delete_note(note.id, bob.id)

    async def test_stranger_writes_get_not_found(self, service, note, bob):
        with pytest.raises(NotFoundError):
            await service.update_note(note.id, bob.id, NoteUpdate(content="x", version=1))
        with pytest.raises(NotFoundError):
            await service.revert_note(note.id, bob.id, 1)

    async def test_stale_update_propagates_conflict(self, service, note, alice):
        await service.update_note(note.id, alice.id, NoteUpdate(content="v2", version=1))

        with pytest.raises(UpdateConflictError):
            await service.update_note(note.id, alice.id, NoteUpdate(content="v2 again", version=1))


class TestDeletes:
    async def test_soft_delete_response(self, service, note, alice):
        response = await service.delete_note(note.id, alice.id, 1)

        assert response.note_id == note.id
        assert response.version == 2

    async def test_history_readable_after_soft_delete(self, service, note, alice):
        await service.delete_note(note.id, alice.id, 1)

        versions = await service.list_versions(note.id, alice.id)

        assert [v.version for v in versions] == [2, 1]
        assert versions[0].change_type == "soft_delete"

    async def test_permanent_delete(self, service, note, alice):
        await service.update_note(note.id, alice.id, NoteUpdate(content="v2", version=1))

        response = await service.permanently_delete_note(note.id, alice.id)

        assert response.versions_removed == 2
        with pytest.raises(NotFoundError):
            await service.list_versions(note.id, alice.id)


class TestListings:
    async def test_list_user_notes_paginates(self, service, alice):
        for i in range(3):
            await service.create_note(alice.id, NoteCreate(title=f"Note {i}"))

        first = await service.list_user_notes(alice.id, page=1, per_page=2)
        second = await service.list_user_notes(alice.id, page=2, per_page=2)

        assert first.total == 3
        assert first.pages == 2
        assert first.has_next is True
        assert len(first.items) == 2
        assert len(second.items) == 1
        assert second.has_prev is True

    async def test_per_page_is_capped(self, service, alice):
        await service.create_note(alice.id, NoteCreate(title="Only"))

        page = await service.list_user_notes(alice.id, per_page=10_000)

        assert page.per_page == 100

    async def test_list_shared_notes(self, service, session, note, alice, bob):
        await share_with(session, note, alice, bob, "write")

        shared = await service.list_shared_notes(bob.id)

        assert len(shared) == 1
        assert shared[0].owner_username == "alice"
        assert shared[0].permission == "write"
        assert shared[0].can_edit is True


class TestCacheCoherence:
    """After any mutation returns, no cached read may show the previous state."""

    async def warm(self, service, note_id, owner_id, reader_id=None):
        await service.get_note(note_id, owner_id)
        await service.list_versions(note_id, owner_id)
        await service.list_user_notes(owner_id)
        if reader_id:
            await service.list_shared_notes(reader_id)

    async def test_update_invalidates_all_views(self, service, session, note, alice, bob, fake_redis):
        await share_with(session, note, alice, bob, "read")
        await self.warm(service, note.id, alice.id, bob.id)
        assert {note_key(note.id), versions_key(note.id), user_notes_key(alice.id), user_shared_key(bob.id)} <= set(
            fake_redis.store
        )

        await service.update_note(note.id, alice.id, NoteUpdate(title="Shopping", version=1))

        assert (await service.get_note(note.id, alice.id)).title == "Shopping"
        assert (await service.list_versions(note.id, alice.id))[0].version == 2
        assert (await service.list_user_notes(alice.id)).items[0].title == "Shopping"
        assert (await service.list_shared_notes(bob.id))[0].title == "Shopping"

    async def test_soft_delete_invalidates_listings(self, service, session, note, alice, bob):
        await share_with(session, note, alice, bob, "read")
        await self.warm(service, note.id, alice.id, bob.id)

        await service.delete_note(note.id, alice.id, 1)

        assert (await service.list_user_notes(alice.id)).total == 0
        assert await service.list_shared_notes(bob.id) == []
        assert [v.version for v in await service.list_versions(note.id, alice.id)] == [2, 1]

    async def test_revert_invalidates_note(self, service, note, alice):
        await service.update_note(note.id, alice.id, NoteUpdate(content="changed", version=1))
        await self.warm(service, note.id, alice.id)

        await service.revert_note(note.id, alice.id, 1)

        fetched = await service.get_note(note.id, alice.id)
        assert (fetched.version, fetched.content) == (3, "milk")

    async def test_works_without_cache(self, session, alice):
        service = NoteService(session, cache=None)
        created = await service.create_note(alice.id, NoteCreate(title="No cache"))

        await service.update_note(created.id, alice.id, NoteUpdate(content="x", version=1))

        assert (await service.get_note(created.id, alice.id)).version == 2


class TestStorageFailures:
    """A writer that cannot get the database lock gives up with a retryable error."""

    @pytest.fixture
    async def impatient(self, tmp_path):
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'notekeeper.db'}", lock_timeout_ms=100)
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        await engine.dispose()

    async def test_contended_update_is_a_storage_failure(self, note, alice, session_factory, impatient):
        async with session_factory() as holder:
            async with atomic_write(holder):
                holder.add(Note(owner_id=alice.id, title="Holding the lock", content=""))
                await holder.flush()

                async with impatient() as waiter:
                    with pytest.raises(StorageFailureError) as exc_info:
                        await NoteService(waiter).update_note(
                            note.id, alice.id, NoteUpdate(content="too late", version=1)
                        )

        assert exc_info.value.retryable is True
        async with session_factory() as s:
            fetched = await NoteService(s).get_note(note.id, alice.id)
        assert fetched.version == 1
        assert fetched.content == "milk"

    async def test_contended_delete_is_a_storage_failure(self, note, alice, session_factory, impatient):
        async with session_factory() as holder:
            async with atomic_write(holder):
                holder.add(Note(owner_id=alice.id, title="Holding the lock", content=""))
                await holder.flush()

                async with impatient() as waiter:
                    with pytest.raises(StorageFailureError):
                        await NoteService(waiter).delete_note(note.id, alice.id, 1)
