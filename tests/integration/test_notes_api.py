"""
End-to-end note lifecycle through the HTTP API.
"""

import asyncio
import uuid

import pytest
from helpers import auth_headers

pytestmark = pytest.mark.integration


async def create_note(client, user, title="Groceries", content="milk"):
    response = await client.post("/api/notes/", json={"title": title, "content": content}, headers=auth_headers(user))
    assert response.status_code == 201
    return response.json()


class TestNoteLifecycle:
    async def test_conflict_and_resolution_flow(self, client, alice):
        headers = auth_headers(alice)

        # create
        note = await create_note(client, alice)
        note_id = note["id"]
        assert note["version"] == 1

        # first edit succeeds
        response = await client.put(
            f"/api/notes/{note_id}", json={"content": "milk, eggs", "version": 1}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["version"] == 2

        # second client still holds version 1
        response = await client.put(
            f"/api/notes/{note_id}", json={"content": "milk, bread", "version": 1}, headers=headers
        )
        assert response.status_code == 409
        conflict = response.json()
        assert conflict["code"] == "version_conflict"
        assert conflict["client_version"] == 1
        assert conflict["server_version"] == 2
        assert conflict["server_data"]["content"] == "milk, eggs"
        assert conflict["last_modified_by"] == str(alice.id)
        assert conflict["resolution_endpoint"] == f"/api/notes/{note_id}/resolve-conflict"

        # resolve against the reported server version
        response = await client.post(
            conflict["resolution_endpoint"],
            json={
                "title": "Groceries",
                "content": "milk, eggs, bread",
                "server_version": conflict["server_version"],
                "resolution_strategy": "merge",
            },
            headers=headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Conflict successfully resolved"
        assert body["resolution_strategy"] == "merge"
        assert body["note"]["version"] == 3

        # history has every step, newest first
        response = await client.get(f"/api/notes/{note_id}/versions", headers=headers)
        history = response.json()
        assert [v["version"] for v in history] == [3, 2, 1]
        assert [v["change_type"] for v in history] == ["resolve", "update", "create"]
        assert history[0]["resolved_from_version"] == 2

        # reading reflects the resolution even though the note was cached earlier
        response = await client.get(f"/api/notes/{note_id}", headers=headers)
        assert response.json()["content"] == "milk, eggs, bread"

    async def test_stale_resolution(self, client, alice):
        headers = auth_headers(alice)
        note = await create_note(client, alice)
        await client.put(f"/api/notes/{note['id']}", json={"content": "v2", "version": 1}, headers=headers)
        await client.put(f"/api/notes/{note['id']}", json={"content": "v3", "version": 2}, headers=headers)

        response = await client.post(
            f"/api/notes/{note['id']}/resolve-conflict",
            json={
                "title": "Groceries",
                "content": "merged",
                "server_version": 2,
                "resolution_strategy": "client-wins",
            },
            headers=headers,
        )

        assert response.status_code == 409
        assert response.json()["current_version"] == 3
        assert response.json()["attempted_resolution_version"] == 2

    async def test_revert(self, client, alice):
        headers = auth_headers(alice)
        note = await create_note(client, alice, content="original")
        await client.put(f"/api/notes/{note['id']}", json={"content": "changed", "version": 1}, headers=headers)

        response = await client.post(f"/api/notes/{note['id']}/revert/1", headers=headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Successfully reverted to version 1"
        assert response.json()["note"]["content"] == "original"
        assert response.json()["note"]["version"] == 3

        missing = await client.post(f"/api/notes/{note['id']}/revert/42", headers=headers)
        assert missing.status_code == 404

    async def test_soft_delete_then_permanent_delete(self, client, alice):
        headers = auth_headers(alice)
        note = await create_note(client, alice)

        stale = await client.delete(f"/api/notes/{note['id']}", params={"version": 5}, headers=headers)
        assert stale.status_code == 409
        assert stale.json()["server_version"] == 1

        deleted = await client.delete(f"/api/notes/{note['id']}", params={"version": 1}, headers=headers)
        assert deleted.status_code == 200
        assert deleted.json()["version"] == 2

        assert (await client.get(f"/api/notes/{note['id']}", headers=headers)).status_code == 404
        history = await client.get(f"/api/notes/{note['id']}/versions", headers=headers)
        assert history.status_code == 200
        assert len(history.json()) == 2

        purged = await client.delete(f"/api/notes/{note['id']}/permanent", headers=headers)
        assert purged.status_code == 200
        assert purged.json()["versions_removed"] == 2
        assert (await client.get(f"/api/notes/{note['id']}/versions", headers=headers)).status_code == 404

    async def test_list_notes(self, client, alice):
        for i in range(3):
            await create_note(client, alice, title=f"Note {i}")

        response = await client.get("/api/notes/", params={"per_page": 2}, headers=auth_headers(alice))

        body = response.json()
        assert body["total"] == 3
        assert len(body["items"]) == 2
        assert body["has_next"] is True

    async def test_racing_updates_over_http(self, client, alice, bob):
        # Given
        note = await create_note(client, alice)
        share = await client.post(
            "/api/sharing/",
            json={"note_id": note["id"], "username": "bob", "permission": "write"},
            headers=auth_headers(alice),
        )
        assert share.status_code == 201

        # When
        responses = await asyncio.gather(
            client.put(f"/api/notes/{note['id']}", json={"content": "alice", "version": 1}, headers=auth_headers(alice)),
            client.put(f"/api/notes/{note['id']}", json={"content": "bob", "version": 1}, headers=auth_headers(bob)),
        )

        # Then
        assert sorted(r.status_code for r in responses) == [200, 409]
        history = await client.get(f"/api/notes/{note['id']}/versions", headers=auth_headers(alice))
        assert [v["version"] for v in history.json()] == [2, 1]


class TestValidationAndAuth:
    async def test_requires_authentication(self, client):
        response = await client.get("/api/notes/")
        assert response.status_code in (401, 403)

    async def test_blank_title_rejected(self, client, alice):
        response = await client.post("/api/notes/", json={"title": "   "}, headers=auth_headers(alice))
        assert response.status_code == 422

    async def test_update_requires_version(self, client, alice):
        note = await create_note(client, alice)
        response = await client.put(f"/api/notes/{note['id']}", json={"content": "x"}, headers=auth_headers(alice))
        assert response.status_code == 422

    async def test_blank_title_rejected_on_update(self, client, alice):
        headers = auth_headers(alice)
        note = await create_note(client, alice)

        response = await client.put(f"/api/notes/{note['id']}", json={"title": "   ", "version": 1}, headers=headers)

        assert response.status_code == 422
        stored = await client.get(f"/api/notes/{note['id']}", headers=headers)
        assert stored.json()["title"] == "Groceries"
        assert stored.json()["version"] == 1

    async def test_resolution_requires_strategy(self, client, alice):
        headers = auth_headers(alice)
        note = await create_note(client, alice)

        response = await client.post(
            f"/api/notes/{note['id']}/resolve-conflict",
            json={"title": "merged", "content": "y", "server_version": 1},
            headers=headers,
        )

        assert response.status_code == 422
        history = await client.get(f"/api/notes/{note['id']}/versions", headers=headers)
        assert [v["change_type"] for v in history.json()] == ["create"]

    async def test_blank_title_rejected_on_resolution(self, client, alice):
        note = await create_note(client, alice)

        response = await client.post(
            f"/api/notes/{note['id']}/resolve-conflict",
            json={"title": " ", "content": "y", "server_version": 1, "resolution_strategy": "merge"},
            headers=auth_headers(alice),
        )

        assert response.status_code == 422

    async def test_unknown_note(self, client, alice):
        response = await client.get(f"/api/notes/{uuid.uuid4()}", headers=auth_headers(alice))
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"


class TestStorageErrors:
    async def test_driver_error_on_read_is_retryable_503(self, client, alice, monkeypatch):
        from sqlalchemy.exc import OperationalError

        from notekeeper.core.services.note_service import NoteService

        async def lost_connection(self, note_id, user_id):
            raise OperationalError("SELECT notes", {}, Exception("server closed the connection"))

        note = await create_note(client, alice)
        monkeypatch.setattr(NoteService, "get_note", lost_connection)

        response = await client.get(f"/api/notes/{note['id']}", headers=auth_headers(alice))

        assert response.status_code == 503
        assert response.json()["code"] == "storage_failure"
        assert response.json()["retryable"] is True
        assert response.headers["Retry-After"] == "1"
