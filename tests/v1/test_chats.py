"""Tests for chat endpoints."""

from fastapi import status


def test_start_chat_is_idempotent(client, alice, bob, alice_headers, bob_headers) -> None:
    first = client.post(f"/api/v1/chats/start/{bob.id}", headers=alice_headers)
    second = client.post(f"/api/v1/chats/start/{alice.id}", headers=bob_headers)

    assert first.status_code == status.HTTP_200_OK
    assert first.json()["id"] == second.json()["id"]
    assert first.json()["other_user"]["username"] == "bob"
    assert second.json()["other_user"]["username"] == "alice"
    assert first.json()["last_message"] is None


def test_start_chat_errors(client, make_user, alice, alice_headers) -> None:
    private = make_user("locked", message_privacy="contacts")

    with_self = client.post(f"/api/v1/chats/start/{alice.id}", headers=alice_headers)
    unknown = client.post("/api/v1/chats/start/999999", headers=alice_headers)
    restricted = client.post(f"/api/v1/chats/start/{private.id}", headers=alice_headers)

    assert with_self.status_code == status.HTTP_400_BAD_REQUEST
    assert unknown.status_code == status.HTTP_404_NOT_FOUND
    assert restricted.status_code == status.HTTP_403_FORBIDDEN
    assert "contacts" in restricted.json()["detail"]


def test_list_chats_most_recent_first(
    client, store, alice, bob, carol, alice_headers
) -> None:
    with_bob, _ = store.create_chat(alice.id, bob.id)
    with_carol, _ = store.create_chat(alice.id, carol.id)
    client.post(
        "/api/v1/messages/", json={"chat_id": with_carol.id, "text": "hi"}, headers=alice_headers
    )

    chats = client.get("/api/v1/chats/", headers=alice_headers).json()

    assert [c["id"] for c in chats] == [with_carol.id, with_bob.id]
    assert chats[0]["last_message"] == "hi"
    assert chats[0]["last_message_time"] is not None


def test_get_chat_requires_participation(client, chat, headers_for, carol, alice_headers) -> None:
    mine = client.get(f"/api/v1/chats/{chat.id}", headers=alice_headers)
    theirs = client.get(f"/api/v1/chats/{chat.id}", headers=headers_for(carol))
    missing = client.get("/api/v1/chats/999999", headers=alice_headers)

    assert mine.status_code == status.HTTP_200_OK
    assert theirs.status_code == status.HTTP_403_FORBIDDEN
    assert missing.status_code == status.HTTP_404_NOT_FOUND
