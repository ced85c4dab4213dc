"""Tests for user search and profile endpoints."""

import asyncio

from fastapi import status


def test_search_hides_private_users(client, make_user, alice_headers) -> None:
    make_user("zed_visible")
    make_user("zed_hidden", discoverability="nobody")

    response = client.get("/api/v1/users/search", params={"query": "zed"}, headers=alice_headers)

    assert response.status_code == status.HTTP_200_OK
    assert [u["username"] for u in response.json()] == ["zed_visible"]


def test_search_requires_query(client, alice_headers) -> None:
    response = client.get("/api/v1/users/search", headers=alice_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_online_status_setting_hides_presence(
    client, app_services, make_user, alice_headers, make_connection
) -> None:
    shy = make_user("shy", online_status=False)
    open_user = make_user("open")
    asyncio.run(app_services.connect(shy.id, make_connection("shy")))
    asyncio.run(app_services.connect(open_user.id, make_connection("open")))

    shy_profile = client.get(f"/api/v1/users/{shy.id}", headers=alice_headers).json()
    open_profile = client.get(f"/api/v1/users/{open_user.id}", headers=alice_headers).json()

    assert shy_profile["is_online"] is False
    assert open_profile["is_online"] is True


def test_get_unknown_user(client, alice_headers) -> None:
    response = client.get("/api/v1/users/999999", headers=alice_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_update_profile(client, alice_headers) -> None:
    response = client.put(
        "/api/v1/users/profile",
        json={"nickname": "Ally", "settings": {"theme": "dark", "discoverability": "contacts"}},
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["nickname"] == "Ally"
    assert data["settings"]["theme"] == "dark"
    assert data["settings"]["discoverability"] == "contacts"
    assert data["settings"]["message_privacy"] == "everyone"


def test_update_profile_rejects_unknown_setting_value(client, alice_headers) -> None:
    response = client.put(
        "/api/v1/users/profile",
        json={"settings": {"message_privacy": "nobody"}},
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_change_password(client, alice_headers) -> None:
    wrong = client.put(
        "/api/v1/users/password",
        json={"current_password": "nope", "new_password": "fresh-pass"},
        headers=alice_headers,
    )
    ok = client.put(
        "/api/v1/users/password",
        json={"current_password": "correct-horse", "new_password": "fresh-pass"},
        headers=alice_headers,
    )

    assert wrong.status_code == status.HTTP_400_BAD_REQUEST
    assert ok.json() == {"status": "password_updated"}
    login = client.post(
        "/api/v1/auth/login", json={"username": "alice", "password": "fresh-pass"}
    )
    assert login.status_code == status.HTTP_200_OK
