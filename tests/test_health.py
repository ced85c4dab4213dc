"""Tests for the service metadata endpoints."""

from fastapi import status


def test_health_reports_online_users(client) -> None:
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok", "online_users": 0}


def test_root_lists_entry_points(client) -> None:
    data = client.get("/").json()

    assert data["docs"] == "/docs"
    assert data["websocket"] == "/ws"
