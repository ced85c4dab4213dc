"""Tests for the in-memory presence table."""

import pytest

from welo_stage.schemas.events import PresenceChanged
from welo_stage.services.presence import Connection, deliver


@pytest.mark.asyncio
async def test_set_online_registers_connection(presence, make_connection) -> None:
    conn = make_connection("alice")

    await presence.set_online(1, conn)

    assert presence.lookup(1) is conn
    assert presence.is_online(1)
    assert presence.online_user_ids() == {1}
    assert len(presence) == 1


@pytest.mark.asyncio
async def test_lookup_unknown_user_returns_none(presence) -> None:
    assert presence.lookup(42) is None
    assert not presence.is_online(42)


@pytest.mark.asyncio
async def test_set_online_broadcasts_to_other_users_only(presence, make_connection) -> None:
    alice = make_connection("alice")
    bob = make_connection("bob")
    await presence.set_online(1, alice)

    await presence.set_online(2, bob)

    changes = alice.of_type("presence-changed")
    assert len(changes) == 1
    assert changes[0].user_id == 2
    assert changes[0].is_online is True
    assert bob.events == []


@pytest.mark.asyncio
async def test_last_connection_wins(presence, make_connection) -> None:
    first = make_connection("first")
    second = make_connection("second")
    await presence.set_online(1, first)

    await presence.set_online(1, second)

    assert presence.lookup(1) is second
    assert len(presence) == 1
    # The replaced connection closing later must not take the user offline.
    assert await presence.remove_by_connection(first) is None
    assert presence.lookup(1) is second


@pytest.mark.asyncio
async def test_set_offline_is_idempotent(presence, make_connection) -> None:
    watcher = make_connection("watcher")
    await presence.set_online(1, make_connection("alice"))
    await presence.set_online(2, watcher)

    assert await presence.set_offline(1) is True
    assert await presence.set_offline(1) is False

    offline = [e for e in watcher.of_type("presence-changed") if not e.is_online]
    assert len(offline) == 1
    assert offline[0].user_id == 1
    assert not presence.is_online(1)


@pytest.mark.asyncio
async def test_remove_by_connection_announces_offline(presence, make_connection) -> None:
    alice = make_connection("alice")
    bob = make_connection("bob")
    await presence.set_online(1, alice)
    await presence.set_online(2, bob)

    assert await presence.remove_by_connection(bob) == 2
    assert await presence.remove_by_connection(bob) is None

    assert not presence.is_online(2)
    assert [(e.user_id, e.is_online) for e in alice.of_type("presence-changed")] == [
        (2, True),
        (2, False),
    ]


@pytest.mark.asyncio
async def test_broadcast_survives_failing_connection(presence, make_connection) -> None:
    broken = make_connection("broken", fail=True)
    healthy = make_connection("healthy")
    await presence.set_online(1, broken)
    await presence.set_online(2, healthy)

    await presence.set_online(3, make_connection("carol"))

    assert [e.user_id for e in healthy.of_type("presence-changed")] == [3]
    assert presence.is_online(1)


@pytest.mark.asyncio
async def test_deliver_reports_transport_failure(make_connection) -> None:
    event = PresenceChanged(user_id=1, is_online=True)

    assert await deliver(make_connection(), event) is True
    assert await deliver(make_connection(fail=True), event) is False


def test_recording_connection_satisfies_protocol(make_connection) -> None:
    assert isinstance(make_connection(), Connection)
