"""In-memory table of which users are online and on which connection.

The table is created once per application instance and handed to the
delivery engine. It is an optimisation for live delivery only; nothing
durable depends on an entry existing.

All mutations happen under a single lock and never await while holding it.
Broadcast recipients are snapshotted under the lock and notified after it is
released, so presence changes are never serialised behind connection I/O.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from threading import Lock
from typing import Protocol, runtime_checkable

from welo_stage.schemas.events import OutboundEvent, PresenceChanged

logger = logging.getLogger(__name__)


@runtime_checkable
class Connection(Protocol):
    """Bidirectional per-session channel as seen by the core.

    The transport behind it owns framing and serialisation.
    """

    async def send_event(self, event: OutboundEvent) -> None:
        """Push one outbound event to the client."""


async def deliver(connection: Connection, event: OutboundEvent) -> bool:
    """Send an event without letting transport failures escape.

    Returns:
        True if the transport accepted the event, False otherwise.
    """
    try:
        await connection.send_event(event)
        return True
    except Exception as exc:  # noqa: BLE001
        logger.debug("Dropped %s event for unreachable connection: %s", event.type, exc)
        return False


class PresenceTable:
    """At most one live connection per online user; last connection wins."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._by_user: dict[int, Connection] = {}
        self._by_connection: dict[Connection, int] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_user)

    async def set_online(self, user_id: int, connection: Connection) -> None:
        """Register or replace the user's live connection and announce it."""
        with self._lock:
            previous = self._by_user.get(user_id)
            if previous is not None and previous is not connection:
                # A replaced connection keeps no reverse entry.
                self._by_connection.pop(previous, None)
            self._by_user[user_id] = connection
            self._by_connection[connection] = user_id
            recipients = [conn for conn in self._by_user.values() if conn is not connection]

        await self._broadcast(PresenceChanged(user_id=user_id, is_online=True), recipients)

    async def set_offline(self, user_id: int) -> bool:
        """Remove the user's entry if present and announce the change.

        Returns:
            True if an entry was removed; False (and no broadcast) otherwise.
        """
        with self._lock:
            connection = self._by_user.pop(user_id, None)
            if connection is None:
                return False
            self._by_connection.pop(connection, None)
            recipients = list(self._by_user.values())

        await self._broadcast(PresenceChanged(user_id=user_id, is_online=False), recipients)
        return True

    async def remove_by_connection(self, connection: Connection) -> int | None:
        """Drop whichever user is bound to ``connection``.

        Used when a socket closes and only the connection is known.

        Returns:
            The user id that went offline, or None when the connection was not
            (or no longer) registered.
        """
        with self._lock:
            user_id = self._by_connection.pop(connection, None)
            if user_id is None:
                return None
            if self._by_user.get(user_id) is connection:
                del self._by_user[user_id]
            recipients = list(self._by_user.values())

        await self._broadcast(PresenceChanged(user_id=user_id, is_online=False), recipients)
        return user_id

    def lookup(self, user_id: int) -> Connection | None:
        """Return the user's live connection, or None when offline."""
        with self._lock:
            return self._by_user.get(user_id)

    def is_online(self, user_id: int) -> bool:
        """Return True if the user currently holds a live connection."""
        with self._lock:
            return user_id in self._by_user

    def online_user_ids(self) -> set[int]:
        """Return a snapshot of every online user id."""
        with self._lock:
            return set(self._by_user)

    async def _broadcast(self, event: OutboundEvent, recipients: Iterable[Connection]) -> None:
        targets = list(recipients)
        if not targets:
            return
        await asyncio.gather(*(deliver(conn, event) for conn in targets))
