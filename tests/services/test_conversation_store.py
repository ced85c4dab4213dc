"""Tests for the SQLAlchemy-backed conversation store."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from welo_stage.repositories.conversation_store import ConversationStore
from welo_stage.services.errors import ConflictError, StorageFailureError

BASE_TIME = datetime(2026, 1, 5, 12, 0, 0)


def test_create_user_adds_default_settings(store) -> None:
    user = store.create_user(username="dora", nickname="Dora", password_hash="x")

    assert user.id is not None
    assert user.avatar == "user"
    assert user.settings.discoverability == "everyone"
    assert user.settings.message_privacy == "everyone"
    assert user.settings.online_status is True


def test_create_user_rejects_duplicate_username(store) -> None:
    store.create_user(username="dora", nickname="Dora", password_hash="x")

    with pytest.raises(ConflictError):
        store.create_user(username="dora", nickname="Other", password_hash="y")


def test_update_user_merges_settings(store, alice) -> None:
    updated = store.update_user(
        alice.id,
        nickname="Ally",
        settings={"theme": "dark", "unknown": "ignored", "read_receipts": None},
    )

    assert updated.nickname == "Ally"
    assert updated.settings.theme == "dark"
    assert updated.settings.read_receipts is True
    assert store.update_user(999_999, nickname="ghost") is None


def test_search_users_matches_username_and_nickname(store, make_user, alice) -> None:
    make_user("percy", nickname="Wild_Card")
    make_user("quinn", nickname="Quinn")

    by_nickname = store.search_users("wild_", exclude_user_id=alice.id)
    by_username = store.search_users("QUI", exclude_user_id=alice.id)

    assert [u.username for u in by_nickname] == ["percy"]
    assert [u.username for u in by_username] == ["quinn"]
    assert store.search_users("alice", exclude_user_id=alice.id) == []


def test_create_chat_is_unique_per_pair(store, alice, bob) -> None:
    first, created = store.create_chat(alice.id, bob.id)
    second, created_again = store.create_chat(bob.id, alice.id)

    assert created is True
    assert created_again is False
    assert first.id == second.id
    assert store.find_chat_by_participants(bob.id, alice.id).id == first.id
    assert store.contact_ids(alice.id) == {bob.id}


def test_append_message_updates_chat_cache(store, chat, alice) -> None:
    message = store.append_message(chat.id, alice.id, "hello", BASE_TIME)

    refreshed = store.get_chat(chat.id)
    assert message.read is False
    assert message.sender.id == alice.id
    assert refreshed.last_message == "hello"
    assert refreshed.last_message_time == message.timestamp


def test_stale_cache_update_is_ignored(store, chat, alice, bob) -> None:
    store.append_message(chat.id, alice.id, "newer", BASE_TIME + timedelta(seconds=5))

    applied = store.update_chat_last_message(chat.id, "older", BASE_TIME)

    refreshed = store.get_chat(chat.id)
    assert applied is False
    assert refreshed.last_message == "newer"
    assert refreshed.last_message_time == BASE_TIME + timedelta(seconds=5)


def test_out_of_order_appends_keep_newest_in_cache(store, chat, alice, bob) -> None:
    store.append_message(chat.id, bob.id, "second", BASE_TIME + timedelta(seconds=1))
    store.append_message(chat.id, alice.id, "first", BASE_TIME)

    refreshed = store.get_chat(chat.id)
    assert refreshed.last_message == "second"


def test_mark_messages_read_only_flips_unread(store, chat, alice) -> None:
    first = store.append_message(chat.id, alice.id, "one", BASE_TIME)
    second = store.append_message(chat.id, alice.id, "two", BASE_TIME + timedelta(seconds=1))

    assert store.mark_messages_read([first.id]) == [first.id]
    assert sorted(store.mark_messages_read([first.id, second.id])) == [second.id]
    assert store.mark_messages_read([first.id, second.id]) == []
    assert store.mark_messages_read([]) == []
    assert store.get_message(first.id).read is True


def test_list_messages_orders_newest_first_with_id_tiebreak(store, chat, alice, bob) -> None:
    a = store.append_message(chat.id, alice.id, "a", BASE_TIME)
    b = store.append_message(chat.id, bob.id, "b", BASE_TIME)
    c = store.append_message(chat.id, alice.id, "c", BASE_TIME + timedelta(seconds=1))

    window = store.list_messages(chat.id, limit=10)
    older = store.list_messages(chat.id, limit=10, before=BASE_TIME + timedelta(seconds=1))
    capped = store.list_messages(chat.id, limit=1)

    assert [m.id for m in window] == [c.id, b.id, a.id]
    assert [m.id for m in older] == [b.id, a.id]
    assert [m.id for m in capped] == [c.id]


def test_list_chats_orders_by_recent_activity(store, alice, bob, carol) -> None:
    with_bob, _ = store.create_chat(alice.id, bob.id)
    with_carol, _ = store.create_chat(alice.id, carol.id)
    store.append_message(with_bob.id, bob.id, "hi", BASE_TIME)

    chats = store.list_chats_for_user(alice.id)

    assert [c.id for c in chats] == [with_bob.id, with_carol.id]
    assert chats[0].other_participant(alice.id).username == "bob"


def test_database_errors_become_storage_failures(mocker) -> None:
    session = mocker.MagicMock()
    session.get.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))
    store = ConversationStore(lambda: session)

    with pytest.raises(StorageFailureError):
        store.get_chat(1)

    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_create_message_leaves_cache_untouched(store, chat, bob) -> None:
    message = store.create_message(chat.id, bob.id, "raw insert", BASE_TIME)

    assert store.get_message(message.id).text == "raw insert"
    assert store.get_chat(chat.id).last_message is None
    assert store.update_chat_last_message(chat.id, "raw insert", BASE_TIME) is True
    assert store.get_chat(chat.id).last_message == "raw insert"


def test_aware_timestamps_are_stored_and_compared_as_utc(store, chat, alice) -> None:
    plus_five = timezone(timedelta(hours=5))
    message = store.append_message(
        chat.id, alice.id, "offset", datetime(2026, 1, 5, 17, 0, tzinfo=plus_five)
    )

    assert message.timestamp == BASE_TIME
    assert store.list_messages(chat.id, limit=5, before=BASE_TIME.replace(tzinfo=UTC)) == []
    assert store.update_chat_last_message(
        chat.id, "stale", datetime(2026, 1, 5, 6, 59, tzinfo=timezone(timedelta(hours=-5)))
    ) is False
