from datetime import datetime, timedelta

from swophere.models.messaging import Message
from swophere.utils.conversation_threads import build_conversation_threads


BASE = datetime(2024, 1, 1, 12, 0, 0)


def _msg(id, from_user, to_user, text, minutes, read=False):
    return Message(
        id=id,
        from_user=from_user,
        to_user=to_user,
        message=text,
        timestamp=BASE + timedelta(minutes=minutes),
        read=read,
    )


def test_one_thread_per_counterpart_newest_first():
    messages = [
        _msg("m1", "bob", "alice", "hi alice", 1, read=True),
        _msg("m2", "alice", "bob", "hi bob", 2),
        _msg("m3", "carol", "alice", "hey", 5),
    ]

    threads = build_conversation_threads(messages, "alice")

    assert [t["otherUser"] for t in threads] == ["carol", "bob"]
    bob_thread = threads[1]
    assert bob_thread["id"] == "m2"
    assert bob_thread["lastMessage"] == "hi bob"
    assert bob_thread["timestamp"] == BASE + timedelta(minutes=2)


def test_unread_only_counts_incoming_messages():
    messages = [
        # unread, but sent by the viewer
        _msg("m1", "alice", "bob", "ping", 1),
        _msg("m2", "carol", "alice", "old", 2, read=True),
        _msg("m3", "carol", "alice", "new", 3),
    ]

    threads = {t["otherUser"]: t for t in build_conversation_threads(messages, "alice")}

    assert threads["bob"]["unread"] is False
    assert threads["carol"]["unread"] is True


def test_order_of_input_does_not_matter():
    messages = [
        _msg("m2", "bob", "alice", "second", 2, read=True),
        _msg("m1", "alice", "bob", "first", 1),
    ]
    threads = build_conversation_threads(list(reversed(messages)), "alice")
    assert threads[0]["lastMessage"] == "second"


def test_no_messages():
    assert build_conversation_threads([], "alice") == []
