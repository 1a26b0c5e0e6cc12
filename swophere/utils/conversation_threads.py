"""Derive per-counterpart conversation threads from a user's messages."""

from typing import Dict, Iterable, List

from swophere.models.messaging import Message


def build_conversation_threads(messages: Iterable[Message], viewer: str) -> List[dict]:
    """
    Reduce messages touching `viewer` to one summary per counterpart.

    Each thread carries the latest message's id, text and timestamp, and is
    unread when any message from the counterpart to the viewer is unread.
    Threads are returned newest first.
    """
    threads: Dict[str, dict] = {}

    for msg in messages:
        other_user = msg.to_user if msg.from_user == viewer else msg.from_user
        incoming_unread = not msg.read and msg.to_user == viewer

        thread = threads.get(other_user)
        if thread is None:
            threads[other_user] = {
                "id": msg.id,
                "otherUser": other_user,
                "lastMessage": msg.message,
                "timestamp": msg.timestamp,
                "unread": incoming_unread,
            }
            continue

        if msg.timestamp > thread["timestamp"]:
            thread.update(id=msg.id, lastMessage=msg.message, timestamp=msg.timestamp)
        if incoming_unread:
            thread["unread"] = True

    return sorted(threads.values(), key=lambda t: t["timestamp"], reverse=True)
