import pytest

from swophere.services import NotificationService


async def send(client, from_user, to_user, text):
    response = await client.post(
        "/api/messages/send",
        json={"fromUser": from_user, "toUser": to_user, "message": text},
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_send_and_list_conversation(client):
    sent = await send(client, "alice", "bob", "hi")
    assert sent["success"] is True
    assert sent["messageId"]
    assert sent["timestamp"].endswith("Z")

    await send(client, "bob", "alice", "yo")

    response = await client.get("/api/messages/alice/bob")
    assert response.status_code == 200
    messages = response.json()["messages"]
    assert [m["message"] for m in messages] == ["hi", "yo"]
    assert messages[0]["fromUser"] == "alice"
    assert messages[0]["toUser"] == "bob"
    assert messages[0]["timestamp"] == sent["timestamp"]
    assert [m["id"] for m in messages].count(sent["messageId"]) == 1


async def test_unread_count_after_exchange(client):
    await send(client, "alice", "bob", "hi")
    await send(client, "bob", "alice", "yo")

    alice = await client.get("/api/messages/unread/alice")
    bob = await client.get("/api/messages/unread/bob")
    assert alice.json()["unreadCount"] == 1
    assert bob.json()["unreadCount"] == 1


async def test_viewing_conversation_marks_incoming_read_only(client):
    await send(client, "bob", "alice", "one")
    await send(client, "bob", "alice", "two")
    await send(client, "alice", "bob", "reply")

    first_view = await client.get("/api/messages/alice/bob")
    # the response shows the state before marking
    assert [m["read"] for m in first_view.json()["messages"]] == [False, False, False]

    assert (await client.get("/api/messages/unread/alice")).json()["unreadCount"] == 0
    # messages sent by the viewer are untouched
    assert (await client.get("/api/messages/unread/bob")).json()["unreadCount"] == 1

    second_view = await client.get("/api/messages/alice/bob")
    by_text = {m["message"]: m["read"] for m in second_view.json()["messages"]}
    assert by_text == {"one": True, "two": True, "reply": False}


async def test_viewing_conversation_marks_message_notifications_read(client):
    await send(client, "bob", "alice", "hello")
    assert (await client.get("/api/notifications/alice/unread-count")).json()["unreadCount"] == 1

    await client.get("/api/messages/alice/bob")

    assert (await client.get("/api/notifications/alice/unread-count")).json()["unreadCount"] == 0


async def test_send_creates_message_notification(client):
    long_text = "x" * 60
    sent = await send(client, "alice", "bob", long_text)

    response = await client.get("/api/notifications/bob")
    notifications = response.json()["notifications"]
    assert len(notifications) == 1
    notification = notifications[0]
    assert notification["type"] == "MESSAGE"
    assert notification["title"] == "New Message"
    assert notification["message"] == "Alice Anders sent you a message"
    assert notification["relatedId"] == sent["messageId"]
    assert notification["relatedUsername"] == "alice"
    assert notification["metadata"]["senderName"] == "Alice Anders"
    assert notification["metadata"]["messagePreview"] == "x" * 50 + "..."


async def test_send_trims_message(client):
    await send(client, "alice", "bob", "  padded  ")
    messages = (await client.get("/api/messages/bob/alice")).json()["messages"]
    assert messages[0]["message"] == "padded"


@pytest.mark.parametrize(
    "body,status,message",
    [
        ({"fromUser": "alice", "toUser": "bob"}, 400, "All fields (fromUser, toUser, message) are required"),
        ({"fromUser": "alice", "toUser": "bob", "message": "   "}, 400, "Message cannot be empty"),
        ({"fromUser": "ghost", "toUser": "bob", "message": "hi"}, 404, "Sender user not found"),
        ({"fromUser": "alice", "toUser": "ghost", "message": "hi"}, 404, "Recipient user not found"),
        ({"fromUser": "alice", "toUser": "alice", "message": "hi"}, 400, "You cannot send messages to yourself"),
    ],
)
async def test_send_validation(client, body, status, message):
    response = await client.post("/api/messages/send", json=body)
    assert response.status_code == status
    assert response.json() == {"success": False, "message": message}


async def test_send_succeeds_when_notification_fails(client, monkeypatch):
    def broken_notification(**kwargs):
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr(NotificationService, "Notification", broken_notification)

    sent = await send(client, "alice", "bob", "still delivered")
    assert sent["success"] is True

    messages = (await client.get("/api/messages/alice/bob")).json()["messages"]
    assert [m["message"] for m in messages] == ["still delivered"]
    assert (await client.get("/api/notifications/bob")).json()["notifications"] == []


async def test_threads(client):
    await send(client, "alice", "bob", "hi bob")
    await send(client, "carol", "alice", "hi alice")

    response = await client.get("/api/threads/alice")
    assert response.status_code == 200
    threads = response.json()["threads"]
    assert [t["otherUser"] for t in threads] == ["carol", "bob"]
    assert threads[0]["unread"] is True
    assert threads[1]["unread"] is False
    assert threads[1]["lastMessage"] == "hi bob"

    aliased = await client.get("/api/messages/threads/alice")
    assert aliased.json()["threads"] == threads


async def test_mark_read(client):
    await send(client, "bob", "alice", "one")
    await send(client, "bob", "alice", "two")

    response = await client.post("/api/messages/mark-read", json={"username": "alice", "otherUser": "bob"})
    assert response.status_code == 200
    assert response.json()["count"] == 2
    assert (await client.get("/api/messages/unread/alice")).json()["unreadCount"] == 0
    assert (await client.get("/api/notifications/alice/unread-count")).json()["unreadCount"] == 0

    again = await client.post("/api/messages/mark-read", json={"username": "alice", "otherUser": "bob"})
    assert again.json()["count"] == 0


async def test_mark_read_requires_both_users(client):
    response = await client.post("/api/messages/mark-read", json={"username": "alice"})
    assert response.status_code == 400
    assert response.json()["success"] is False


async def test_delete_message_removes_its_notification_only(client):
    first = await send(client, "alice", "bob", "first")
    await send(client, "alice", "bob", "second")

    response = await client.request(
        "DELETE", f"/api/messages/{first['messageId']}", json={"username": "alice"}
    )
    assert response.status_code == 200
    assert response.json()["success"] is True

    messages = (await client.get("/api/messages/alice/bob")).json()["messages"]
    assert [m["message"] for m in messages] == ["second"]

    notifications = (await client.get("/api/notifications/bob")).json()["notifications"]
    assert len(notifications) == 1
    assert notifications[0]["relatedId"] != first["messageId"]


async def test_delete_message_is_sender_only(client):
    sent = await send(client, "alice", "bob", "mine")

    response = await client.request(
        "DELETE", f"/api/messages/{sent['messageId']}", json={"username": "bob"}
    )
    assert response.status_code == 403
    assert response.json()["message"] == "You can only delete your own messages"

    missing = await client.request("DELETE", "/api/messages/nope", json={"username": "alice"})
    assert missing.status_code == 404

    no_user = await client.request("DELETE", f"/api/messages/{sent['messageId']}", json={})
    assert no_user.status_code == 400
    assert no_user.json()["message"] == "Username is required"


async def test_delete_conversation(client):
    await send(client, "alice", "bob", "a")
    await send(client, "bob", "alice", "b")
    await send(client, "alice", "bob", "c")
    await send(client, "carol", "alice", "unrelated")

    response = await client.delete("/api/messages/conversation/alice/bob")
    assert response.status_code == 200
    assert response.json()["success"] is True

    assert (await client.get("/api/messages/alice/bob")).json()["messages"] == []
    threads = (await client.get("/api/threads/alice")).json()["threads"]
    assert [t["otherUser"] for t in threads] == ["carol"]

    bob_notifications = (await client.get("/api/notifications/bob")).json()["notifications"]
    assert bob_notifications == []
    alice_notifications = (await client.get("/api/notifications/alice")).json()["notifications"]
    assert [n["relatedUsername"] for n in alice_notifications] == ["carol"]
