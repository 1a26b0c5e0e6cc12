"""Direct messaging between users: threads, conversations, read state and deletion."""

import logging
from typing import Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from sqlalchemy import select, and_, or_, func, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from swophere.constants.constants import MESSAGE_PREVIEW_LENGTH, NotificationType
from swophere.core.config import settings
from swophere.core.database import aget_db
from swophere.core.exceptions import (
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from swophere.core.rate_limit import limiter
from swophere.models.messaging import Message
from swophere.schemas.messageSchema import MarkReadRequest, MessageSendRequest, UsernameRequest
from swophere.services.NotificationService import (
    delete_message_notifications,
    emit_notification,
    mark_message_notifications_read,
)
from swophere.utils.conversation_threads import build_conversation_threads
from swophere.utils.datetime_utils import to_utc_iso
from swophere.utils.user_lookup import get_user_by_username

logger = logging.getLogger(__name__)

router = APIRouter(tags=["messages"])


def _format_message(msg: Message) -> dict:
    return {
        "id": msg.id,
        "fromUser": msg.from_user,
        "toUser": msg.to_user,
        "message": msg.message,
        "timestamp": to_utc_iso(msg.timestamp),
        "read": msg.read,
    }


def _between(user_a: str, user_b: str):
    """Filter for messages exchanged by two users in either direction."""
    return or_(
        and_(Message.from_user == user_a, Message.to_user == user_b),
        and_(Message.from_user == user_b, Message.to_user == user_a),
    )


def _message_preview(text: str) -> str:
    if len(text) > MESSAGE_PREVIEW_LENGTH:
        return text[:MESSAGE_PREVIEW_LENGTH] + "..."
    return text


@router.get("/messages/threads/{username}")
@router.get("/threads/{username}")
async def get_message_threads(
    username: str,
    db: AsyncSession = Depends(aget_db)
):
    """List one summary per conversation partner, newest first."""
    try:
        result = await db.execute(
            select(Message)
            .where(or_(Message.from_user == username, Message.to_user == username))
            .order_by(Message.timestamp.desc())
        )
        messages = result.scalars().all()

        threads = build_conversation_threads(messages, username)

        return {
            "success": True,
            "threads": [
                {**thread, "timestamp": to_utc_iso(thread["timestamp"])}
                for thread in threads
            ]
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get threads error for {username}: {str(e)}", exc_info=True)
        raise InternalError()


@router.get("/messages/unread/{username}")
async def get_unread_message_count(
    username: str,
    db: AsyncSession = Depends(aget_db)
):
    """Count messages addressed to the user that are still unread."""
    try:
        result = await db.execute(
            select(func.count(Message.id)).where(
                and_(Message.to_user == username, Message.read == False)
            )
        )
        return {"success": True, "unreadCount": result.scalar() or 0}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get unread count error for {username}: {str(e)}", exc_info=True)
        raise InternalError()


@router.get("/messages/{user1}/{user2}")
async def get_conversation(
    user1: str,
    user2: str,
    db: AsyncSession = Depends(aget_db)
):
    """
    Return the conversation between user1 and user2, oldest first.

    Viewing as user1 marks every unread message from user2 to user1 as read,
    together with the matching MESSAGE notifications. The response reflects
    the state before that update.
    """
    try:
        result = await db.execute(
            select(Message)
            .where(_between(user1, user2))
            .order_by(Message.timestamp.asc())
        )
        messages = result.scalars().all()
        payload = [_format_message(m) for m in messages]

        has_unread = any(
            m.to_user == user1 and m.from_user == user2 and not m.read
            for m in messages
        )
        if has_unread:
            await db.execute(
                update(Message)
                .where(
                    and_(
                        Message.from_user == user2,
                        Message.to_user == user1,
                        Message.read == False
                    )
                )
                .values(read=True)
            )
            await mark_message_notifications_read(db, user1, user2)
            await db.commit()

        return {"success": True, "messages": payload}
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Get messages error for {user1}/{user2}: {str(e)}", exc_info=True)
        raise InternalError()


@router.post("/messages/send", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.MESSAGE_SEND_RATE_LIMIT)
async def send_message(
    request: Request,
    payload: MessageSendRequest,
    db: AsyncSession = Depends(aget_db)
):
    """
    Send a direct message and notify the recipient in-app.

    The notification is best effort: the message is committed first and a
    failed notification write does not fail the send.
    """
    if not payload.from_user or not payload.to_user or not payload.message:
        raise ValidationError("All fields (fromUser, toUser, message) are required")

    text = payload.message.strip()
    if not text:
        raise ValidationError("Message cannot be empty")

    try:
        sender = await get_user_by_username(db, payload.from_user)
        recipient = await get_user_by_username(db, payload.to_user)

        if not sender:
            raise NotFoundError("Sender user not found")
        if not recipient:
            raise NotFoundError("Recipient user not found")
        if sender.username == recipient.username:
            raise ValidationError("You cannot send messages to yourself")

        new_message = Message(
            from_user=sender.username,
            to_user=recipient.username,
            message=text,
            read=False,
        )
        db.add(new_message)
        await db.commit()

        # A failed notification rolls the session back and expires loaded rows
        response = {
            "success": True,
            "message": "Message sent successfully",
            "messageId": new_message.id,
            "timestamp": to_utc_iso(new_message.timestamp),
        }
        sender_name = sender.display_name

        await emit_notification(
            db,
            user_id=recipient.username,
            type=NotificationType.MESSAGE,
            title="New Message",
            message=f"{sender_name} sent you a message",
            related_id=response["messageId"],
            related_username=sender.username,
            metadata={
                "senderName": sender_name,
                "messagePreview": _message_preview(text),
            },
        )

        return response
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Send message error: {str(e)}", exc_info=True)
        raise InternalError()


@router.post("/messages/mark-read")
async def mark_conversation_read(
    payload: MarkReadRequest,
    db: AsyncSession = Depends(aget_db)
):
    """Mark every message from otherUser to username as read."""
    if not payload.username or not payload.other_user:
        raise ValidationError("Username and otherUser are required")

    try:
        result = await db.execute(
            update(Message)
            .where(
                and_(
                    Message.from_user == payload.other_user,
                    Message.to_user == payload.username,
                    Message.read == False
                )
            )
            .values(read=True)
        )
        count = result.rowcount

        if count > 0:
            await mark_message_notifications_read(db, payload.username, payload.other_user)
        await db.commit()

        return {
            "success": True,
            "message": "Messages marked as read",
            "count": count,
        }
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Mark read error: {str(e)}", exc_info=True)
        raise InternalError()


@router.delete("/messages/conversation/{username}/{other_user}")
async def delete_conversation(
    username: str,
    other_user: str,
    db: AsyncSession = Depends(aget_db)
):
    """Delete every message between the two users and their MESSAGE notifications."""
    try:
        result = await db.execute(
            select(Message.id).where(_between(username, other_user))
        )
        message_ids = list(result.scalars().all())

        if message_ids:
            await db.execute(delete(Message).where(Message.id.in_(message_ids)))
            await delete_message_notifications(db, message_ids)
        await db.commit()

        logger.info(f"Deleted conversation {username}/{other_user} ({len(message_ids)} messages)")

        return {"success": True, "message": "Conversation deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Delete conversation error: {str(e)}", exc_info=True)
        raise InternalError()


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: str,
    payload: Optional[UsernameRequest] = Body(None),
    db: AsyncSession = Depends(aget_db)
):
    """Delete a single message; only its sender may do so."""
    username = payload.username if payload else None
    if not username:
        raise ValidationError("Username is required")

    try:
        result = await db.execute(select(Message).where(Message.id == message_id))
        message = result.scalar_one_or_none()

        if not message:
            raise NotFoundError("Message not found")

        if message.from_user != username:
            raise ForbiddenError("You can only delete your own messages")

        await db.delete(message)
        await delete_message_notifications(db, [message_id])
        await db.commit()

        return {"success": True, "message": "Message deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Delete message error: {str(e)}", exc_info=True)
        raise InternalError()
