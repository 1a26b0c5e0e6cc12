"""In-app notification emission and bulk maintenance helpers."""

import logging
from typing import Iterable, Optional

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from swophere.constants.constants import NotificationType
from swophere.models.notifications import Notification

logger = logging.getLogger(__name__)


async def emit_notification(
    db: AsyncSession,
    *,
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    related_id: Optional[str] = None,
    related_username: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> Optional[Notification]:
    """
    Persist a notification as a side effect of a primary write.

    The caller must have committed its own write already. Any failure here is
    logged and rolled back, and None is returned; it never propagates.

    Args:
        db: Request session.
        user_id: Recipient username.
        type: Notification type.
        title: Short heading.
        message: Human readable body.
        related_id: Id of the triggering message or agreement.
        related_username: Counterpart actor.
        metadata: Free-form payload for the client.

    Returns:
        The stored notification, or None if it could not be written.
    """
    type_name = getattr(type, "value", type)
    try:
        notification = Notification(
            user_id=user_id,
            type=NotificationType(type_name).value,
            title=title,
            message=message,
            related_id=related_id,
            related_username=related_username,
            meta_data=metadata or {},
            is_read=False,
        )
        db.add(notification)
        await db.commit()
        logger.info(f"In-app notification {notification.type} created for {user_id}")
        return notification
    except Exception as e:
        logger.error(f"Failed to create {type_name} notification for {user_id}: {e}", exc_info=True)
        try:
            await db.rollback()
        except Exception as rollback_error:
            logger.error(f"Rollback after notification failure also failed: {rollback_error}")
        return None


async def mark_message_notifications_read(db: AsyncSession, username: str, other_user: str) -> int:
    """Mark unread MESSAGE notifications sent to `username` about `other_user` as read."""
    result = await db.execute(
        update(Notification)
        .where(
            Notification.user_id == username,
            Notification.type == NotificationType.MESSAGE.value,
            Notification.related_username == other_user,
            Notification.is_read == False,
        )
        .values(is_read=True)
    )
    return result.rowcount


async def delete_message_notifications(db: AsyncSession, message_ids: Iterable[str]) -> int:
    """Delete MESSAGE notifications whose related id is one of `message_ids`."""
    message_ids = list(message_ids)
    if not message_ids:
        return 0
    result = await db.execute(
        delete(Notification).where(
            Notification.type == NotificationType.MESSAGE.value,
            Notification.related_id.in_(message_ids),
        )
    )
    return result.rowcount
