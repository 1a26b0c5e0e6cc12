import logging
from typing import Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func, update, delete

from swophere.core.config import settings
from swophere.core.database import aget_db
from swophere.core.exceptions import ForbiddenError, InternalError, NotFoundError, ValidationError
from swophere.models.notifications import Notification
from swophere.schemas.messageSchema import UsernameRequest
from swophere.schemas.notificationSchema import (
    NotificationListResponse,
    NotificationReadResponse,
    NotificationResponse,
    PaginationInfo,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


async def _count_unread(db: AsyncSession, username: str) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            and_(
                Notification.user_id == username,
                Notification.is_read == False
            )
        )
    )
    return result.scalar() or 0


async def _get_owned_notification(
    db: AsyncSession, notification_id: str, username: str, action: str = "modify"
) -> Notification:
    """Load a notification and check it belongs to `username`."""
    result = await db.execute(
        select(Notification).where(Notification.id == notification_id)
    )
    notification = result.scalar_one_or_none()

    if not notification:
        raise NotFoundError("Notification not found")

    if notification.user_id != username:
        raise ForbiddenError(f"Not authorized to {action} this notification")

    return notification


@router.get("/{username}", response_model=NotificationListResponse)
async def get_notifications(
    username: str,
    limit: int = Query(20, ge=1),
    offset: int = Query(0, ge=0),
    unread_only: bool = Query(False, alias="unreadOnly"),
    db: AsyncSession = Depends(aget_db)
):
    """Get a page of notifications for a user, newest first. Oversized pages are capped."""
    limit = min(limit, settings.NOTIFICATION_PAGE_MAX)

    try:
        filters = [Notification.user_id == username]
        if unread_only:
            filters.append(Notification.is_read == False)

        result = await db.execute(
            select(Notification)
            .where(and_(*filters))
            .order_by(Notification.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        notifications = result.scalars().all()

        total_result = await db.execute(
            select(func.count(Notification.id)).where(and_(*filters))
        )
        total = total_result.scalar() or 0

        unread_count = await _count_unread(db, username)

        return NotificationListResponse(
            notifications=[NotificationResponse.from_model(n) for n in notifications],
            pagination=PaginationInfo(
                total=total,
                limit=limit,
                offset=offset,
                has_more=total > offset + limit,
            ),
            unread_count=unread_count,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get notifications error for {username}: {str(e)}", exc_info=True)
        raise InternalError()


@router.get("/{username}/unread-count")
async def get_unread_notification_count(
    username: str,
    db: AsyncSession = Depends(aget_db)
):
    """Get the number of unread notifications for a user."""
    try:
        return {"success": True, "unreadCount": await _count_unread(db, username)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get unread notification count error: {str(e)}", exc_info=True)
        raise InternalError()


@router.put("/{notification_id}/read", response_model=NotificationReadResponse)
async def mark_notification_as_read(
    notification_id: str,
    payload: Optional[UsernameRequest] = Body(None),
    db: AsyncSession = Depends(aget_db)
):
    """Mark a notification as read."""
    username = payload.username if payload else None
    if not username:
        raise ValidationError("Username is required")

    try:
        notification = await _get_owned_notification(db, notification_id, username)

        if not notification.is_read:
            notification.is_read = True
            await db.commit()
            await db.refresh(notification)

        return NotificationReadResponse(notification=NotificationResponse.from_model(notification))
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Mark notification read error: {str(e)}", exc_info=True)
        raise InternalError()


@router.put("/{username}/mark-all-read")
async def mark_all_notifications_as_read(
    username: str,
    db: AsyncSession = Depends(aget_db)
):
    """Mark all notifications as read for a user."""
    try:
        result = await db.execute(
            update(Notification)
            .where(
                and_(
                    Notification.user_id == username,
                    Notification.is_read == False
                )
            )
            .values(is_read=True)
        )
        await db.commit()

        return {
            "success": True,
            "message": "All notifications marked as read",
            "count": result.rowcount
        }
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Mark all notifications read error: {str(e)}", exc_info=True)
        raise InternalError()


@router.delete("/{username}/clear-all")
async def clear_all_notifications(
    username: str,
    db: AsyncSession = Depends(aget_db)
):
    """Delete every notification owned by a user."""
    try:
        result = await db.execute(
            delete(Notification).where(Notification.user_id == username)
        )
        await db.commit()

        return {
            "success": True,
            "message": "All notifications cleared",
            "count": result.rowcount
        }
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Clear all notifications error: {str(e)}", exc_info=True)
        raise InternalError()


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    payload: Optional[UsernameRequest] = Body(None),
    db: AsyncSession = Depends(aget_db)
):
    """Delete a notification."""
    username = payload.username if payload else None
    if not username:
        raise ValidationError("Username is required")

    try:
        notification = await _get_owned_notification(db, notification_id, username, action="delete")

        await db.delete(notification)
        await db.commit()

        return {"success": True, "message": "Notification deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Delete notification error: {str(e)}", exc_info=True)
        raise InternalError()
