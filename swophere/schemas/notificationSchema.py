from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import Field, field_serializer

from swophere.models.notifications import Notification
from swophere.schemas.messageSchema import CamelModel
from swophere.utils.datetime_utils import to_utc_iso


class NotificationResponse(CamelModel):
    """Notification as seen by the client (camelCase on the wire)."""
    id: str
    user_id: str
    type: str
    title: str
    message: str
    related_id: Optional[str] = None
    related_username: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return to_utc_iso(value)

    @classmethod
    def from_model(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            user_id=notification.user_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            related_id=notification.related_id,
            related_username=notification.related_username,
            metadata=notification.meta_data or {},
            is_read=notification.is_read,
            created_at=notification.created_at,
        )


class PaginationInfo(CamelModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class NotificationListResponse(CamelModel):
    success: bool = True
    notifications: List[NotificationResponse]
    pagination: PaginationInfo
    unread_count: int


class NotificationReadResponse(CamelModel):
    success: bool = True
    notification: NotificationResponse
