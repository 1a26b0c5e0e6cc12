import uuid
from sqlalchemy import Boolean, Column, String, Text, JSON, Index
from swophere.models.base import Base, TimestampMixin


class Notification(Base, TimestampMixin):
    """Model for in-app notifications."""

    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # Recipient username; named user_id on the wire for compatibility
    user_id = Column(String, nullable=False, index=True)

    type = Column(String, nullable=False)  # see NotificationType
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)

    # Triggering entity: message id or agreement swop_id
    related_id = Column(String, nullable=True, index=True)
    related_username = Column(String, nullable=True)
    meta_data = Column("metadata", JSON, nullable=True)

    is_read = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )
