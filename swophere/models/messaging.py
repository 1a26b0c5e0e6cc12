# models/messaging.py
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Text, Index
from swophere.models.base import Base


class Message(Base):
    """Direct messages between two users, addressed by username"""
    __tablename__ = 'messages'

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    from_user = Column(String, nullable=False, index=True)
    to_user = Column(String, nullable=False, index=True)

    message = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    read = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("ix_messages_pair", "from_user", "to_user", "read"),
    )
