"""User model for the SwopHere user directory."""

import random
import string
from sqlalchemy import Column, String, Boolean

from swophere.models.base import Base, TimestampMixin


def generate_user_id() -> str:
    """Public user id of the form SH_XXXXX (uppercase base36)."""
    alphabet = string.ascii_uppercase + string.digits
    return "SH_" + "".join(random.choices(alphabet, k=5))


class User(Base, TimestampMixin):
    __tablename__ = "users"
    user_id = Column(String, primary_key=True, index=True, default=generate_user_id)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    password_hash = Column(String, nullable=True)
    is_verified = Column(Boolean, default=False)

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or self.username
