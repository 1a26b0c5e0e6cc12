from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swophere.models.user import User


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    """Return the user with this username, or None."""
    if not username:
        return None
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()
