import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

import asyncio
from sqlalchemy import select
from swophere.core.database import aget_db, session_manager
from swophere.core.security import hash_password
from swophere.models.user import User

DEFAULT_PASSWORD = os.getenv("SEED_USER_PASSWORD", "swophere123")

DEMO_USERS = [
    {"username": "alice", "email": "alice@example.com", "first_name": "Alice", "last_name": "Anders"},
    {"username": "bob", "email": "bob@example.com", "first_name": "Bob", "last_name": "Baker"},
    {"username": "carol", "email": "carol@example.com", "first_name": "Carol", "last_name": "Chen"},
]


async def seed_users():
    """Create demo accounts for local development, skipping any that already exist."""
    await session_manager.init()
    async for db in aget_db():
        try:
            result = await db.execute(
                select(User.username).where(User.username.in_([u["username"] for u in DEMO_USERS]))
            )
            existing = set(result.scalars().all())

            created_count = 0
            for data in DEMO_USERS:
                if data["username"] in existing:
                    print(f"ℹ️ Skipping {data['username']}: already exists")
                    continue

                db.add(User(
                    **data,
                    password_hash=hash_password(DEFAULT_PASSWORD),
                    is_verified=True,
                ))
                created_count += 1
                print(f"✅ Created {data['username']} <{data['email']}>")

            await db.commit()
            print(f"✅ Seeded {created_count} users")

        except Exception as e:
            print(f"❌ Error: {str(e)}")
            import traceback
            traceback.print_exc()
            await db.rollback()

    await session_manager.close()

if __name__ == "__main__":
    asyncio.run(seed_users())
