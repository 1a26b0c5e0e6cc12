import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["MICROSOFT_TENANT_ID"] = ""
os.environ["MICROSOFT_CLIENT_ID"] = ""
os.environ["MICROSOFT_CLIENT_SECRET"] = ""

import pytest
from httpx import ASGITransport, AsyncClient

from swophere.core.database import session_manager
from swophere.core.security import hash_password
from swophere.main import app
from swophere.models.user import User


DEMO_USERS = [
    ("alice", "alice@example.com", "Alice", "Anders"),
    ("bob", "bob@example.com", "Bob", "Baker"),
    ("carol", "carol@example.com", "", ""),
]

PASSWORD_HASH = hash_password("password123")


@pytest.fixture
async def db_manager():
    await session_manager.init("sqlite+aiosqlite://")
    yield session_manager
    await session_manager.close()


@pytest.fixture
async def users(db_manager):
    async with db_manager.get_session() as session:
        for username, email, first_name, last_name in DEMO_USERS:
            session.add(
                User(
                    username=username,
                    email=email,
                    first_name=first_name,
                    last_name=last_name,
                    password_hash=PASSWORD_HASH,
                    is_verified=True,
                )
            )
    return [u[0] for u in DEMO_USERS]


@pytest.fixture
async def client(users):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
