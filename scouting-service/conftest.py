import os

# Cheap hashing for tests; must be set before security.py is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from database import Database
from main import create_app

PASSWORD = "secret1"


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{(tmp_path / 'test.db').as_posix()}")
    await db.connect()
    yield db
    await db.disconnect()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest_asyncio.fixture
async def client(database):
    app = create_app(database)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def auth_client(client):
    response = await client.post(
        "/api/auth/register", json={"email": "coach@example.com", "password": PASSWORD}
    )
    assert response.status_code == 200
    return client
