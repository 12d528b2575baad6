import os
import uuid
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Settings are read at import time, so the environment goes first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-purposes-only-32chars"
os.environ["ALGORITHM"] = "HS256"
os.environ["AI_API_URL"] = "http://model.test/chat/completions"
os.environ["AI_API_KEY"] = "test-model-key"

from app.main import app  # noqa: E402
from app.core import models  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.chat_gateway.llm_client import get_model_client  # noqa: E402


class ScriptedModelClient:
    """Stands in for the hosted model: replays queued replies and records calls."""

    def __init__(self):
        self.replies = []
        self.calls = []

    def script(self, *replies):
        self.replies.extend(replies)
        return self

    async def complete(self, messages, temperature=0.1, max_tokens=None):
        self.calls.append(
            {"messages": messages, "temperature": temperature, "max_tokens": max_tokens}
        )
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


# Fresh in-memory database for every test
@pytest_asyncio.fixture(scope="function")
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine):
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def model_client():
    return ScriptedModelClient()


# Client
@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, model_client: ScriptedModelClient):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_model_client] = lambda: model_client

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def user_id():
    return f"user_{uuid.uuid4().hex[:12]}"


@pytest.fixture
def other_user_id():
    return f"user_{uuid.uuid4().hex[:12]}"


# Token for user
@pytest.fixture
def auth_headers(user_id):
    token = create_access_token({"user_id": user_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(other_user_id):
    token = create_access_token({"user_id": other_user_id})
    return {"Authorization": f"Bearer {token}"}


async def seed_finances(db: AsyncSession, owner: str, amounts):
    account = models.Account(id=uuid.uuid4().hex, name="Checking", user_id=owner)
    category = models.Category(id=uuid.uuid4().hex, name="Groceries", user_id=owner)
    db.add_all([account, category])
    for amount in amounts:
        db.add(
            models.Transaction(
                id=uuid.uuid4().hex,
                amount=amount,
                payee="Corner Market",
                date=datetime(2026, 9, 14, tzinfo=timezone.utc),
                account_id=account.id,
                category_id=category.id,
            )
        )
    await db.commit()
    return account, category


# Two users with their own grocery spending
@pytest_asyncio.fixture(scope="function")
async def finances(db_session: AsyncSession, user_id, other_user_id):
    await seed_finances(db_session, user_id, [-1250, -750, 300000])
    await seed_finances(db_session, other_user_id, [-99999])
