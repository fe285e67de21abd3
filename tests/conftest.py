import os
import tempfile

# Set test environment
os.environ["DEBUG"] = "true"
os.environ["SECRET_KEY"] = "change-me-in-production"
os.environ["STORAGE_PATH"] = tempfile.mkdtemp(prefix="stylebook_test_")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["AI_BASE_URL"] = ""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from io import BytesIO
from typing import Any
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stylebook.utils.auth import create_access_token
from stylebook.database import Base, get_db
from stylebook.exceptions import ExternalServiceError
from stylebook.main import app
from stylebook.models import ClothingItem, User
from stylebook.services.ai_service import AIService, get_ai_service

# In-memory SQLite shared across connections; every test gets a fresh schema
TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FakeAIService(AIService):
    """AI gateway that answers from a queue of canned model outputs."""

    def __init__(self):
        super().__init__(endpoints=[])
        self.responses: list[str | Exception] = []
        self.calls: list[str] = []
        self.image: bytes | None = None

    def queue(self, *responses: str | Exception) -> None:
        self.responses.extend(responses)

    async def _call_with_fallback(
        self,
        messages: list,
        task_name: str,
        use_vision_model: bool = False,
        temperature: float | None = None,
    ) -> str:
        self.calls.append(task_name)
        if not self.responses:
            raise ExternalServiceError(f"No canned response for {task_name}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def generate_image(self, visual_prompt: str) -> bytes | None:
        self.calls.append("image")
        return self.image

    async def check_health(self) -> dict:
        return {"status": "healthy", "endpoints": []}


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create async engine for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session


@pytest.fixture
def fake_ai() -> FakeAIService:
    return FakeAIService()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession, fake_ai: FakeAIService
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database session and AI overrides."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_service] = lambda: fake_ai

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user with unique identifiers."""
    unique_id = uuid4()
    user = User(
        id=unique_id,
        external_id=f"test-user-{unique_id}",
        email=f"test-{unique_id}@example.com",
        display_name="Test User",
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def auth_headers(test_user: User) -> dict[str, str]:
    """Create authorization headers for authenticated requests."""
    token = create_access_token(test_user.external_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_item(db_session: AsyncSession):
    """
    Factory for catalog items. Items made later get a later ``created_at``
    so newest-first ordering is deterministic.
    """
    base_time = datetime(2024, 1, 1, tzinfo=UTC)
    counter = {"n": 0}

    async def _make(user: User, **fields: Any) -> ClothingItem:
        counter["n"] += 1
        values = {
            "category": "top",
            "colors": [],
            "season": [],
            "style": [],
            "description": "",
            "image_path": f"{user.id}/item_{counter['n']}.jpg",
            "created_at": base_time + timedelta(minutes=counter["n"]),
        }
        values.update(fields)
        item = ClothingItem(user_id=user.id, **values)
        db_session.add(item)
        await db_session.commit()
        await db_session.refresh(item)
        return item

    return _make


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG."""
    buffer = BytesIO()
    Image.new("RGB", (64, 48), (30, 60, 200)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def outfit_json() -> str:
    """Canned outfit answer from the text model."""
    return """{
        "outfit": {
            "top": "blue oxford shirt",
            "bottom": "grey chinos",
            "shoes": "white sneakers",
            "outerwear": null,
            "accessories": []
        },
        "reasoning": "Relaxed and clean",
        "tips": ["Roll the sleeves"],
        "visualPrompt": "A model in a blue shirt and grey chinos"
    }"""
