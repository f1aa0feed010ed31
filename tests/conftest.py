"""
Pytest configuration and fixtures.
"""

import base64
import os
from collections.abc import AsyncGenerator
from io import BytesIO
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "true"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["DATABASE_ENABLED"] = "false"
os.environ["IDENTITY_URL"] = "https://identity.test"
os.environ["IDENTITY_ANON_KEY"] = "test-anon-key"
os.environ["MODERATION_ENABLED"] = "false"


# ============ App Fixtures ============


@pytest.fixture
def app():
    """FastAPI app with dependency overrides cleared after each test."""
    from api.main import app

    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """Synchronous test client (lifespan not started)."""
    return TestClient(app)


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Asynchronous test client sharing the test event loop."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


# ============ Mock Redis ============


class MockRedis:
    """Mock Redis client for testing (sorted sets only)."""

    def __init__(self):
        self._zsets: dict[str, dict[str, float]] = {}
        self._expiry: dict[str, int] = {}

    async def zadd(self, key: str, mapping: dict[str, float]) -> int:
        zset = self._zsets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update(mapping)
        return added

    async def zremrangebyscore(self, key: str, min: Any, max: Any) -> int:
        zset = self._zsets.get(key, {})

        def above_min(score: float) -> bool:
            if min == "-inf":
                return True
            return score >= float(min)

        def below_max(score: float) -> bool:
            if isinstance(max, str) and max.startswith("("):
                return score < float(max[1:])
            return score <= float(max)

        doomed = [m for m, s in zset.items() if above_min(s) and below_max(s)]
        for member in doomed:
            del zset[member]
        return len(doomed)

    async def zcard(self, key: str) -> int:
        return len(self._zsets.get(key, {}))

    async def expire(self, key: str, seconds: int) -> bool:
        self._expiry[key] = seconds
        return True

    async def ping(self) -> bool:
        return True

    def pipeline(self, transaction: bool = True):
        return MockPipeline(self)

    async def aclose(self):
        pass


class MockPipeline:
    """Mock Redis pipeline; commands run in order on execute()."""

    def __init__(self, redis: MockRedis):
        self._redis = redis
        self._commands = []

    def zremrangebyscore(self, key: str, min: Any, max: Any):
        self._commands.append(("zremrangebyscore", key, min, max))
        return self

    def zadd(self, key: str, mapping: dict[str, float]):
        self._commands.append(("zadd", key, mapping))
        return self

    def zcard(self, key: str):
        self._commands.append(("zcard", key))
        return self

    def expire(self, key: str, seconds: int):
        self._commands.append(("expire", key, seconds))
        return self

    async def execute(self):
        results = []
        for name, *args in self._commands:
            results.append(await getattr(self._redis, name)(*args))
        self._commands = []
        return results

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


@pytest.fixture
def mock_redis():
    """Create a mock Redis instance."""
    return MockRedis()


# ============ Database ============


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory bound to a fresh SQLite database with the full schema."""
    from database.models import Base

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    # Let SQLAlchemy own BEGIN so that SAVEPOINTs nest correctly
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def make_profile(session_factory):
    """Insert a profile with the given balance."""
    from database.models import Profile

    async def _make(user_id: str = "user-1", credits: int = 0) -> None:
        async with session_factory() as session:
            async with session.begin():
                session.add(Profile(id=user_id, email=f"{user_id}@example.com", credits=credits))

    return _make


# ============ Mock Services ============


@pytest.fixture
def identity():
    """A verified caller."""
    from core.auth import VerifiedIdentity

    return VerifiedIdentity(user_id="user-1", email="user-1@example.com")


@pytest.fixture
def mock_provider():
    """Mock generation provider whose job succeeds immediately."""
    from services.providers import ExternalJob, JobStatus

    mock = MagicMock()
    mock.name = "mock"
    mock.is_available = True
    mock.submit_job = AsyncMock(
        return_value=ExternalJob(job_id="job-1", status=JobStatus.QUEUED)
    )
    mock.get_job = AsyncMock(
        return_value=ExternalJob(
            job_id="job-1",
            status=JobStatus.SUCCEEDED,
            output_reference="https://cdn.example.com/out.png",
        )
    )
    return mock


@pytest.fixture
def mock_moderator():
    """Mock content moderator that allows everything."""
    mock = MagicMock()
    mock.check_image = AsyncMock(return_value=None)
    return mock


# ============ Test Settings ============


@pytest.fixture
def test_settings(monkeypatch):
    """Override settings for testing."""
    monkeypatch.setenv("ENVIRONMENT", "testing")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/15")
    monkeypatch.setenv("GOOGLE_API_KEY", "test-api-key")

    # Clear cached settings
    from core.config import get_settings

    get_settings.cache_clear()

    yield

    # Restore cached settings
    get_settings.cache_clear()


# ============ Test Data Fixtures ============


def make_png_bytes(size: tuple[int, int] = (8, 8)) -> bytes:
    """Encode a tiny solid PNG."""
    from PIL import Image

    buffer = BytesIO()
    Image.new("RGB", size, color="navy").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png_bytes()


@pytest.fixture
def png_base64(png_bytes) -> str:
    return base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def sample_generate_request(png_base64):
    """Sample portrait generation request."""
    return {
        "type": "portrait",
        "image": f"data:image/png;base64,{png_base64}",
        "constraints": {"outfitType": "blazer", "outfitColor": "grey"},
        "genderMode": "Ladies",
    }


@pytest.fixture
def auth_headers():
    """Sample authentication headers."""
    return {"Authorization": "Bearer test-opaque-token"}
