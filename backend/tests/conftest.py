"""
Model Export API - Test Configuration and Fixtures
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment before the app reads its settings
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'model_exports_test.db')}"
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['LOG_LEVEL'] = 'WARNING'
os.environ['LOG_FILE'] = ''

from app.main import app
from app.core.database import Base, get_db
from app.api.v1.endpoints.model_exports import get_model_export_service
from app.services.model_export_service import ModelExportService

fake = Faker()

START_TIME = datetime(2025, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)


class FakeClock:
    """Controllable replacement for the service clock"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database for each test"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Database session for service-level tests"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START_TIME)


@pytest.fixture
def export_service(clock: FakeClock) -> ModelExportService:
    """Service with the default TTL and quota and a controllable clock"""
    return ModelExportService(ttl=timedelta(hours=24), max_per_player=5, clock=clock)


@pytest_asyncio.fixture
async def client(session_factory, export_service) -> AsyncGenerator[AsyncClient, None]:
    """Test client with database and service overrides"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_model_export_service] = lambda: export_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def player_id() -> int:
    return fake.pyint(min_value=1, max_value=10_000_000)


@pytest.fixture
def serialized_model() -> str:
    """Opaque payload resembling a serialized model"""
    return fake.json(num_rows=3)
