import os

# Settings are read at import time, so the test database must be chosen first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "warning")

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import UTC, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

from tenure.api.deps import get_business_rules, get_now  # noqa: E402
from tenure.core import activity_logging  # noqa: E402
from tenure.db.session import (  # noqa: E402
    create_db_engine,
    create_session_maker,
    get_session,
    init_db,
)
from tenure.engine.rules import BusinessRules  # noqa: E402
from tenure.main import app  # noqa: E402
from tenure.tests.fixtures.settings import (  # noqa: E402, F401
    test_settings,
    test_settings_factory,
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Launch 2024-01-01 plus twelve months: payouts are open at this instant.
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)

# Small fund numbers so a handful of members can fill it.
TEST_RULES = BusinessRules(
    payout_threshold=Decimal("1000"),
    reward_per_winner=Decimal("500"),
    retention_fee=Decimal("50"),
)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def rules() -> BusinessRules:
    return TEST_RULES


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_db_engine(TEST_DATABASE_URL)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(
    engine: AsyncEngine, monkeypatch: pytest.MonkeyPatch
) -> async_sessionmaker[AsyncSession]:
    maker = create_session_maker(engine)
    monkeypatch.setattr(activity_logging, "async_session_maker", maker)
    return maker


@pytest.fixture
async def session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(
    session_maker: async_sessionmaker[AsyncSession],
    now: datetime,
    rules: BusinessRules,
) -> AsyncGenerator[AsyncClient, None]:
    async def get_session_override():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_now] = lambda: now
    app.dependency_overrides[get_business_rules] = lambda: rules
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
