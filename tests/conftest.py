"""
Pytest configuration and shared fixtures.
"""
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import neuracoin.models  # noqa: F401
from neuracoin.api.deps import get_locks, get_market
from neuracoin.database import Base, get_db
from neuracoin.main import app
from neuracoin.services.locks import UserLockRegistry
from neuracoin.services.market_data import StaticMarketData
from neuracoin.services.portfolio_service import PortfolioService
from neuracoin.services.trade_service import TradeService

TEST_USER = "user_test"


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database file per test"""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def market():
    return StaticMarketData()


@pytest.fixture
def locks():
    return UserLockRegistry()


@pytest.fixture
def trades(db, market, locks):
    return TradeService(db, market, locks)


@pytest.fixture
def portfolio(db, market, locks):
    return PortfolioService(db, market, locks)


@pytest.fixture
async def funded_user(trades):
    """User with a freshly opened wallet holding the welcome bonus"""
    await trades.initialize(TEST_USER)
    return TEST_USER


@pytest.fixture
async def client(session_factory, market, locks):
    """Async HTTP client for testing FastAPI endpoints."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_market] = lambda: market
    app.dependency_overrides[get_locks] = lambda: locks

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
