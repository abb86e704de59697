import pytest
from datetime import datetime, timedelta, timezone
from fakeredis import FakeAsyncRedis, FakeServer
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from flashsale.app import app
from flashsale.db.base import Base
from flashsale.db.session import get_db_session
from flashsale.redis import get_redis
from flashsale.schemas.flash_sale import FlashSaleCreate
from flashsale.services.flash_sale import FlashSaleService


@pytest.fixture
async def db_engine(tmp_path):
    # file backed so every session holds its own connection and transaction
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine):
    """Factory to create multiple sessions for concurrent tests."""
    return async_sessionmaker(
        bind=db_engine,
        expire_on_commit=False,
        autoflush=False
    )


@pytest.fixture
async def db_session(db_session_factory):
    async with db_session_factory() as session:
        yield session


@pytest.fixture
async def redis_client():
    """
    In-process redis. Each test gets its own server, the reservation Lua script runs through lupa.
    """
    redis = FakeAsyncRedis(server=FakeServer(), decode_responses=True)
    yield redis
    await redis.aclose()


@pytest.fixture
def service():
    return FlashSaleService()


@pytest.fixture
def make_sale(service, redis_client):
    """Create a sale whose window is given relative to now."""
    async def _make_sale(total_stock=10, starts_in=timedelta(minutes=-30), lasts=timedelta(hours=1),
                         product_name="Limited Edition Gaming Headset"):
        now = datetime.now(timezone.utc)
        return await service.create_flash_sale(FlashSaleCreate(
            product_name=product_name,
            total_stock=total_stock,
            start_time=now + starts_in,
            end_time=now + starts_in + lasts,
        ), redis_client)
    return _make_sale


@pytest.fixture
async def client(redis_client, db_session_factory):
    async def override_get_redis():
        yield redis_client

    async def override_get_db_session():
        async with db_session_factory() as session:
            yield session

    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_db_session] = override_get_db_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
