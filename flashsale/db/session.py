from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from flashsale.core.config import settings
from flashsale.db.base import Base
import flashsale.db.models  # noqa: F401  registers the ledger tables on Base.metadata

engine = create_async_engine(
    url=settings.DATABASE_URL,
    echo=False,
    future=True,
    pool_pre_ping=True
)


async_session_factory = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False
)


async def get_db_session():
    """
    FastAPI dependency that provides an async DB session
    and ensures it's closed after the request.
    """

    async with async_session_factory() as session:
        yield session


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    await engine.dispose()
