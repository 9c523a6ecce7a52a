from collections.abc import AsyncIterator

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings
from app.database.models import Base


logger = structlog.get_logger(__name__)


def _create_engine(url: str) -> AsyncEngine:
    connect_args = {'timeout': 5} if url.startswith('sqlite') else {}
    return create_async_engine(url, echo=settings.DATABASE_ECHO, pool_pre_ping=True, connect_args=connect_args)


engine = _create_engine(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info('Database schema ensured', url=engine.url.render_as_string(hide_password=True))


async def close_db() -> None:
    await engine.dispose()
