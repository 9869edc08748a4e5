import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

import statuswatch.models  # noqa: F401  (registers every table on Base.metadata)
from statuswatch.db.database import Base


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Session factory bound to a throwaway SQLite file.

    A file (not :memory:) so that the separate sessions opened by the
    scheduler, evaluator and calculator all see the same data.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'statuswatch.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Database session for unit tests."""
    async with session_factory() as session:
        yield session
