from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

Base = declarative_base()


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Build the async engine. SQLite URLs get a NullPool so that every
    session opens its own connection.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo, future=True, poolclass=NullPool)
    return create_async_engine(database_url, echo=echo, future=True, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


async def create_all(engine: AsyncEngine) -> None:
    # Imported for its side effect of registering the tables on Base
    from eminent_bank.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
