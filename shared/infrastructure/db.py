"""
Database configuration and session management.
Uses SQLAlchemy 2.0 asyncio engine and sessions.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shared.config.settings import DATABASE_URL, settings


def _engine_options(url: str) -> dict:
    """
    Pool settings for server databases. SQLite (aiosqlite) uses its own
    pool and rejects size/overflow options.
    """
    options: dict = {
        "echo": settings.sql_echo,
        "pool_pre_ping": settings.pool_pre_ping,
    }
    if not url.startswith("sqlite"):
        options.update(
            pool_size=10,
            max_overflow=15,
            pool_timeout=30,  # Wait max 30s for connection from pool
            pool_recycle=settings.pool_recycle,
        )
    return options


# Create engine with connection pooling
engine = create_async_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Session factory
# expire_on_commit=False: entities stay readable after commit without
# triggering lazy IO outside an awaitable context.
SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            return (await db.scalars(select(Item))).all()

    The session is automatically closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        await db.close()


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions outside of FastAPI.

    Usage:
        async with get_db_context() as db:
            await db.scalars(select(Item))
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        await db.close()


async def safe_commit(db: AsyncSession) -> None:
    """
    Commit with automatic rollback on failure.

    Usage:
        from shared.infrastructure.db import safe_commit
        await safe_commit(db)

    Raises the original exception after rolling back.
    """
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
