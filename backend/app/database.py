"""
Mom's Yums Backend - Database Session Management
==================================================

What:  Async SQLAlchemy engine, session factory, declarative Base and the
       per-request session dependency.
How:   The engine points at the Supabase Postgres database through asyncpg.
       get_db_session() commits when the handler returns and rolls back when
       it raises.
Who:   Route handlers via Depends(get_db_session); Alembic via Base.metadata.

The recipe store is only used through plain select / insert / update /
delete statements with equality filters and ordering, so any Postgres
works for local development (e.g. `supabase start` on port 54322).
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import Settings, settings


def engine_options(config: Settings) -> Dict[str, Any]:
    """Pool settings apply to Postgres only; SQLite URLs get the defaults."""
    options: Dict[str, Any] = {"echo": config.log_level == "DEBUG"}
    if config.database_url.startswith("postgresql"):
        options.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_pre_ping=config.db_pool_pre_ping,
            # Supabase's pooler drops idle connections; recycle before that
            pool_recycle=1800,
        )
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings))

# expire_on_commit=False: response models read attributes after the commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Shared metadata for the recipes and categories tables."""
    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request.

    Commit on success, rollback and re-raise on any error, always close.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()
