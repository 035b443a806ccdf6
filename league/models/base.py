"""Engine and session factory for the league database.

The check-in tables are normally owned by the league site; `init_db` only
creates whatever is missing, so it is safe to run against a live database.
"""
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

import config


class Base(DeclarativeBase):
    pass


def _engine_options(url: str) -> dict:
    # Server databases drop idle connections between check-in runs
    if make_url(url).get_backend_name() == "sqlite":
        return {}
    return {"pool_pre_ping": True}


engine = create_async_engine(config.DATABASE_URL, echo=False, **_engine_options(config.DATABASE_URL))

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Create any league tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
