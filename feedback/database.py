import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .settings.config import settings

logger = logging.getLogger(__name__)

# sync driver prefix -> async driver prefix
_ASYNC_DRIVERS = {
    "postgresql+psycopg2://": "postgresql+asyncpg://",
    "postgresql+psycopg://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def async_database_url(url: str) -> str:
    """Point a configured URL at the async driver the engine needs."""
    url = (url or "").strip()
    for sync_prefix, async_prefix in _ASYNC_DRIVERS.items():
        if url.startswith(sync_prefix):
            return async_prefix + url[len(sync_prefix):]
    return url


def engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


DATABASE_URL = async_database_url(settings.DATABASE_URL)

engine = create_async_engine(DATABASE_URL, echo=False, **engine_options(DATABASE_URL))
async_session_maker = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
Base = declarative_base()


async def get_db():
    async with async_session_maker() as session:
        yield session


async def init_db():
    # dev convenience; Alembic owns the schema everywhere else
    if not settings.RUN_DB_CREATE_ALL:
        return
    logger.info("RUN_DB_CREATE_ALL set, creating tables")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
