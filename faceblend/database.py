"""Database connection and session management."""
import logging
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.engine.url import make_url
from faceblend.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Determine if we need SSL (for Heroku or other cloud databases)
connect_args = {}
needs_ssl = (
    "heroku" in settings.database_url or
    "amazonaws" in settings.database_url or
    (settings.environment == "production" and "sqlite" not in settings.database_url)
)

if needs_ssl:
    connect_args["ssl"] = "require"
    logger.debug("SSL connection enabled (ssl=require)")

engine_options = {
    "echo": False,
    "future": True,
    "connect_args": connect_args,
    "pool_pre_ping": True,  # Verify connections before use
}

# In-memory SQLite uses a static pool that rejects sizing arguments
if not make_url(settings.database_url).drivername.startswith("sqlite"):
    engine_options["pool_size"] = max(1, settings.db_pool_size)
    engine_options["max_overflow"] = max(0, settings.db_max_overflow)
    engine_options["pool_recycle"] = 3600

# Create async engine
try:
    engine = create_async_engine(settings.database_url, **engine_options)
    logger.debug("Database engine created successfully")
except Exception as e:
    logger.error(f"Failed to create database engine: {e}")
    raise

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


async def init_models() -> None:
    """Create any missing tables (the schema is a single key/value table)."""
    from faceblend.models import CacheEntry  # noqa: F401  (registers the table)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified")
