# src/db/database.py
from core.config import settings
from fastapi import HTTPException
from typing import AsyncGenerator, Dict, Any
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
from sqlalchemy.pool import NullPool
from utils.logger import setup_logger

logger = setup_logger("DATABASE")


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.DEBUG, "pool_pre_ping": True}

    if settings.SQLITE_MODE:
        options["connect_args"] = {"check_same_thread": False}
        return options

    if settings.ENVIRONMENT == "testing":
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=20,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=3600,
        )
    options["connect_args"] = {
        "server_settings": {
            "jit": "off",
            "application_name": "dental_sync",
        },
    }
    return options


# Create SQLAlchemy engine with async support
engine = create_async_engine(settings.DATABASE_URL, **_engine_options())

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a request-scoped database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()

        except HTTPException:
            await session.rollback()
            raise

        except Exception as exc:
            await session.rollback()
            logger.error(f"Database session error: {exc}", exc_info=True)
            raise


async def create_tables():
    """Create all tables from the ORM metadata"""
    # Register every model on Base.metadata
    import models  # noqa: F401

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise


async def check_db_connection() -> bool:
    """Check database connection health"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


async def disconnect_db():
    """Disconnect from database"""
    await engine.dispose()
