from contextlib import asynccontextmanager
from datetime import datetime, timezone
import os

import structlog
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from shared.errors import StorageFailureError

load_dotenv()

logger = structlog.get_logger(__name__)

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "marketplace")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

engine = create_async_engine(DATABASE_URL, echo=os.getenv("SQL_ECHO", "false").lower() == "true")

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


async def create_tables(bind=None):
    """Create every table registered on Base. Models must be imported first."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def unit_of_work(db: AsyncSession, operation: str):
    """
    Commit everything done inside the block, or nothing.

    Business errors roll back and propagate unchanged. Driver/ORM errors roll
    back and surface as StorageFailureError so callers never see a half-applied
    write.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("storage_failure", operation=operation)
        raise StorageFailureError(f"Failed to {operation}") from exc
    except Exception:
        await db.rollback()
        raise


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
