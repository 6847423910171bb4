"""SQLAlchemy async database setup."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from storycatalog.config import get_settings
from storycatalog.domain.errors import ConflictError, StorageUnavailableError

settings = get_settings()

# Create async engine with connection pooling
engine = create_async_engine(
    settings.database_url,
    echo=not settings.is_production,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    pool_pre_ping=True,
)

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI to get database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def storage_errors() -> AsyncIterator[None]:
    """Translate driver-level failures into catalog errors."""
    try:
        yield
    except IntegrityError as e:
        raise ConflictError(str(e.orig)) from e
    except (OperationalError, InterfaceError) as e:
        raise StorageUnavailableError(str(e.orig)) from e
