from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ..core.config import settings


def build_engine(url: str = None, testing: bool = None):
    """Create the async engine for the configured database"""
    testing = settings.TESTING if testing is None else testing
    if testing:
        # In-memory SQLite shared across the connections of one engine
        return create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    url = url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        return create_async_engine(url, connect_args={"check_same_thread": False}, echo=False)
    return create_async_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_size=10,
        max_overflow=20,
        echo=False,
    )


engine = build_engine()

# Create session factory
SessionLocal = async_sessionmaker(engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


async def create_tables(bind=None) -> None:
    """Create all tables; used by local runs and tests, migrations own production"""
    from .models import Base
    from ..infrastructure import orm  # noqa: F401  registers the models

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    """Dependency to get database session."""
    async with SessionLocal() as session:
        yield session
