from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from marketplace.config import Settings

DATABASE_URL = Settings.POSTGRES_URL

engine = create_async_engine(
    DATABASE_URL,
    pool_size=Settings.DB_POOL_SIZE,
    max_overflow=Settings.DB_MAX_OVERFLOW,
    echo=Settings.DB_ECHO,
)

# session factory
async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


class Base(DeclarativeBase):
    """Base class for ORM models"""
    pass


async def init_db():
    """Create the schema on first start"""
    # models register themselves on Base.metadata at import
    from marketplace.models import auth, offers, product, transactions  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncSession:
    async with async_session() as session:
        yield session
