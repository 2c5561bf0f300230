from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from tftmeta.config import Config
from tftmeta.database.models import Base
from tftmeta.utils.logger import setup_logger


def to_async_url(database_url: str) -> str:
    """Convert sync driver URLs to their async equivalents"""
    if database_url.startswith('sqlite:///'):
        return database_url.replace('sqlite:///', 'sqlite+aiosqlite:///', 1)
    if database_url == 'sqlite://':
        return 'sqlite+aiosqlite://'
    return database_url


class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = database_url or Config.DATABASE_URL
        self.engine = None
        self.async_session = None

    async def initialize(self):
        """Initialize the database connection and create tables"""
        self.logger.info("Initializing database...")

        self.engine = create_async_engine(
            to_async_url(self.database_url),
            echo=Config.DEBUG,
            future=True
        )

        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.logger.info("Database initialized successfully")

    @property
    def session_factory(self):
        return self.async_session

    @asynccontextmanager
    async def get_session(self):
        """Get a database session"""
        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    @asynccontextmanager
    async def transaction(self):
        """
        Create a transaction boundary for atomic operations.

        Everything done with the yielded session commits together on success
        or rolls back together on failure. Exceptions must propagate out of
        the context for the rollback to happen.
        """
        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()
