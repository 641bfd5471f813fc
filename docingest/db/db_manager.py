import contextlib
from typing import AsyncIterator, Optional
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.sql import text
from docingest.config import get_settings
from docingest.models.base import Base
# Import models so they are registered with Base metadata
from docingest.models.vectorizer import Vectorizer
from docingest.models.document import Document
from docingest.models.task import Task
from docingest.models.source import Source
from docingest.models.file_chunk import FileChunk


def to_async_url(url: str) -> str:
    """Ensure we use an async driver for the configured database."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores REFERENCES clauses unless this pragma is set on every connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    def __init__(self, database_url: Optional[str] = None):
        self.settings = get_settings()
        url = to_async_url(database_url or self.settings.database_url)

        if url.startswith("sqlite"):
            self.engine = create_async_engine(url, echo=False)
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            # Fail fast instead of holding a flow open past the platform deadline
            timeout_ms = int(self.settings.timeout.db_seconds * 1000)
            self.engine = create_async_engine(
                url,
                echo=False,
                pool_size=5,
                max_overflow=10,
                connect_args={"options": f"-c statement_timeout={timeout_ms}"},
            )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            autoflush=False
        )

    async def init_db(self):
        """Initialize database: create all tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_db(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> bool:
        async with self.get_session() as session:
            await session.execute(text("SELECT 1"))
        return True

    @contextlib.asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """Provide a transactional scope around a series of operations."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def dispose(self):
        await self.engine.dispose()

# Global instance
db_manager = DatabaseManager()
