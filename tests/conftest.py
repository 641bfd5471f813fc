"""
Shared fixtures.

Store and orchestrator tests run against a throwaway SQLite file per test
(aiosqlite) with foreign keys switched on, so it enforces the same unique
and reference constraints as Postgres.
"""
import os

# Must be set before opik is imported
os.environ.setdefault("OPIK_TRACK_DISABLE", "true")

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from docingest.config import IngestionSettings, Settings, VectorizerSettings
from docingest.db.db_manager import DatabaseManager
from docingest.ingestion.orchestrator import IngestionOrchestrator
from docingest.storage import DocumentStore


@pytest_asyncio.fixture
async def db(tmp_path):
    """Fresh database with all tables created."""
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'docingest.sqlite'}")
    await manager.init_db()
    yield manager
    await manager.dispose()


@pytest.fixture
def settings():
    """Settings with the default-vectorizer bootstrap off so row counts are predictable."""
    return Settings(
        ingestion=IngestionSettings(chunk_threshold=1000, max_file_size_mb=5),
        vectorizer=VectorizerSettings(bootstrap_default=False),
    )


@pytest_asyncio.fixture
async def orchestrator(db, settings):
    orch = IngestionOrchestrator(db=db, settings=settings)
    yield orch
    if orch.bootstrap.started:
        await orch.bootstrap.wait()


@pytest_asyncio.fixture
async def document_id(db):
    """An existing document to hang tasks, sources and chunks off."""
    async with db.get_session() as session:
        document = await DocumentStore().create(session, name="fixture.txt", doc_format="json", pages=1)
    return document.id


@pytest.fixture
def count_rows(db):
    """Async helper: count rows of a model, optionally filtered."""
    async def _count(model, *where) -> int:
        stmt = select(func.count()).select_from(model)
        if where:
            stmt = stmt.where(*where)
        async with db.get_session() as session:
            result = await session.execute(stmt)
            return result.scalar_one()
    return _count
