"""
Vectorizer profile registry.

One row per model name. get_or_create relies on the unique constraint on
vectorizers.model_name: the insert is ON CONFLICT DO NOTHING, and a writer
that inserted nothing lost the race and reads the winner's row instead.
"""
import asyncio
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from docingest.config import VectorizerSettings, get_settings
from docingest.exceptions import VectorizerConflictError
from docingest.logging_config import get_logger
from docingest.models.base import utcnow
from docingest.models.vectorizer import Vectorizer

log = get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# Bootstrap retries cover a database that is still starting up
BOOTSTRAP_ATTEMPTS = 3


class VectorizerRegistry:

    def __init__(self, settings: Optional[VectorizerSettings] = None):
        self.settings = settings or get_settings().vectorizer

    async def lookup(self, session: AsyncSession, model_name: str) -> Optional[Vectorizer]:
        result = await session.execute(
            select(Vectorizer).where(Vectorizer.model_name == model_name)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        session: AsyncSession,
        model_name: str,
        engine_type: Optional[str] = None,
        chunk_size: Optional[int] = None,
        ocr_engine: Optional[str] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> Vectorizer:
        """Plain insert. Raises IntegrityError if the model name already exists."""
        vectorizer = Vectorizer(id=str(uuid.uuid4()), **self._values(
            model_name, engine_type, chunk_size, ocr_engine, parameters
        ))
        session.add(vectorizer)
        await session.flush()
        log.info("vectorizer_created", model_name=model_name, vectorizer_id=vectorizer.id)
        return vectorizer

    async def get_or_create(
        self,
        session: AsyncSession,
        model_name: str,
        engine_type: Optional[str] = None,
        chunk_size: Optional[int] = None,
        ocr_engine: Optional[str] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> Vectorizer:
        """
        Return the vectorizer for model_name, creating it if needed.

        Safe under concurrent callers for the same unseen model name:
        exactly one row is persisted and every caller gets its id.
        """
        existing = await self.lookup(session, model_name)
        if existing is not None:
            return existing

        dialect = session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise VectorizerConflictError(f"get_or_create is not supported on dialect '{dialect}'")

        vectorizer_id = str(uuid.uuid4())
        now = utcnow()
        stmt = (
            insert(Vectorizer)
            .values(
                id=vectorizer_id,
                created_at=now,
                updated_at=now,
                **self._values(model_name, engine_type, chunk_size, ocr_engine, parameters),
            )
            .on_conflict_do_nothing(index_elements=[Vectorizer.model_name])
        )
        result = await session.execute(stmt)

        if result.rowcount == 0:
            log.info("vectorizer_create_conflict", model_name=model_name)
        else:
            log.info("vectorizer_created", model_name=model_name, vectorizer_id=vectorizer_id)

        vectorizer = await self.lookup(session, model_name)
        if vectorizer is None:
            raise VectorizerConflictError(
                f"Vectorizer for model '{model_name}' conflicted but could not be read back"
            )
        return vectorizer

    async def list_all(self, session: AsyncSession) -> List[Vectorizer]:
        result = await session.execute(
            select(Vectorizer).order_by(Vectorizer.created_at.desc())
        )
        return list(result.scalars().all())

    async def ensure_default(self, db, model_name: Optional[str] = None) -> Optional[Vectorizer]:
        """
        Make sure a vectorizer exists for the default model.

        Best-effort: runs in its own session and never raises; failures are logged.
        """
        model_name = model_name or self.settings.default_model
        try:
            vectorizer = await self._ensure_default_with_retry(db, model_name)
            log.info("default_vectorizer_ready", model_name=model_name, vectorizer_id=vectorizer.id)
            return vectorizer
        except Exception as e:
            log.error("default_vectorizer_failed", model_name=model_name, error=str(e))
            return None

    @retry(
        stop=stop_after_attempt(BOOTSTRAP_ATTEMPTS),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception_type(OperationalError),
        reraise=True,
    )
    async def _ensure_default_with_retry(self, db, model_name: str) -> Vectorizer:
        async with db.get_session() as session:
            return await self.get_or_create(session, model_name)

    def _values(self, model_name, engine_type, chunk_size, ocr_engine, parameters) -> Dict[str, Any]:
        return {
            "model_name": model_name,
            "engine_type": engine_type or self.settings.engine_type,
            "chunk_size": chunk_size or self.settings.chunk_size,
            "ocr_engine": ocr_engine or self.settings.ocr_engine,
            "parameters": parameters if parameters is not None else self.settings.default_parameters(),
        }


class DefaultVectorizerBootstrap:
    """
    Runs ensure_default once per process as a background task.

    start() returns immediately; the caller never waits on or sees the result.
    """

    def __init__(self, registry: VectorizerRegistry, db, model_name: Optional[str] = None):
        self.registry = registry
        self.db = db
        self.model_name = model_name
        self._task: Optional[asyncio.Task] = None

    @property
    def started(self) -> bool:
        return self._task is not None

    def start(self) -> Optional[asyncio.Task]:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self.registry.ensure_default(self.db, self.model_name)
            )
        return self._task

    async def wait(self) -> Optional[Vectorizer]:
        """Await the bootstrap (startup hooks and tests)."""
        task = self.start()
        return await task
