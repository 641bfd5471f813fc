"""
Ingestion flows.

Composes the stores into the three ingestion flows (URL-sync, file-sync,
URL-async), task status/progress, and result retrieval.

Each flow validates its input before touching the database, then runs all
of its writes in one transaction under a hard deadline: either every row
of the flow is committed or none is.
"""
import asyncio
import json
import uuid
from typing import Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docingest.config import Settings, get_settings
from docingest.db.db_manager import DatabaseManager, db_manager
from docingest.exceptions import (
    IngestionException,
    InvalidInputError,
    PayloadTooLargeError,
    StorageException,
    TaskNotFoundError,
)
from docingest.ingestion.conversion import (
    ConversionEngine,
    ConversionOptions,
    PlainTextConversionEngine,
)
from docingest.logging_config import get_logger, log_context
from docingest.models.document import Document
from docingest.models.task import Task, TaskStatus
from docingest.observability import Phase, set_trace_metadata, track
from docingest.schemas.records import VectorizerRecord
from docingest.schemas.requests import (
    ConvertByFileRequest,
    ConvertBySourceRequest,
    ProgressCallbackRequest,
)
from docingest.schemas.responses import (
    ConvertDocumentResponse,
    DocumentResult,
    ProgressCallbackResponse,
    TaskStatusResponse,
)
from docingest.storage import (
    ChunkedContentStore,
    DefaultVectorizerBootstrap,
    DocumentStore,
    SourceStore,
    TaskStore,
    VectorizerRegistry,
)

log = get_logger(__name__)

T = TypeVar("T")

URL_DOCUMENT_NAME = "url-document"
ASYNC_DOCUMENT_NAME = "async-document"
URL_DOCUMENT_FORMAT = "json"
URL_PLACEHOLDER_CONTENT = json.dumps({"source": "url"})

MSG_SOURCE_STARTED = "Document conversion started"
MSG_FILES_PROCESSED = "Files processed successfully"
MSG_QUEUED = "Document conversion queued"


class IngestionOrchestrator:

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        settings: Optional[Settings] = None,
        conversion_engine: Optional[ConversionEngine] = None,
    ):
        self.db = db or db_manager
        self.settings = settings or get_settings()
        self.conversion_engine = conversion_engine or PlainTextConversionEngine()

        self.documents = DocumentStore()
        self.tasks = TaskStore(strict_transitions=self.settings.ingestion.strict_task_transitions)
        self.sources = SourceStore()
        self.content = ChunkedContentStore()
        self.vectorizers = VectorizerRegistry(self.settings.vectorizer)
        self.bootstrap = DefaultVectorizerBootstrap(
            self.vectorizers, self.db, self.settings.vectorizer.default_model
        )

    # --- Ingestion flows ---

    @track(name="convert_source", phase=Phase.INGESTION)
    async def convert_source(self, request: ConvertBySourceRequest) -> ConvertDocumentResponse:
        """URL-sourced, synchronous: record the document, its sources and a completed task."""
        urls = self._require_sources(request)
        task_id, document_id = str(uuid.uuid4()), str(uuid.uuid4())

        async def write(session: AsyncSession) -> None:
            await self.documents.create(
                session,
                name=URL_DOCUMENT_NAME,
                doc_format=URL_DOCUMENT_FORMAT,
                pages=len(urls),
                content=URL_PLACEHOLDER_CONTENT,
                document_id=document_id,
            )
            await self.tasks.create(session, task_id, TaskStatus.COMPLETED, document_id, MSG_SOURCE_STARTED)
            await self.sources.append_sources(session, document_id, request.sources)

        with log_context(task_id=task_id, flow="convert_source"):
            await self._run_flow("convert_source", write)
            set_trace_metadata({"task_id": task_id, "document_id": document_id})

        self._start_bootstrap()
        return ConvertDocumentResponse(
            task_id=task_id,
            status=TaskStatus.COMPLETED,
            message=MSG_SOURCE_STARTED,
            result=DocumentResult(document_id=document_id, pages=len(urls), format=URL_DOCUMENT_FORMAT),
        )

    @track(name="convert_file", phase=Phase.INGESTION)
    async def convert_file(self, request: ConvertByFileRequest) -> ConvertDocumentResponse:
        """File-sourced, synchronous: store the converted text and link a vectorizer."""
        ingestion = self.settings.ingestion
        if not request.files:
            raise InvalidInputError("No files provided")

        limit = ingestion.max_file_size_bytes
        for upload in request.files:
            if upload.size > limit:
                raise PayloadTooLargeError(
                    f"File '{upload.filename}' exceeds the {ingestion.max_file_size_mb:g} MB limit",
                    limit_bytes=limit,
                )

        upload = request.files[0]
        fmt = request.format or ingestion.default_format
        model_name = request.model or self.settings.vectorizer.default_model
        ocr_engine = request.ocr_engine or self.settings.vectorizer.ocr_engine
        task_id, document_id = str(uuid.uuid4()), str(uuid.uuid4())

        with log_context(task_id=task_id, flow="convert_file"):
            # Conversion happens before the transaction so a failure leaves no rows
            text = await self.conversion_engine.convert(
                upload,
                ConversionOptions(
                    enable_ocr=request.enable_ocr,
                    ocr_engine=ocr_engine,
                    max_pages=request.max_pages or ingestion.max_num_pages,
                ),
            )

            async def write(session: AsyncSession) -> int:
                await self.documents.create(
                    session,
                    name=upload.filename,
                    doc_format=fmt,
                    pages=len(request.files),
                    document_id=document_id,
                )
                chunks = await self.content.write(session, document_id, text, ingestion.chunk_threshold)
                vectorizer = await self.vectorizers.get_or_create(session, model_name, ocr_engine=ocr_engine)
                await self.documents.link_vectorizer(session, document_id, vectorizer.id)
                await self.tasks.create(session, task_id, TaskStatus.COMPLETED, document_id, MSG_FILES_PROCESSED)
                return chunks

            chunks = await self._run_flow("convert_file", write)
            log.info("file_ingested", file_name=upload.filename, length=len(text), chunks=chunks)
            set_trace_metadata({"task_id": task_id, "document_id": document_id, "chunks": chunks})

        self._start_bootstrap()
        return ConvertDocumentResponse(
            task_id=task_id,
            status=TaskStatus.COMPLETED,
            message=MSG_FILES_PROCESSED,
            result=DocumentResult(document_id=document_id, pages=len(request.files), format=fmt),
        )

    @track(name="convert_source_async", phase=Phase.INGESTION)
    async def convert_source_async(self, request: ConvertBySourceRequest) -> TaskStatusResponse:
        """
        URL-sourced, asynchronous: queue a pending task.
        Nothing in this process advances it; an external worker reports
        progress through report_progress.
        """
        urls = self._require_sources(request)
        options = request.options
        model_name = (options and options.model) or self.settings.vectorizer.default_model
        ocr_engine = (options and options.ocr_engine) or self.settings.vectorizer.ocr_engine
        task_id, document_id = str(uuid.uuid4()), str(uuid.uuid4())

        async def write(session: AsyncSession) -> None:
            vectorizer = await self.vectorizers.get_or_create(session, model_name, ocr_engine=ocr_engine)
            await self.documents.create(
                session,
                name=ASYNC_DOCUMENT_NAME,
                doc_format=URL_DOCUMENT_FORMAT,
                pages=len(urls),
                vectorizer_id=vectorizer.id,
                document_id=document_id,
            )
            await self.tasks.create(session, task_id, TaskStatus.PENDING, document_id, MSG_QUEUED)
            await self.sources.append_sources(session, document_id, request.sources)

        with log_context(task_id=task_id, flow="convert_source_async"):
            await self._run_flow("convert_source_async", write)
            set_trace_metadata({"task_id": task_id, "document_id": document_id})

        self._start_bootstrap()
        return TaskStatusResponse(task_id=task_id, status=TaskStatus.PENDING, message=MSG_QUEUED)

    # --- Task status ---

    @track(name="poll_status", phase=Phase.STATUS)
    async def poll_status(self, task_id: str) -> TaskStatusResponse:
        async def read(session: AsyncSession) -> Task:
            return await self.tasks.read(session, task_id)

        task = await self._run_flow("poll_status", read)
        return self._status_response(task)

    @track(name="report_progress", phase=Phase.STATUS)
    async def report_progress(self, request: ProgressCallbackRequest) -> ProgressCallbackResponse:
        """Apply a progress callback to its task (coalescing omitted fields)."""
        async def update(session: AsyncSession) -> Task:
            return await self.tasks.update_progress(
                session,
                request.task_id,
                progress=request.progress,
                message=request.message,
                error=request.error,
                status=request.status,
            )

        with log_context(task_id=request.task_id, flow="report_progress"):
            task = await self._run_flow("report_progress", update)

        return ProgressCallbackResponse(success=True, task_id=task.id, progress=task.progress)

    # --- Results ---

    @track(name="get_result", phase=Phase.RETRIEVAL)
    async def get_result(self, task_id: str) -> ConvertDocumentResponse:
        """Task joined with its document; content reassembled from chunks when not inline."""
        async def read(session: AsyncSession):
            result = await session.execute(
                select(Task, Document)
                .join(Document, Task.document_id == Document.id)
                .where(Task.id == task_id)
            )
            row = result.first()
            if row is None:
                raise TaskNotFoundError(task_id)
            task, document = row
            content = await self.content.read(session, document.id)
            return task, document, content

        task, document, content = await self._run_flow("get_result", read)
        response = self._status_response(task)
        return ConvertDocumentResponse(
            **response.model_dump(),
            result=DocumentResult(
                document_id=document.id,
                pages=document.pages,
                format=document.format,
                content={"text": content} if content is not None else None,
            ),
        )

    async def list_vectorizers(self) -> List[VectorizerRecord]:
        async def read(session: AsyncSession):
            return await self.vectorizers.list_all(session)

        rows = await self._run_flow("list_vectorizers", read)
        return [VectorizerRecord.model_validate(row) for row in rows]

    # --- Helpers ---

    def _require_sources(self, request: ConvertBySourceRequest) -> List[str]:
        urls = request.source_urls()
        if not urls:
            raise InvalidInputError("Invalid sources provided")
        if any(not url for url in urls):
            raise InvalidInputError("Source URL must be a non-empty string")
        return urls

    def _start_bootstrap(self) -> None:
        """Called once a flow's response is ready, so a failed flow never schedules it."""
        if self.settings.vectorizer.bootstrap_default:
            self.bootstrap.start()

    async def _run_flow(self, name: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """
        Run `work` in one transaction with the configured deadline.
        Domain errors pass through; database errors and timeouts become
        StorageException. Either way the transaction is rolled back.
        """
        deadline = self.settings.timeout.flow_seconds

        async def transaction() -> T:
            async with self.db.get_session() as session:
                return await work(session)

        try:
            return await asyncio.wait_for(transaction(), timeout=deadline)
        except (IngestionException, StorageException):
            raise
        except asyncio.TimeoutError:
            log.error("flow_timed_out", flow=name, deadline_seconds=deadline)
            raise StorageException(f"{name} exceeded its {deadline:g}s deadline; no changes were saved")
        except SQLAlchemyError as e:
            log.error("flow_storage_failed", flow=name, error=str(e))
            raise StorageException(f"Database error: {e}")

    @staticmethod
    def _status_response(task: Task) -> TaskStatusResponse:
        return TaskStatusResponse(
            task_id=task.id,
            status=TaskStatus(task.status),
            message=task.message,
            progress=task.progress,
            error=task.error,
        )
