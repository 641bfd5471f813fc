import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from docingest.exceptions import StorageException
from docingest.logging_config import get_logger
from docingest.models.document import Document

log = get_logger(__name__)


class DocumentStore:

    async def create(
        self,
        session: AsyncSession,
        name: str,
        doc_format: str,
        pages: int,
        content: Optional[str] = None,
        vectorizer_id: Optional[str] = None,
        document_id: Optional[str] = None,
    ) -> Document:
        document = Document(
            id=document_id or str(uuid.uuid4()),
            name=name,
            format=doc_format,
            pages=pages,
            content=content,
            vectorizer_id=vectorizer_id,
        )
        session.add(document)
        await session.flush()
        log.info("document_created", document_id=document.id, name=name, pages=pages)
        return document

    async def get(self, session: AsyncSession, document_id: str) -> Optional[Document]:
        return await session.get(Document, document_id)

    async def link_vectorizer(self, session: AsyncSession, document_id: str, vectorizer_id: str) -> Document:
        document = await self.get(session, document_id)
        if document is None:
            raise StorageException(f"Document not found: {document_id}")
        document.vectorizer_id = vectorizer_id
        await session.flush()
        return document
