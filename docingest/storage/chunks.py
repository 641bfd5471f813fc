"""
Chunked content storage.

Content larger than a per-record threshold is split into fixed-size
file_chunks rows and reassembled on read. Splitting is purely
length-based and may cut mid-word: the payload is raw transfer content,
not a retrieval unit.
"""
import math
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docingest.exceptions import InvalidInputError
from docingest.logging_config import get_logger
from docingest.models.document import Document
from docingest.models.file_chunk import FileChunk

log = get_logger(__name__)


def split_content(content: str, threshold: int) -> List[str]:
    """
    Split content into ceil(len/threshold) slices of exactly `threshold`
    characters; the last slice may be shorter. Empty content yields no slices.
    """
    if threshold <= 0:
        raise InvalidInputError(f"threshold must be positive, got {threshold}")
    count = math.ceil(len(content) / threshold)
    return [content[i * threshold:(i + 1) * threshold] for i in range(count)]


class ChunkedContentStore:

    async def write(
        self,
        session: AsyncSession,
        document_id: str,
        content: str,
        threshold: int,
    ) -> int:
        """
        Store content for an existing document.

        Inline on documents.content when it fits the threshold, otherwise
        as file_chunks rows with documents.content cleared.

        Returns:
            Number of chunk rows written (0 when stored inline).
        """
        if threshold <= 0:
            raise InvalidInputError(f"threshold must be positive, got {threshold}")

        if len(content) <= threshold:
            await session.execute(
                update(Document).where(Document.id == document_id).values(content=content)
            )
            log.debug("content_stored_inline", document_id=document_id, length=len(content))
            return 0

        await session.execute(
            update(Document).where(Document.id == document_id).values(content=None)
        )
        pieces = split_content(content, threshold)
        await self.save_chunks(session, document_id, enumerate(pieces))
        log.info(
            "content_stored_chunked",
            document_id=document_id,
            length=len(content),
            chunks=len(pieces),
            threshold=threshold,
        )
        return len(pieces)

    async def save_chunks(
        self,
        session: AsyncSession,
        document_id: str,
        pieces: Iterable[Tuple[int, str]],
    ) -> None:
        """Insert (chunk_index, content) pairs in the order given."""
        session.add_all([
            FileChunk(document_id=document_id, chunk_index=index, content=piece)
            for index, piece in pieces
        ])
        await session.flush()

    async def read(self, session: AsyncSession, document_id: str) -> Optional[str]:
        """
        Inline content if present, else the chunks ordered by chunk_index
        and concatenated, else None.
        """
        result = await session.execute(
            select(Document.content).where(Document.id == document_id)
        )
        inline = result.scalar_one_or_none()
        if inline is not None:
            return inline

        result = await session.execute(
            select(FileChunk.content)
            .where(FileChunk.document_id == document_id)
            .order_by(FileChunk.chunk_index.asc())
        )
        pieces = result.scalars().all()
        if not pieces:
            return None
        return "".join(pieces)

    async def chunk_count(self, session: AsyncSession, document_id: str) -> int:
        result = await session.execute(
            select(func.count()).select_from(FileChunk).where(FileChunk.document_id == document_id)
        )
        return result.scalar_one()
