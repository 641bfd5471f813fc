from typing import List, Sequence, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docingest.exceptions import InvalidInputError
from docingest.logging_config import get_logger
from docingest.models.source import Source
from docingest.schemas.requests import DocumentSource

log = get_logger(__name__)


class SourceStore:

    async def append_sources(
        self,
        session: AsyncSession,
        document_id: str,
        sources: Sequence[Union[str, DocumentSource]],
    ) -> List[Source]:
        """
        Insert one row per entry, keeping the given order.
        No deduplication and no URL validation beyond rejecting empty strings;
        headers on structured sources are not stored.
        """
        rows = []
        for source in sources:
            url = source if isinstance(source, str) else source.url
            if not url:
                raise InvalidInputError("Source URL must be a non-empty string")
            rows.append(Source(document_id=document_id, url=url))

        session.add_all(rows)
        await session.flush()
        log.info("sources_appended", document_id=document_id, count=len(rows))
        return rows

    async def list_for_document(self, session: AsyncSession, document_id: str) -> List[Source]:
        result = await session.execute(
            select(Source).where(Source.document_id == document_id).order_by(Source.id.asc())
        )
        return list(result.scalars().all())
