from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from docingest.models.base import Base, utcnow

class FileChunk(Base):
    """
    One ordered slice of a document's raw content.
    Ordered by chunk_index and concatenated, the rows of a document
    reproduce the stored content exactly.
    """
    __tablename__ = "file_chunks"
    __table_args__ = (
        UniqueConstraint("document_id", "chunk_index", name="uq_file_chunks_document_chunk"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(String(36), ForeignKey("documents.id"), nullable=False, index=True)
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
