import uuid
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from docingest.models.base import Base, utcnow

class Document(Base):
    """
    Metadata for one ingested item.
    Content is either stored inline here or split across file_chunks,
    never both once ChunkedContentStore has written it.
    """
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    format = Column(String, nullable=False)
    pages = Column(Integer, nullable=False)
    content = Column(Text, nullable=True)

    vectorizer_id = Column(String(36), ForeignKey("vectorizers.id"), nullable=True)
    vectorizer = relationship("Vectorizer", back_populates="documents")

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
