from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from docingest.models.base import Base, utcnow

class Source(Base):
    """A URL submitted with a document's ingestion request. Immutable once written."""
    __tablename__ = "sources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(String(36), ForeignKey("documents.id"), nullable=False, index=True)
    url = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
