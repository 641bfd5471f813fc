from enum import Enum
from sqlalchemy import Column, String, Float, Text, DateTime, ForeignKey
from docingest.models.base import Base, utcnow


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Task(Base):
    """One tracked ingestion call and its progress."""
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True)
    status = Column(String(20), nullable=False, default=TaskStatus.PENDING.value)
    document_id = Column(String(36), ForeignKey("documents.id"), nullable=False, index=True)
    progress = Column(Float, nullable=False, default=0.0)
    message = Column(Text, nullable=True)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
