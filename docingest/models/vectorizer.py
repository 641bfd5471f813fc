import uuid
from sqlalchemy import Column, String, Integer, DateTime, JSON
from sqlalchemy.orm import relationship
from docingest.models.base import Base, utcnow

class Vectorizer(Base):
    """
    A named model-configuration profile shared across documents.
    At most one row per model_name; the unique constraint is what makes
    concurrent get-or-create safe.
    """
    __tablename__ = "vectorizers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    model_name = Column(String, unique=True, nullable=False, index=True)
    engine_type = Column(String, nullable=False)
    chunk_size = Column(Integer, nullable=False)
    ocr_engine = Column(String, nullable=True)
    parameters = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    documents = relationship("Document", back_populates="vectorizer")
