"""Read models for rows returned by the stores."""
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict


class VectorizerRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    model_name: str
    engine_type: str
    chunk_size: int
    ocr_engine: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
