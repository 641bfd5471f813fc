from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from docingest.models.task import TaskStatus


class TaskStatusResponse(BaseModel):
    task_id: str
    status: TaskStatus
    message: Optional[str] = None
    progress: Optional[float] = None
    error: Optional[str] = None


class DocumentResult(BaseModel):
    document_id: str
    pages: int
    format: str
    content: Optional[Dict[str, Any]] = Field(
        default=None, description="Reassembled content as {'text': ...}, absent when nothing is stored."
    )


class ConvertDocumentResponse(TaskStatusResponse):
    result: Optional[DocumentResult] = None


class ProgressCallbackResponse(BaseModel):
    success: bool
    task_id: str
    progress: float


class ErrorEnvelope(BaseModel):
    """Uniform error body returned at the boundary."""
    error: str
    message: str
    status_code: int = Field(..., exclude=True)
