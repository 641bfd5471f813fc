"""Typed commands handed to the orchestrator by the routing layer."""
from pathlib import PurePath
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field

from docingest.models.task import TaskStatus


class DocumentSource(BaseModel):
    """A source URL with optional request headers (headers are not persisted)."""
    url: str
    headers: Optional[Dict[str, str]] = None


class ConvertDocumentsOptions(BaseModel):
    format: Optional[str] = None
    keep_image: bool = False
    orientation_detection: bool = False
    enable_ocr: bool = False
    ocr_engine: Optional[str] = None
    ocr_languages: Optional[List[str]] = None
    max_pages: Optional[int] = Field(default=None, ge=0)
    page_ranges: Optional[List[str]] = None
    timeout: Optional[float] = None
    model: Optional[str] = None


class ConvertBySourceRequest(BaseModel):
    sources: List[Union[str, DocumentSource]] = Field(default_factory=list)
    options: Optional[ConvertDocumentsOptions] = None

    def source_urls(self) -> List[str]:
        return [s if isinstance(s, str) else s.url for s in self.sources]


class UploadedFile(BaseModel):
    """One file part of a multipart upload."""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return PurePath(self.filename).suffix.lower()


class ConvertByFileRequest(BaseModel):
    files: List[UploadedFile] = Field(default_factory=list)
    format: Optional[str] = None
    enable_ocr: bool = False
    ocr_engine: Optional[str] = None
    model: Optional[str] = None
    max_pages: Optional[int] = Field(default=None, ge=0)


class ProgressCallbackRequest(BaseModel):
    """Progress reported by whoever is doing the actual conversion work."""
    task_id: str = Field(..., min_length=1)
    progress: float = Field(..., ge=0, le=100)
    message: Optional[str] = None
    error: Optional[str] = None
    status: Optional[TaskStatus] = None
