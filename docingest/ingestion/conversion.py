"""
Conversion engine seam.

Turning an uploaded document into text happens outside the ingestion core.
The orchestrator only needs something with `convert(upload, options) -> str`
that raises ConversionError on failure.
"""
import asyncio
import os
import tempfile
from typing import List, Optional, Protocol

from langchain_core.documents import Document
from pydantic import BaseModel

from docingest.exceptions import ConversionError
from docingest.logging_config import get_logger
from docingest.schemas.requests import UploadedFile

log = get_logger(__name__)


class ConversionOptions(BaseModel):
    enable_ocr: bool = False
    ocr_engine: Optional[str] = None
    max_pages: int = 0  # 0 = no limit


class ConversionEngine(Protocol):
    async def convert(self, upload: UploadedFile, options: ConversionOptions) -> str:
        ...


class PlainTextConversionEngine:
    """Raw read: the upload decoded as UTF-8, invalid bytes replaced."""

    async def convert(self, upload: UploadedFile, options: ConversionOptions) -> str:
        return upload.content.decode("utf-8", errors="replace")


class LoaderConversionEngine:
    """
    Converts uploads with LangChain document loaders.
    Each PDF page becomes one Document; pages are joined with a blank line.
    """

    PAGE_SEPARATOR = "\n\n"
    TEXT_EXTENSIONS = (".txt", ".md")

    async def convert(self, upload: UploadedFile, options: ConversionOptions) -> str:
        if upload.extension != ".pdf" and upload.extension not in self.TEXT_EXTENSIONS:
            raise ConversionError(f"Unsupported file type: {upload.extension or upload.filename}")

        # Loaders block on disk and parsing
        pages = await asyncio.to_thread(self._load, upload)
        if options.max_pages:
            pages = pages[:options.max_pages]

        log.info("document_converted", file_name=upload.filename, pages=len(pages))
        return self.PAGE_SEPARATOR.join(page.page_content for page in pages)

    def _load(self, upload: UploadedFile) -> List[Document]:
        fd, path = tempfile.mkstemp(suffix=upload.extension)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(upload.content)
            return self._loader_for(upload.extension, path).load()
        except ConversionError:
            raise
        except Exception as e:
            raise ConversionError(f"Failed to convert {upload.filename}: {e}")
        finally:
            os.unlink(path)

    def _loader_for(self, extension: str, path: str):
        from langchain_community.document_loaders import PyMuPDFLoader, TextLoader

        if extension == ".pdf":
            return PyMuPDFLoader(path)
        return TextLoader(path, encoding="utf-8")
