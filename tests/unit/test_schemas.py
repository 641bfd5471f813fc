import pytest
from pydantic import ValidationError

from docingest.models.task import TaskStatus
from docingest.schemas.requests import (
    ConvertBySourceRequest,
    DocumentSource,
    ProgressCallbackRequest,
    UploadedFile,
)
from docingest.schemas.responses import ErrorEnvelope


def test_source_urls_mixes_plain_and_structured():
    request = ConvertBySourceRequest(sources=["https://a", DocumentSource(url="https://b", headers={"X": "1"})])
    assert request.source_urls() == ["https://a", "https://b"]


def test_uploaded_file_properties():
    upload = UploadedFile(filename="Report.PDF", content=b"12345")
    assert upload.size == 5
    assert upload.extension == ".pdf"


@pytest.mark.parametrize("progress", [-0.1, 100.1])
def test_progress_bounds(progress):
    with pytest.raises(ValidationError):
        ProgressCallbackRequest(task_id="t", progress=progress)


def test_progress_requires_task_id():
    with pytest.raises(ValidationError):
        ProgressCallbackRequest(task_id="", progress=10)


def test_progress_status_parsed():
    request = ProgressCallbackRequest(task_id="t", progress=10, status="processing")
    assert request.status is TaskStatus.PROCESSING


def test_error_envelope_hides_status_code():
    envelope = ErrorEnvelope(error="Task not found", message="Task not found: x", status_code=404)
    assert envelope.model_dump() == {"error": "Task not found", "message": "Task not found: x"}
