import pytest
from pydantic import ValidationError

from docingest.config import IngestionSettings, Settings, VectorizerSettings
from docingest.db.db_manager import to_async_url


def test_defaults():
    settings = Settings()
    assert settings.ingestion.chunk_threshold == 1000
    assert settings.ingestion.max_file_size_bytes == 5 * 1024 * 1024
    assert settings.timeout.flow_seconds == 25.0
    assert settings.ingestion.strict_task_transitions is True


def test_nested_env_override(monkeypatch):
    monkeypatch.setenv("INGESTION__CHUNK_THRESHOLD", "250")
    monkeypatch.setenv("VECTORIZER__DEFAULT_MODEL", "text-embedding-3-large")

    settings = Settings()
    assert settings.ingestion.chunk_threshold == 250
    assert settings.vectorizer.default_model == "text-embedding-3-large"


@pytest.mark.parametrize("threshold", [0, -1])
def test_chunk_threshold_must_be_positive(threshold):
    with pytest.raises(ValidationError):
        IngestionSettings(chunk_threshold=threshold)


def test_vectorizer_parameters():
    params = VectorizerSettings(chunk_overlap=50).default_parameters()
    assert params["chunk_overlap"] == 50
    assert params["token_encoding"] == "cl100k_base"


@pytest.mark.parametrize(
    "url,expected",
    [
        ("postgresql://u:p@h:5432/db", "postgresql+psycopg://u:p@h:5432/db"),
        ("sqlite:///tmp/x.sqlite", "sqlite+aiosqlite:///tmp/x.sqlite"),
        ("postgresql+psycopg://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
    ],
)
def test_to_async_url(url, expected):
    assert to_async_url(url) == expected
