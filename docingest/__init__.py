"""Document ingestion core: tasks, chunked content and vectorizer profiles."""

__version__ = "0.9.0"
