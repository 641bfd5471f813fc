"""Stores for documents, tasks, sources, chunked content and vectorizers."""

from .chunks import ChunkedContentStore, split_content
from .documents import DocumentStore
from .sources import SourceStore
from .tasks import TaskStore, ALLOWED_TRANSITIONS, can_transition
from .vectorizers import VectorizerRegistry, DefaultVectorizerBootstrap

__all__ = [
    "ChunkedContentStore",
    "split_content",
    "DocumentStore",
    "SourceStore",
    "TaskStore",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "VectorizerRegistry",
    "DefaultVectorizerBootstrap",
]
