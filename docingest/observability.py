from enum import Enum
from typing import Optional, List, Any
import functools
import os
import contextvars
import inspect

from docingest.logging_config import get_logger
import opik

log = get_logger(__name__)

# Which surface started the current flow (e.g., 'rest', 'callback', 'script')
_source_context = contextvars.ContextVar("source_context", default="unknown")

class Phase(Enum):
    """Standardized phases for trace tagging."""
    INGESTION = "ingestion"   # convert/source, convert/file, convert/source/async
    STATUS = "status"         # polling and progress callbacks
    RETRIEVAL = "retrieval"   # result reassembly

def configure_observability():
    """
    Central entry point for tracing configuration.
    Currently wraps Opik.
    """
    from docingest.config import get_settings
    settings = get_settings()

    os.environ["OPIK_PROJECT_NAME"] = settings.opik.project_name
    if settings.opik.api_key:
        os.environ["OPIK_API_KEY"] = settings.opik.api_key
    if settings.opik.workspace:
        os.environ["OPIK_WORKSPACE"] = settings.opik.workspace
    opik.configure(use_local=not settings.opik.api_key)
    log.info("observability_configured", provider="opik", project=settings.opik.project_name)

def set_trace_source(source: str) -> None:
    """
    Set the source context for the current execution flow.
    Example: 'rest', 'callback', 'script'
    """
    _source_context.set(source)

def _tag_current_span() -> None:
    source = _source_context.get()
    if source == "unknown":
        return
    try:
        opik.opik_context.update_current_span(tags=[f"source:{source}"])
    except Exception:
        # No active span when tracking is disabled
        pass

def track(name: Optional[str] = None, phase: Optional[Phase] = None, tags: Optional[List[str]] = None):
    """
    Vendor-agnostic tracking decorator.

    Args:
        name: The name of the trace/span. Defaults to function name.
        phase: High-level phase enum (mapped to phase:X tag).
        tags: Additional list of string tags.
    """
    def decorator(func):
        static_tags = tags.copy() if tags else []
        if phase:
            static_tags.append(f"phase:{phase.value}")

        @opik.track(name=name, tags=static_tags)
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            _tag_current_span()
            return await func(*args, **kwargs)

        @opik.track(name=name, tags=static_tags)
        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            _tag_current_span()
            return func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        else:
            return sync_wrapper
    return decorator

def set_trace_metadata(metadata: dict[str, Any]) -> None:
    """Attach metadata (task and document ids) to the current trace."""
    try:
        opik.opik_context.update_current_trace(metadata=metadata)
    except Exception:
        pass
