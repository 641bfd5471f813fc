"""
Custom exception classes for the ingestion pipeline.
"""

class IngestionException(Exception):
    """Base exception for all ingestion-related errors."""
    pass

class StorageException(Exception):
    """Base exception for all storage-related errors."""
    pass

class InvalidInputError(IngestionException):
    """Raised when a request is missing sources/files or carries invalid values."""
    pass

class PayloadTooLargeError(IngestionException):
    """Raised when an uploaded file exceeds the configured size limit."""
    def __init__(self, message: str, limit_bytes: int = None):
        super().__init__(message)
        self.limit_bytes = limit_bytes

class TaskNotFoundError(IngestionException):
    """Raised when a task (or the document behind it) does not exist."""
    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id

class InvalidTransitionError(IngestionException):
    """Raised when a progress update asks for a status change the task cannot make."""
    def __init__(self, task_id: str, current: str, requested: str):
        super().__init__(f"Task {task_id} cannot move from '{current}' to '{requested}'")
        self.task_id = task_id
        self.current = current
        self.requested = requested

class ConversionError(IngestionException):
    """Raised when the conversion engine cannot turn an upload into text."""
    pass

class VectorizerConflictError(StorageException):
    """Raised when a vectorizer insert conflicted and the winning row cannot be read back."""
    pass
