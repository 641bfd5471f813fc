"""Task lifecycle tracking."""
from typing import Dict, FrozenSet, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docingest.exceptions import InvalidInputError, InvalidTransitionError, TaskNotFoundError
from docingest.logging_config import get_logger
from docingest.models.base import utcnow
from docingest.models.task import Task, TaskStatus

log = get_logger(__name__)

# Re-stating the current status is always allowed (progress-only updates).
ALLOWED_TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.PROCESSING, TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.PROCESSING: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


def can_transition(current: TaskStatus, requested: TaskStatus) -> bool:
    return current == requested or requested in ALLOWED_TRANSITIONS[current]


def parse_status(status: Union[TaskStatus, str]) -> TaskStatus:
    try:
        return TaskStatus(status)
    except ValueError:
        raise InvalidInputError(f"Unknown task status: {status!r}")


class TaskStore:
    """
    Persistence for ingestion tasks.

    Args:
        strict_transitions: Reject status changes outside ALLOWED_TRANSITIONS.
            When False any status may overwrite any other.
    """

    def __init__(self, strict_transitions: bool = True):
        self.strict_transitions = strict_transitions

    async def create(
        self,
        session: AsyncSession,
        task_id: str,
        status: Union[TaskStatus, str],
        document_id: str,
        message: Optional[str] = None,
    ) -> Task:
        status = parse_status(status)
        task = Task(
            id=task_id,
            status=status.value,
            document_id=document_id,
            progress=0.0,
            message=message,
        )
        session.add(task)
        await session.flush()
        log.info("task_created", task_id=task_id, document_id=document_id, status=status.value)
        return task

    async def read(self, session: AsyncSession, task_id: str) -> Task:
        task = await session.get(Task, task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def update_progress(
        self,
        session: AsyncSession,
        task_id: str,
        progress: Optional[float] = None,
        message: Optional[str] = None,
        error: Optional[str] = None,
        status: Optional[Union[TaskStatus, str]] = None,
    ) -> Task:
        """
        Partial update with coalesce semantics: a None (or empty string)
        argument keeps the stored value. updated_at is always refreshed.

        Raises:
            TaskNotFoundError: No task with this id. Nothing is written.
            InvalidTransitionError: Status change not allowed. Nothing is written.
            InvalidInputError: progress outside 0-100 or an unknown status.
        """
        if progress is not None and not 0 <= progress <= 100:
            raise InvalidInputError(f"progress must be between 0 and 100, got {progress}")

        requested = parse_status(status) if status else None

        result = await session.execute(
            select(Task).where(Task.id == task_id).with_for_update()
        )
        task = result.scalar_one_or_none()
        if task is None:
            log.warning("task_update_not_found", task_id=task_id)
            raise TaskNotFoundError(task_id)

        current = TaskStatus(task.status)
        if requested is not None and self.strict_transitions and not can_transition(current, requested):
            log.warning(
                "task_transition_rejected",
                task_id=task_id,
                current=current.value,
                requested=requested.value,
            )
            raise InvalidTransitionError(task_id, current.value, requested.value)

        if progress is not None:
            task.progress = float(progress)
        if message:
            task.message = message
        if error:
            task.error = error
        if requested is not None:
            task.status = requested.value
        task.updated_at = utcnow()

        await session.flush()
        log.info(
            "task_progress_updated",
            task_id=task_id,
            progress=task.progress,
            status=task.status,
        )
        return task
