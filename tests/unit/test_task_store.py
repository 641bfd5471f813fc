import asyncio

import pytest
from sqlalchemy.exc import IntegrityError

from docingest.exceptions import InvalidInputError, InvalidTransitionError, TaskNotFoundError
from docingest.models.document import Document
from docingest.models.task import Task, TaskStatus
from docingest.storage import DocumentStore, TaskStore, can_transition


async def create_task(db, document_id, task_id="task-1", status=TaskStatus.PENDING, message="queued"):
    async with db.get_session() as session:
        await TaskStore().create(session, task_id, status, document_id, message)
    return task_id


async def read_task(db, task_id) -> Task:
    async with db.get_session() as session:
        return await TaskStore().read(session, task_id)


class TestCreateAndRead:

    @pytest.mark.asyncio
    async def test_create_then_read(self, db, document_id):
        await create_task(db, document_id, status=TaskStatus.COMPLETED, message="done")

        task = await read_task(db, "task-1")
        assert task.status == "completed"
        assert task.document_id == document_id
        assert task.progress == 0.0
        assert task.message == "done"
        assert task.error is None
        assert task.created_at is not None

    @pytest.mark.asyncio
    async def test_read_missing_task(self, db):
        with pytest.raises(TaskNotFoundError) as exc_info:
            await read_task(db, "missing")
        assert exc_info.value.task_id == "missing"

    @pytest.mark.asyncio
    async def test_create_accepts_status_string(self, db, document_id):
        await create_task(db, document_id, status="processing")
        assert (await read_task(db, "task-1")).status == "processing"

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_status(self, db, document_id, count_rows):
        with pytest.raises(InvalidInputError):
            await create_task(db, document_id, status="exploded")
        assert await count_rows(Task) == 0

    @pytest.mark.asyncio
    async def test_create_with_unknown_document_is_rejected(self, db, count_rows):
        with pytest.raises(IntegrityError):
            async with db.get_session() as session:
                await TaskStore().create(session, "task-x", TaskStatus.PENDING, "no-such-document", "queued")

        assert await count_rows(Task) == 0

    @pytest.mark.asyncio
    async def test_document_with_unknown_vectorizer_is_rejected(self, db, count_rows):
        with pytest.raises(IntegrityError):
            async with db.get_session() as session:
                await DocumentStore().create(
                    session, name="orphan.txt", doc_format="json", pages=1, vectorizer_id="no-such-vectorizer"
                )

        assert await count_rows(Document) == 0


class TestUpdateProgress:

    @pytest.mark.asyncio
    async def test_only_progress_keeps_other_fields(self, db, document_id):
        await create_task(db, document_id, message="queued")

        async with db.get_session() as session:
            await TaskStore().update_progress(session, "task-1", progress=40)

        task = await read_task(db, "task-1")
        assert task.progress == 40.0
        assert task.message == "queued"
        assert task.status == "pending"
        assert task.error is None

    @pytest.mark.asyncio
    async def test_empty_strings_are_treated_as_omitted(self, db, document_id):
        await create_task(db, document_id, message="queued")

        async with db.get_session() as session:
            await TaskStore().update_progress(session, "task-1", progress=10, message="", error="", status="")

        task = await read_task(db, "task-1")
        assert task.message == "queued"
        assert task.error is None
        assert task.status == "pending"

    @pytest.mark.asyncio
    async def test_all_fields_written(self, db, document_id):
        await create_task(db, document_id)

        async with db.get_session() as session:
            await TaskStore().update_progress(
                session, "task-1", progress=100, message="boom", error="parser crashed", status=TaskStatus.FAILED
            )

        task = await read_task(db, "task-1")
        assert task.progress == 100.0
        assert task.message == "boom"
        assert task.error == "parser crashed"
        assert task.status == "failed"

    @pytest.mark.asyncio
    async def test_progress_can_go_backwards(self, db, document_id):
        await create_task(db, document_id)

        async with db.get_session() as session:
            await TaskStore().update_progress(session, "task-1", progress=80)
        async with db.get_session() as session:
            await TaskStore().update_progress(session, "task-1", progress=20)

        assert (await read_task(db, "task-1")).progress == 20.0

    @pytest.mark.asyncio
    async def test_updated_at_is_refreshed(self, db, document_id):
        await create_task(db, document_id)
        before = (await read_task(db, "task-1")).updated_at

        await asyncio.sleep(0.01)
        async with db.get_session() as session:
            await TaskStore().update_progress(session, "task-1", progress=5)

        assert (await read_task(db, "task-1")).updated_at > before

    @pytest.mark.asyncio
    async def test_missing_task_writes_nothing(self, db, count_rows):
        with pytest.raises(TaskNotFoundError):
            async with db.get_session() as session:
                await TaskStore().update_progress(session, "ghost", progress=50)

        assert await count_rows(Task) == 0

    @pytest.mark.asyncio
    async def test_unknown_status_writes_nothing(self, db, document_id):
        await create_task(db, document_id)

        with pytest.raises(InvalidInputError, match="Unknown task status"):
            async with db.get_session() as session:
                await TaskStore().update_progress(session, "task-1", progress=30, status="archived")

        task = await read_task(db, "task-1")
        assert task.status == "pending"
        assert task.progress == 0.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("progress", [-1, 100.5, 250])
    async def test_progress_out_of_range(self, db, document_id, progress):
        await create_task(db, document_id)

        with pytest.raises(InvalidInputError):
            async with db.get_session() as session:
                await TaskStore().update_progress(session, "task-1", progress=progress)

        assert (await read_task(db, "task-1")).progress == 0.0


class TestTransitions:

    @pytest.mark.asyncio
    async def test_terminal_task_rejects_status_change(self, db, document_id):
        await create_task(db, document_id, status=TaskStatus.COMPLETED, message="done")

        with pytest.raises(InvalidTransitionError) as exc_info:
            async with db.get_session() as session:
                await TaskStore().update_progress(session, "task-1", progress=10, status=TaskStatus.PROCESSING)

        assert exc_info.value.current == "completed"
        assert exc_info.value.requested == "processing"
        task = await read_task(db, "task-1")
        assert task.status == "completed"
        assert task.progress == 0.0

    @pytest.mark.asyncio
    async def test_restating_terminal_status_is_allowed(self, db, document_id):
        await create_task(db, document_id, status=TaskStatus.COMPLETED)

        async with db.get_session() as session:
            await TaskStore().update_progress(session, "task-1", progress=100, status=TaskStatus.COMPLETED)

        assert (await read_task(db, "task-1")).progress == 100.0

    @pytest.mark.asyncio
    async def test_permissive_store_allows_any_change(self, db, document_id):
        await create_task(db, document_id, status=TaskStatus.FAILED)

        async with db.get_session() as session:
            await TaskStore(strict_transitions=False).update_progress(
                session, "task-1", status=TaskStatus.PENDING
            )

        assert (await read_task(db, "task-1")).status == "pending"

    @pytest.mark.asyncio
    async def test_lifecycle(self, db, document_id):
        await create_task(db, document_id)
        store = TaskStore()

        for progress, status in [(10, TaskStatus.PROCESSING), (60, None), (100, TaskStatus.COMPLETED)]:
            async with db.get_session() as session:
                await store.update_progress(session, "task-1", progress=progress, status=status)

        task = await read_task(db, "task-1")
        assert task.status == "completed"
        assert task.progress == 100.0


@pytest.mark.parametrize(
    "current,requested,allowed",
    [
        (TaskStatus.PENDING, TaskStatus.PROCESSING, True),
        (TaskStatus.PENDING, TaskStatus.COMPLETED, True),
        (TaskStatus.PENDING, TaskStatus.FAILED, True),
        (TaskStatus.PROCESSING, TaskStatus.COMPLETED, True),
        (TaskStatus.PROCESSING, TaskStatus.FAILED, True),
        (TaskStatus.PROCESSING, TaskStatus.PENDING, False),
        (TaskStatus.COMPLETED, TaskStatus.FAILED, False),
        (TaskStatus.COMPLETED, TaskStatus.PROCESSING, False),
        (TaskStatus.FAILED, TaskStatus.COMPLETED, False),
        (TaskStatus.FAILED, TaskStatus.FAILED, True),
    ],
)
def test_can_transition(current, requested, allowed):
    assert can_transition(current, requested) is allowed
