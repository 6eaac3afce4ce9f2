import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from todo_api.models.tasks import Task
from todo_api.schemas.attachment import AttachmentInfo
from todo_api.schemas.task import TaskDetail
from todo_api.services import attachments as attachment_service
from todo_api.services import tasks as task_service

SECONDS_PER_DAY = 86400


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def due_status(due_date: datetime | None, is_completed: bool, now: datetime | None = None) -> tuple[bool, int | None]:
    """
    Returns ``(overdue, days_until_due)``.

    ``days_until_due`` counts whole days between ``now`` and the due date,
    truncated toward zero, so it is negative once a task is more than a day late.
    """
    if due_date is None:
        return False, None

    now = now or datetime.now(timezone.utc)
    due = _as_utc(due_date)

    overdue = now > due and not is_completed
    days = int((due - now).total_seconds() / SECONDS_PER_DAY)
    return overdue, days


async def _to_detail(db: AsyncSession, task: Task, owner_user_id: uuid.UUID) -> TaskDetail:
    overdue, days_until_due = due_status(task.due_date, task.is_completed)
    attachments = await attachment_service.list_by_task(db, task.id, owner_user_id)

    return TaskDetail(
        id=task.id,
        title=task.title,
        description=task.description,
        created_at=task.created_at,
        due_date=task.due_date,
        is_completed=task.is_completed,
        is_deleted=task.is_deleted,
        parent_task_id=task.parent_task_id,
        overdue=overdue,
        days_until_due=days_until_due,
        attachments=[AttachmentInfo.model_validate(a) for a in attachments],
    )


async def get_task_detail(db: AsyncSession, task_id: uuid.UUID, owner_user_id: uuid.UUID) -> TaskDetail:
    task = await task_service.get_task_by_id(db, task_id, owner_user_id)
    return await _to_detail(db, task, owner_user_id)


async def list_task_details(db: AsyncSession, owner_user_id: uuid.UUID) -> list[TaskDetail]:
    tasks = await task_service.list_tasks(db, owner_user_id)
    return [await _to_detail(db, t, owner_user_id) for t in tasks]
