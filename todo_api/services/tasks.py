import logging
import uuid
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from todo_api.exceptions import NotFoundError
from todo_api.models.attachment import Attachment, TaskAttachment
from todo_api.models.tasks import Task
from todo_api.schemas.task import TaskSummary
from todo_api.services import users as user_service
from todo_api.utils.pagination import PageRequest

logger = logging.getLogger(__name__)

NEWEST_FIRST = (Task.created_at.desc(), Task.id.asc())


async def get_task_by_id(db: AsyncSession, task_id: uuid.UUID, owner_user_id: uuid.UUID) -> Task:
    """
    Guarded lookup: the single ownership gate for every task mutation.

    Missing, soft-deleted and foreign tasks all raise the same NotFoundError so
    callers cannot probe for other users' ids.
    """
    result = await db.execute(
        select(Task).filter(
            Task.id == task_id,
            Task.owner_user_id == owner_user_id,
            Task.is_deleted == False,
        )
    )
    task = result.scalars().first()
    if not task:
        raise NotFoundError("Task not found")
    return task


async def create_task(
    db: AsyncSession,
    title: str,
    description: str | None,
    owner_user_id: uuid.UUID,
    parent_task_id: uuid.UUID | None = None,
    due_date: datetime | None = None,
) -> Task:
    await user_service.get_user_by_id(db, owner_user_id)

    if parent_task_id is not None:
        # A brand new task cannot be anyone's ancestor, so a live parent owned by
        # the same user is enough to keep the hierarchy acyclic.
        await get_task_by_id(db, parent_task_id, owner_user_id)

    new_task = Task(
        title=title,
        description=description,
        owner_user_id=owner_user_id,
        parent_task_id=parent_task_id,
        due_date=due_date,
        is_completed=False,
        is_deleted=False,
    )
    db.add(new_task)
    await db.flush()
    logger.info("Created task %s for user %s (parent=%s)", new_task.id, owner_user_id, parent_task_id)
    return new_task


async def update_task(
    db: AsyncSession,
    task_id: uuid.UUID,
    owner_user_id: uuid.UUID,
    title: str | None = None,
    description: str | None = None,
    is_completed: bool | None = None,
) -> Task:
    task = await get_task_by_id(db, task_id, owner_user_id)

    if title is not None:
        task.title = title
    if description is not None:
        task.description = description
    if is_completed is not None:
        task.is_completed = is_completed

    await db.flush()
    return task


async def set_completed(db: AsyncSession, task_id: uuid.UUID, value: bool, owner_user_id: uuid.UUID) -> Task:
    task = await get_task_by_id(db, task_id, owner_user_id)
    task.is_completed = value
    await db.flush()
    return task


async def delete_task(db: AsyncSession, task_id: uuid.UUID, owner_user_id: uuid.UUID) -> None:
    # Subtasks are left in place; they keep pointing at the soft-deleted parent.
    task = await get_task_by_id(db, task_id, owner_user_id)
    task.is_deleted = True
    await db.flush()
    logger.info("Soft-deleted task %s", task.id)


async def list_tasks(db: AsyncSession, owner_user_id: uuid.UUID) -> list[Task]:
    result = await db.execute(
        select(Task)
        .filter(Task.owner_user_id == owner_user_id, Task.is_deleted == False)
        .order_by(*NEWEST_FIRST)
    )
    return list(result.scalars().all())


async def list_tasks_page(
    db: AsyncSession, owner_user_id: uuid.UUID, page_request: PageRequest
) -> tuple[list[Task], int]:
    filters = (Task.owner_user_id == owner_user_id, Task.is_deleted == False)

    total = await db.scalar(select(func.count(Task.id)).filter(*filters))

    result = await db.execute(
        select(Task)
        .filter(*filters)
        .order_by(*page_request.order_by(Task))
        .offset(page_request.offset)
        .limit(page_request.size)
    )
    return list(result.scalars().all()), total or 0


async def list_all_tasks(db: AsyncSession, owner_user_id: uuid.UUID) -> list[Task]:
    """Includes soft-deleted rows; administrative listing only."""
    result = await db.execute(
        select(Task).filter(Task.owner_user_id == owner_user_id).order_by(*NEWEST_FIRST)
    )
    return list(result.scalars().all())


async def get_root_tasks(db: AsyncSession, owner_user_id: uuid.UUID) -> list[Task]:
    result = await db.execute(
        select(Task)
        .filter(
            Task.owner_user_id == owner_user_id,
            Task.parent_task_id.is_(None),
            Task.is_deleted == False,
        )
        .order_by(*NEWEST_FIRST)
    )
    return list(result.scalars().all())


# ── Subtasks ────────────────────────────────────────────

async def _children_of(db: AsyncSession, parent_ids, owner_user_id: uuid.UUID) -> list[Task]:
    result = await db.execute(
        select(Task)
        .filter(
            Task.parent_task_id.in_(list(parent_ids)),
            Task.owner_user_id == owner_user_id,
            Task.is_deleted == False,
        )
        .order_by(*NEWEST_FIRST)
    )
    return list(result.scalars().all())


async def get_subtasks(db: AsyncSession, parent_task_id: uuid.UUID, owner_user_id: uuid.UUID) -> list[Task]:
    """Direct children only. An unknown or foreign parent simply has no children."""
    return await _children_of(db, [parent_task_id], owner_user_id)


async def get_subtasks_recursively(
    db: AsyncSession, parent_task_id: uuid.UUID, owner_user_id: uuid.UUID, max_depth: int
) -> list[Task]:
    """
    Breadth-first walk below ``parent_task_id``, one query per level.

    Results are grouped by depth (shallowest first) and newest first within a
    level. Soft-deleted tasks are skipped at every level, which also hides their
    descendants. ``max_depth`` bounds the walk; the visited set additionally
    stops a corrupted parent chain from looping.
    """
    if max_depth <= 0:
        return []

    collected: list[Task] = []
    visited = {parent_task_id}
    frontier = [parent_task_id]

    for _ in range(max_depth):
        level = [t for t in await _children_of(db, frontier, owner_user_id) if t.id not in visited]
        if not level:
            break
        visited.update(t.id for t in level)
        collected.extend(level)
        frontier = [t.id for t in level]

    return collected


async def _count_children(db: AsyncSession, task_ids, owner_user_id: uuid.UUID) -> dict[uuid.UUID, int]:
    if not task_ids:
        return {}
    result = await db.execute(
        select(Task.parent_task_id, func.count(Task.id))
        .filter(
            Task.parent_task_id.in_(list(task_ids)),
            Task.owner_user_id == owner_user_id,
            Task.is_deleted == False,
        )
        .group_by(Task.parent_task_id)
    )
    return {parent_id: count for parent_id, count in result.all()}


async def _count_attachments(db: AsyncSession, task_ids, owner_user_id: uuid.UUID) -> dict[uuid.UUID, int]:
    if not task_ids:
        return {}
    result = await db.execute(
        select(TaskAttachment.task_id, func.count(TaskAttachment.attachment_id))
        .join(Attachment, Attachment.id == TaskAttachment.attachment_id)
        .filter(
            TaskAttachment.task_id.in_(list(task_ids)),
            Attachment.owner_user_id == owner_user_id,
        )
        .group_by(TaskAttachment.task_id)
    )
    return {task_id: count for task_id, count in result.all()}


def _to_summary(task: Task, subtask_count: int = 0, attachment_count: int = 0, subtasks=None) -> TaskSummary:
    return TaskSummary(
        id=task.id,
        title=task.title,
        description=task.description,
        created_at=task.created_at,
        due_date=task.due_date,
        is_completed=task.is_completed,
        is_deleted=task.is_deleted,
        parent_task_id=task.parent_task_id,
        subtasks=subtasks,
        subtask_count=subtask_count,
        attachment_count=attachment_count,
    )


async def summarize_tasks(db: AsyncSession, tasks: list[Task], owner_user_id: uuid.UUID) -> list[TaskSummary]:
    ids = [t.id for t in tasks]
    child_counts = await _count_children(db, ids, owner_user_id)
    attachment_counts = await _count_attachments(db, ids, owner_user_id)
    return [
        _to_summary(t, child_counts.get(t.id, 0), attachment_counts.get(t.id, 0))
        for t in tasks
    ]


async def summarize_task(db: AsyncSession, task: Task, owner_user_id: uuid.UUID) -> TaskSummary:
    return (await summarize_tasks(db, [task], owner_user_id))[0]


async def get_task_with_subtasks(
    db: AsyncSession, task_id: uuid.UUID, owner_user_id: uuid.UUID, max_depth: int
) -> TaskSummary:
    """
    Nested projection of ``task_id`` down to ``max_depth`` levels.

    Children are fetched one level at a time and counts are grouped per tree, so
    the query count grows with depth rather than with the number of nodes. Nodes
    on the last expanded level carry their real child count and no list.
    """
    root = await get_task_by_id(db, task_id, owner_user_id)

    children_by_parent: dict[uuid.UUID, list[Task]] = {}
    visited = {root.id}
    levels = [[root]]

    for _ in range(max(max_depth, 0)):
        level = [
            t for t in await _children_of(db, [t.id for t in levels[-1]], owner_user_id)
            if t.id not in visited
        ]
        if not level:
            break
        for child in level:
            visited.add(child.id)
            children_by_parent.setdefault(child.parent_task_id, []).append(child)
        levels.append(level)

    attachment_counts = await _count_attachments(db, list(visited), owner_user_id)
    unexpanded_counts = await _count_children(db, [t.id for t in levels[-1]], owner_user_id)

    def build(task: Task) -> TaskSummary:
        attachment_count = attachment_counts.get(task.id, 0)
        children = children_by_parent.get(task.id)
        if children:
            subtasks = [build(child) for child in children]
            return _to_summary(task, len(subtasks), attachment_count, subtasks)
        return _to_summary(task, unexpanded_counts.get(task.id, 0), attachment_count)

    return build(root)
