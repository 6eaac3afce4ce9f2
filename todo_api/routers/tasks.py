import uuid

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from todo_api.config import settings
from todo_api.dependencies import get_db, get_current_user
from todo_api.models.user import User as UserModel
from todo_api.schemas.task import TaskCreate, TaskDetail, TaskSummary, TaskUpdate
from todo_api.services import attachments as attachment_service
from todo_api.services import task_detail as task_detail_service
from todo_api.services import tasks as task_service
from todo_api.utils.pagination import build_page_request, build_pagination_headers, parse_sort

router = APIRouter(prefix="/tasks", tags=["tasks"])

@router.post("/", response_model=TaskSummary, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    task = await task_service.create_task(
        db,
        title=task_data.title,
        description=task_data.description,
        owner_user_id=current_user.id,
        parent_task_id=task_data.parent_task_id,
        due_date=task_data.due_date,
    )
    await db.commit()
    return await task_service.summarize_task(db, task, current_user.id)

@router.get("/", response_model=list[TaskSummary])
async def list_tasks(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    tasks = await task_service.list_tasks(db, current_user.id)
    return await task_service.summarize_tasks(db, tasks, current_user.id)

@router.get("/paged", response_model=list[TaskSummary])
async def list_tasks_paged(
    request: Request,
    response: Response,
    page: int = 0,
    size: int = 10,
    sort: str = "createdAt,desc",
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    page_request = build_page_request(page, size, *parse_sort(sort))
    tasks, total = await task_service.list_tasks_page(db, current_user.id, page_request)
    response.headers.update(build_pagination_headers(total, page_request, request.url))
    return await task_service.summarize_tasks(db, tasks, current_user.id)

@router.get("/all", response_model=list[TaskSummary])
async def list_all_tasks(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    tasks = await task_service.list_all_tasks(db, current_user.id)
    return await task_service.summarize_tasks(db, tasks, current_user.id)

@router.get("/root", response_model=list[TaskSummary])
async def get_root_tasks(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    tasks = await task_service.get_root_tasks(db, current_user.id)
    return await task_service.summarize_tasks(db, tasks, current_user.id)

@router.get("/details", response_model=list[TaskDetail])
async def list_task_details(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    return await task_detail_service.list_task_details(db, current_user.id)

@router.get("/{task_id}", response_model=TaskSummary)
async def get_task(
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    task = await task_service.get_task_by_id(db, task_id, current_user.id)
    return await task_service.summarize_task(db, task, current_user.id)

@router.get("/{task_id}/detail", response_model=TaskDetail)
async def get_task_detail(
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    return await task_detail_service.get_task_detail(db, task_id, current_user.id)

@router.patch("/{task_id}", response_model=TaskSummary)
async def update_task(
    task_id: uuid.UUID,
    update_data: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    task = await task_service.update_task(
        db,
        task_id,
        current_user.id,
        title=update_data.title,
        description=update_data.description,
        is_completed=update_data.is_completed,
    )
    await db.commit()
    return await task_service.summarize_task(db, task, current_user.id)

@router.patch("/{task_id}/complete", response_model=TaskSummary)
async def set_completed(
    task_id: uuid.UUID,
    value: bool,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    task = await task_service.set_completed(db, task_id, value, current_user.id)
    await db.commit()
    return await task_service.summarize_task(db, task, current_user.id)

@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    await task_service.delete_task(db, task_id, current_user.id)
    await db.commit()
    return None

@router.get("/{task_id}/subtasks", response_model=list[TaskSummary])
async def get_subtasks(
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    tasks = await task_service.get_subtasks(db, task_id, current_user.id)
    return await task_service.summarize_tasks(db, tasks, current_user.id)

@router.get("/{task_id}/subtasks/recursive", response_model=list[TaskSummary])
async def get_subtasks_recursively(
    task_id: uuid.UUID,
    max_depth: int = Query(settings.DEFAULT_SUBTASK_DEPTH, le=settings.MAX_SUBTASK_DEPTH),
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    tasks = await task_service.get_subtasks_recursively(db, task_id, current_user.id, max_depth)
    return await task_service.summarize_tasks(db, tasks, current_user.id)

@router.get("/{task_id}/tree", response_model=TaskSummary)
async def get_task_with_subtasks(
    task_id: uuid.UUID,
    max_depth: int = Query(settings.DEFAULT_SUBTASK_DEPTH, le=settings.MAX_SUBTASK_DEPTH),
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    return await task_service.get_task_with_subtasks(db, task_id, current_user.id, max_depth)

@router.delete("/{task_id}/attachments", status_code=status.HTTP_204_NO_CONTENT)
async def unlink_all_attachments(
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    await attachment_service.unlink_all_from_task(db, task_id, current_user.id)
    await db.commit()
    return None
