import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from todo_api.dependencies import get_db, get_current_user
from todo_api.exceptions import ConflictError
from todo_api.models.user import User as UserModel
from todo_api.schemas.task import TaskSummary
from todo_api.schemas.user import UserCreate, UserResponse, UserSummary, UserUpdate
from todo_api.services import tasks as task_service
from todo_api.services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])


def _require_self(user_id: uuid.UUID, current_user: UserModel):
    if user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot modify another user")


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(user: UserCreate, db: AsyncSession = Depends(get_db)):
    try:
        new_user = await user_service.create_user(
            db,
            username=user.username,
            email=user.email,
            password=user.password,
            first_name=user.first_name,
            last_name=user.last_name,
        )
        await db.commit()
        return new_user
    except IntegrityError:
        # Lost a race with a concurrent registration of the same name/email
        await db.rollback()
        raise ConflictError("Username or Email already registered")

@router.get("/me", response_model=UserResponse)
async def get_me(current_user: UserModel = Depends(get_current_user)):
    return current_user

@router.get("/me/tasks", response_model=list[TaskSummary])
async def get_my_tasks(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    tasks = await task_service.list_tasks(db, current_user.id)
    return await task_service.summarize_tasks(db, tasks, current_user.id)

@router.get("/", response_model=list[UserSummary])
async def list_users(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    return await user_service.list_users(db)

@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    return await user_service.get_user_by_id(db, user_id)

@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: uuid.UUID,
    user_update: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    _require_self(user_id, current_user)
    try:
        user = await user_service.update_user(db, user_id, **user_update.model_dump(exclude_unset=True))
        await db.commit()
        return user
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Username or Email already registered")

@router.patch("/{user_id}/deactivate", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    _require_self(user_id, current_user)
    await user_service.deactivate_user(db, user_id)
    await db.commit()
    return None
