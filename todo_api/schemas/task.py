import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator
from todo_api.utils.sanitization import sanitize_string
from todo_api.schemas.attachment import AttachmentInfo


# ── Requests ────────────────────────────────────────────

class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=120)
    description: str | None = Field(None, max_length=2000)
    due_date: datetime | None = None
    parent_task_id: uuid.UUID | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)

    @field_validator("due_date")
    @classmethod
    def due_date_not_in_past(cls, v):
        if v is None:
            return v
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        if v < datetime.now(timezone.utc):
            raise ValueError("due_date cannot be in the past")
        return v


class TaskUpdate(BaseModel):
    # Only non-null fields overwrite; omitting a field never clears it.
    title: str | None = Field(None, min_length=1, max_length=120)
    description: str | None = Field(None, max_length=2000)
    is_completed: bool | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


# ── Projections ─────────────────────────────────────────

class TaskSummary(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    created_at: datetime
    due_date: datetime | None = None
    is_completed: bool
    is_deleted: bool

    parent_task_id: uuid.UUID | None = None
    subtasks: list["TaskSummary"] | None = None
    subtask_count: int = 0
    attachment_count: int = 0


class CommentInfo(BaseModel):
    id: uuid.UUID
    body: str
    created_at: datetime
    author_name: str | None = None


class TaskDetail(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    created_at: datetime
    due_date: datetime | None = None
    is_completed: bool
    is_deleted: bool
    parent_task_id: uuid.UUID | None = None

    overdue: bool = False
    days_until_due: int | None = None

    # Not backed by storage yet; always empty.
    categories: list[str] = Field(default_factory=list)
    comments: list[CommentInfo] = Field(default_factory=list)

    attachments: list[AttachmentInfo] = Field(default_factory=list)
