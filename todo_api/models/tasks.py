import uuid

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Boolean, Index, Uuid
from todo_api.database import Base
from todo_api.models.user import utcnow


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_owner_deleted_created", "owner_user_id", "is_deleted", "created_at"),
        Index("ix_tasks_parent_owner", "parent_task_id", "owner_user_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    is_completed = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    # Children are never loaded through a relationship; subtask queries are explicit.
    parent_task_id = Column(Uuid, ForeignKey("tasks.id"), nullable=True)

    def __repr__(self) -> str:
        return f"<Task id={self.id} title={self.title!r} parent={self.parent_task_id}>"
