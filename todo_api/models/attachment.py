import uuid

from sqlalchemy import Column, String, BigInteger, DateTime, ForeignKey, Uuid
from todo_api.database import Base
from todo_api.models.user import utcnow


class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    content_type = Column(String(255), nullable=False)
    size_bytes = Column(BigInteger, nullable=False)
    checksum_sha256 = Column(String(64), nullable=False)
    storage_key = Column(String(512), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Attachment id={self.id} file_name={self.file_name!r}>"


class TaskAttachment(Base):
    __tablename__ = "task_attachment_links"

    task_id = Column(Uuid, ForeignKey("tasks.id"), primary_key=True)
    attachment_id = Column(Uuid, ForeignKey("attachments.id"), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
