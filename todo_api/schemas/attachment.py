import uuid
from datetime import datetime

from pydantic import BaseModel


class AttachmentInfo(BaseModel):
    id: uuid.UUID
    file_name: str
    content_type: str
    size_bytes: int
    checksum_sha256: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
