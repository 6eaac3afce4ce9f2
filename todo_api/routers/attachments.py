import uuid
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from todo_api.config import settings
from todo_api.dependencies import get_blob_store, get_current_user, get_db
from todo_api.models.user import User as UserModel
from todo_api.schemas.attachment import AttachmentInfo
from todo_api.services import attachments as attachment_service
from todo_api.storage.blob_store import BlobStore

router = APIRouter(prefix="/attachments", tags=["attachments"])


async def _read_upload(file: UploadFile) -> bytes:
    # Read one byte past the limit so oversized uploads are detected without buffering them whole.
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File too large")
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")
    return data


def _content_disposition(file_name: str) -> str:
    # Header values go out as latin-1; non-ASCII names travel in the RFC 5987 form.
    fallback = "".join(c if c.isascii() and c.isprintable() else "_" for c in file_name)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"


@router.post("/", response_model=AttachmentInfo, status_code=status.HTTP_201_CREATED)
async def upload(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    current_user: UserModel = Depends(get_current_user)
):
    data = await _read_upload(file)
    attachment = await attachment_service.upload_unlinked(
        db, blob_store, data, file.filename, file.content_type, current_user.id
    )
    await db.commit()
    return attachment

@router.post("/task/{task_id}", response_model=AttachmentInfo, status_code=status.HTTP_201_CREATED)
async def upload_for_task(
    task_id: uuid.UUID,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    current_user: UserModel = Depends(get_current_user)
):
    data = await _read_upload(file)
    attachment = await attachment_service.upload_and_attach(
        db, blob_store, task_id, data, file.filename, file.content_type, current_user.id
    )
    await db.commit()
    return attachment

@router.get("/task/{task_id}", response_model=list[AttachmentInfo])
async def list_for_task(
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    return await attachment_service.list_by_task(db, task_id, current_user.id)

@router.get("/", response_model=list[AttachmentInfo])
async def list_mine(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    return await attachment_service.list_for_owner(db, current_user.id)

@router.get("/{attachment_id}", response_model=AttachmentInfo)
async def get_info(
    attachment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    return await attachment_service.get_info(db, attachment_id, current_user.id)

@router.get("/{attachment_id}/download")
async def download(
    attachment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    current_user: UserModel = Depends(get_current_user)
):
    info = await attachment_service.get_info(db, attachment_id, current_user.id)
    data = await attachment_service.load_bytes(db, blob_store, attachment_id, current_user.id)
    return Response(
        content=data,
        media_type=info.content_type,
        headers={"Content-Disposition": _content_disposition(info.file_name)},
    )

@router.post("/{attachment_id}/attach/{task_id}", response_model=AttachmentInfo)
async def attach(
    attachment_id: uuid.UUID,
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    attachment = await attachment_service.attach(db, attachment_id, task_id, current_user.id)
    await db.commit()
    return attachment

@router.post("/{attachment_id}/detach", response_model=AttachmentInfo)
async def detach(
    attachment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    attachment = await attachment_service.detach(db, attachment_id, current_user.id)
    await db.commit()
    return attachment

@router.delete("/{attachment_id}/tasks/{task_id}", response_model=AttachmentInfo)
async def detach_from_task(
    attachment_id: uuid.UUID,
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    attachment = await attachment_service.detach_from_task(db, attachment_id, task_id, current_user.id)
    await db.commit()
    return attachment

@router.delete("/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(
    attachment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    current_user: UserModel = Depends(get_current_user)
):
    await attachment_service.delete(db, blob_store, attachment_id, current_user.id)
    await db.commit()
    return None
