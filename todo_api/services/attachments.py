import logging
import uuid

from sqlalchemy import delete as sql_delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from todo_api.exceptions import ForbiddenError, NotFoundError, UnexpectedError
from todo_api.models.attachment import Attachment, TaskAttachment
from todo_api.services import tasks as task_service
from todo_api.services import users as user_service
from todo_api.storage.blob_store import BlobStore
from todo_api.utils.sanitization import sanitize_filename

logger = logging.getLogger(__name__)


async def _get_owned_attachment(db: AsyncSession, attachment_id: uuid.UUID, owner_user_id: uuid.UUID) -> Attachment:
    # Raw-id lookup: absent -> 404, present but foreign -> 403.
    attachment = await db.get(Attachment, attachment_id)
    if attachment is None:
        raise NotFoundError("Attachment not found")
    if attachment.owner_user_id != owner_user_id:
        raise ForbiddenError("Attachment does not belong to user")
    return attachment


async def _store_and_record(
    db: AsyncSession,
    blob_store: BlobStore,
    data: bytes,
    original_name: str | None,
    content_type: str | None,
    owner_user_id: uuid.UUID,
) -> Attachment:
    try:
        stored = await blob_store.store(data, original_name, content_type)
    except (OSError, ValueError) as e:
        # Nothing has been added to the session yet, so no metadata row is left behind.
        logger.exception("Blob store failed for upload %r (user=%s)", original_name, owner_user_id)
        raise UnexpectedError() from e

    attachment = Attachment(
        owner_user_id=owner_user_id,
        file_name=sanitize_filename(original_name),
        content_type=stored.content_type,
        size_bytes=stored.size,
        checksum_sha256=stored.sha256,
        storage_key=stored.key,
    )
    db.add(attachment)
    await db.flush()
    logger.info("Stored attachment %s (%d bytes) as %s", attachment.id, stored.size, stored.key)
    return attachment


async def upload_unlinked(
    db: AsyncSession,
    blob_store: BlobStore,
    data: bytes,
    original_name: str | None,
    content_type: str | None,
    owner_user_id: uuid.UUID,
) -> Attachment:
    await user_service.get_user_by_id(db, owner_user_id)
    return await _store_and_record(db, blob_store, data, original_name, content_type, owner_user_id)


async def upload_and_attach(
    db: AsyncSession,
    blob_store: BlobStore,
    task_id: uuid.UUID,
    data: bytes,
    original_name: str | None,
    content_type: str | None,
    owner_user_id: uuid.UUID,
) -> Attachment:
    task = await task_service.get_task_by_id(db, task_id, owner_user_id)

    attachment = await _store_and_record(db, blob_store, data, original_name, content_type, owner_user_id)
    db.add(TaskAttachment(task_id=task.id, attachment_id=attachment.id))
    await db.flush()
    return attachment


async def list_by_task(db: AsyncSession, task_id: uuid.UUID, owner_user_id: uuid.UUID) -> list[Attachment]:
    # The owner filter is re-applied here even though links are only written for same-owner pairs.
    result = await db.execute(
        select(Attachment)
        .join(TaskAttachment, TaskAttachment.attachment_id == Attachment.id)
        .filter(TaskAttachment.task_id == task_id, Attachment.owner_user_id == owner_user_id)
        .order_by(TaskAttachment.created_at, Attachment.id)
    )
    return list(result.scalars().all())


async def list_for_owner(db: AsyncSession, owner_user_id: uuid.UUID) -> list[Attachment]:
    result = await db.execute(
        select(Attachment)
        .filter(Attachment.owner_user_id == owner_user_id)
        .order_by(Attachment.created_at.desc(), Attachment.id)
    )
    return list(result.scalars().all())


async def attach(
    db: AsyncSession, attachment_id: uuid.UUID, task_id: uuid.UUID, owner_user_id: uuid.UUID
) -> Attachment:
    attachment = await _get_owned_attachment(db, attachment_id, owner_user_id)
    task = await task_service.get_task_by_id(db, task_id, owner_user_id)

    existing = await db.get(TaskAttachment, (task.id, attachment.id))
    if existing is not None:
        return attachment

    db.add(TaskAttachment(task_id=task.id, attachment_id=attachment.id))
    await db.flush()
    logger.info("Linked attachment %s to task %s", attachment.id, task.id)
    return attachment


async def detach(db: AsyncSession, attachment_id: uuid.UUID, owner_user_id: uuid.UUID) -> Attachment:
    """Removes the attachment from every task it is linked to."""
    attachment = await _get_owned_attachment(db, attachment_id, owner_user_id)
    result = await db.execute(
        sql_delete(TaskAttachment).where(TaskAttachment.attachment_id == attachment.id)
    )
    logger.info("Detached attachment %s from %d task(s)", attachment.id, result.rowcount)
    return attachment


async def detach_from_task(
    db: AsyncSession, attachment_id: uuid.UUID, task_id: uuid.UUID, owner_user_id: uuid.UUID
) -> Attachment:
    attachment = await _get_owned_attachment(db, attachment_id, owner_user_id)
    task = await task_service.get_task_by_id(db, task_id, owner_user_id)
    await db.execute(
        sql_delete(TaskAttachment).where(
            TaskAttachment.task_id == task.id,
            TaskAttachment.attachment_id == attachment.id,
        )
    )
    return attachment


async def unlink_all_from_task(db: AsyncSession, task_id: uuid.UUID, owner_user_id: uuid.UUID) -> int:
    task = await task_service.get_task_by_id(db, task_id, owner_user_id)
    result = await db.execute(sql_delete(TaskAttachment).where(TaskAttachment.task_id == task.id))
    return result.rowcount


async def delete(
    db: AsyncSession, blob_store: BlobStore, attachment_id: uuid.UUID, owner_user_id: uuid.UUID
) -> None:
    attachment = await _get_owned_attachment(db, attachment_id, owner_user_id)

    await db.execute(sql_delete(TaskAttachment).where(TaskAttachment.attachment_id == attachment.id))

    try:
        await blob_store.delete(attachment.storage_key)
    except Exception:
        # Metadata removal must not depend on the storage backend, whatever it raises.
        logger.warning("Failed to delete underlying blob for %s", attachment.id, exc_info=True)

    await db.delete(attachment)
    await db.flush()
    logger.info("Deleted attachment %s", attachment_id)


async def load_bytes(
    db: AsyncSession, blob_store: BlobStore, attachment_id: uuid.UUID, owner_user_id: uuid.UUID
) -> bytes:
    attachment = await _get_owned_attachment(db, attachment_id, owner_user_id)
    try:
        return await blob_store.load(attachment.storage_key)
    except (OSError, ValueError) as e:
        logger.exception("Failed to load blob %s for attachment %s", attachment.storage_key, attachment.id)
        raise UnexpectedError() from e


async def get_info(db: AsyncSession, attachment_id: uuid.UUID, owner_user_id: uuid.UUID) -> Attachment:
    return await _get_owned_attachment(db, attachment_id, owner_user_id)
