from datetime import datetime, timedelta, timezone

import pytest

from todo_api.exceptions import NotFoundError
from todo_api.services import attachments as attachment_service
from todo_api.services import task_detail as task_detail_service
from todo_api.services import tasks as task_service
from todo_api.services.task_detail import due_status

NOW = datetime(2030, 6, 15, 12, 0, tzinfo=timezone.utc)


def test_no_due_date():
    assert due_status(None, False, NOW) == (False, None)


def test_due_in_future():
    assert due_status(NOW + timedelta(days=3, hours=5), False, NOW) == (False, 3)


def test_partial_days_truncate_toward_zero():
    assert due_status(NOW + timedelta(hours=23), False, NOW) == (False, 0)
    assert due_status(NOW - timedelta(hours=23), False, NOW) == (True, 0)
    assert due_status(NOW - timedelta(days=2, hours=1), False, NOW) == (True, -2)


def test_completed_task_is_never_overdue():
    assert due_status(NOW - timedelta(days=1), True, NOW) == (False, -1)


def test_naive_due_date_is_treated_as_utc():
    naive = (NOW + timedelta(days=1)).replace(tzinfo=None)
    assert due_status(naive, False, NOW) == (False, 1)


async def test_yesterday_is_overdue(db, alice):
    task = await task_service.create_task(
        db, "Late", None, alice.id, due_date=datetime.now(timezone.utc) - timedelta(days=1)
    )
    await db.commit()

    detail = await task_detail_service.get_task_detail(db, task.id, alice.id)
    assert detail.overdue is True
    assert detail.days_until_due < 0
    assert detail.categories == []
    assert detail.comments == []


async def test_detail_lists_linked_attachments(db, alice, blob_store):
    task = await task_service.create_task(db, "Docs", None, alice.id)
    attachment = await attachment_service.upload_and_attach(
        db, blob_store, task.id, b"%PDF", "manual.pdf", "application/pdf", alice.id
    )
    await db.commit()

    detail = await task_detail_service.get_task_detail(db, task.id, alice.id)
    assert detail.overdue is False
    assert detail.days_until_due is None
    assert [a.id for a in detail.attachments] == [attachment.id]
    assert detail.attachments[0].file_name == "manual.pdf"


async def test_detail_of_foreign_task_is_not_found(db, alice, bob):
    task = await task_service.create_task(db, "Private", None, alice.id)
    await db.commit()

    with pytest.raises(NotFoundError):
        await task_detail_service.get_task_detail(db, task.id, bob.id)


async def test_list_details_skips_deleted(db, alice):
    keep = await task_service.create_task(db, "Keep", None, alice.id)
    drop = await task_service.create_task(db, "Drop", None, alice.id)
    await task_service.delete_task(db, drop.id, alice.id)
    await db.commit()

    details = await task_detail_service.list_task_details(db, alice.id)
    assert [d.id for d in details] == [keep.id]
