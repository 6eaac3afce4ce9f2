import uuid
from datetime import datetime, timedelta, timezone

import pytest

from todo_api.exceptions import NotFoundError
from todo_api.models.tasks import Task
from todo_api.services import tasks as task_service
from todo_api.utils.pagination import build_page_request


async def test_create_task_persists_owner_and_defaults(db, alice):
    task = await task_service.create_task(db, "Write report", "Quarterly numbers", alice.id)
    await db.commit()

    assert task.id is not None
    assert task.owner_user_id == alice.id
    assert task.parent_task_id is None
    assert task.is_completed is False
    assert task.is_deleted is False
    assert task.created_at is not None


async def test_create_task_for_unknown_user_is_not_found(db):
    with pytest.raises(NotFoundError):
        await task_service.create_task(db, "Orphan", None, uuid.uuid4())


async def test_create_subtask_under_foreign_parent_is_not_found(db, alice, bob):
    parent = await task_service.create_task(db, "Alice's", None, alice.id)
    await db.commit()

    with pytest.raises(NotFoundError):
        await task_service.create_task(db, "Sneaky", None, bob.id, parent_task_id=parent.id)


async def test_create_subtask_under_deleted_parent_is_not_found(db, alice):
    parent = await task_service.create_task(db, "Gone", None, alice.id)
    await task_service.delete_task(db, parent.id, alice.id)
    await db.commit()

    with pytest.raises(NotFoundError):
        await task_service.create_task(db, "Child", None, alice.id, parent_task_id=parent.id)


async def test_get_task_hides_foreign_and_deleted(db, alice, bob):
    task = await task_service.create_task(db, "Mine", None, alice.id)
    await db.commit()

    assert (await task_service.get_task_by_id(db, task.id, alice.id)).id == task.id

    with pytest.raises(NotFoundError) as exc:
        await task_service.get_task_by_id(db, task.id, bob.id)
    assert exc.value.detail == "Task not found"

    await task_service.delete_task(db, task.id, alice.id)
    await db.commit()
    with pytest.raises(NotFoundError):
        await task_service.get_task_by_id(db, task.id, alice.id)


async def test_update_only_overwrites_given_fields(db, alice):
    task = await task_service.create_task(db, "Original", "Keep me", alice.id)
    await db.commit()

    updated = await task_service.update_task(db, task.id, alice.id, title="Renamed")
    await db.commit()

    assert updated.title == "Renamed"
    assert updated.description == "Keep me"
    assert updated.is_completed is False

    updated = await task_service.update_task(db, task.id, alice.id, is_completed=True)
    assert updated.title == "Renamed"
    assert updated.is_completed is True


async def test_update_foreign_task_is_not_found(db, alice, bob):
    task = await task_service.create_task(db, "Mine", None, alice.id)
    await db.commit()

    with pytest.raises(NotFoundError):
        await task_service.update_task(db, task.id, bob.id, title="Hijacked")


async def test_set_completed_toggles(db, alice):
    task = await task_service.create_task(db, "Toggle", None, alice.id)
    await db.commit()

    assert (await task_service.set_completed(db, task.id, True, alice.id)).is_completed is True
    assert (await task_service.set_completed(db, task.id, False, alice.id)).is_completed is False


async def test_delete_is_soft_and_leaves_children(db, alice):
    parent = await task_service.create_task(db, "Parent", None, alice.id)
    child = await task_service.create_task(db, "Child", None, alice.id, parent_task_id=parent.id)
    await db.commit()

    await task_service.delete_task(db, parent.id, alice.id)
    await db.commit()

    row = await db.get(Task, parent.id)
    assert row is not None
    assert row.is_deleted is True

    remaining = await task_service.get_task_by_id(db, child.id, alice.id)
    assert remaining.parent_task_id == parent.id


async def test_list_tasks_newest_first_and_scoped_to_owner(db, alice, bob):
    base = datetime(2030, 1, 1, tzinfo=timezone.utc)
    for i, title in enumerate(["first", "second", "third"]):
        db.add(Task(owner_user_id=alice.id, title=title, created_at=base + timedelta(minutes=i)))
    db.add(Task(owner_user_id=bob.id, title="bob's", created_at=base))
    db.add(Task(owner_user_id=alice.id, title="deleted", is_deleted=True, created_at=base + timedelta(hours=1)))
    await db.commit()

    titles = [t.title for t in await task_service.list_tasks(db, alice.id)]
    assert titles == ["third", "second", "first"]

    everything = [t.title for t in await task_service.list_all_tasks(db, alice.id)]
    assert everything[0] == "deleted"
    assert len(everything) == 4


async def test_root_tasks_exclude_subtasks(db, alice):
    root = await task_service.create_task(db, "Root", None, alice.id)
    await task_service.create_task(db, "Child", None, alice.id, parent_task_id=root.id)
    await db.commit()

    roots = await task_service.get_root_tasks(db, alice.id)
    assert [t.id for t in roots] == [root.id]


async def test_list_tasks_page_returns_total_and_slice(db, alice):
    base = datetime(2030, 1, 1, tzinfo=timezone.utc)
    for i in range(5):
        db.add(Task(owner_user_id=alice.id, title=f"t{i}", created_at=base + timedelta(minutes=i)))
    await db.commit()

    items, total = await task_service.list_tasks_page(db, alice.id, build_page_request(1, 2, "createdAt", "desc"))
    assert total == 5
    assert [t.title for t in items] == ["t2", "t1"]

    items, _ = await task_service.list_tasks_page(db, alice.id, build_page_request(0, 3, "title", "asc"))
    assert [t.title for t in items] == ["t0", "t1", "t2"]


async def test_summaries_carry_child_and_attachment_counts(db, alice):
    parent = await task_service.create_task(db, "Parent", None, alice.id)
    await task_service.create_task(db, "A", None, alice.id, parent_task_id=parent.id)
    gone = await task_service.create_task(db, "B", None, alice.id, parent_task_id=parent.id)
    await task_service.delete_task(db, gone.id, alice.id)
    await db.commit()

    summary = await task_service.summarize_task(db, parent, alice.id)
    assert summary.subtask_count == 1
    assert summary.attachment_count == 0
    assert summary.subtasks is None


async def test_second_delete_is_not_found(db, alice):
    task = await task_service.create_task(db, "Once", None, alice.id)
    await task_service.delete_task(db, task.id, alice.id)
    await db.commit()

    with pytest.raises(NotFoundError):
        await task_service.delete_task(db, task.id, alice.id)
