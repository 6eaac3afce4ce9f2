from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event

from todo_api.exceptions import NotFoundError
from todo_api.models.tasks import Task
from todo_api.services import attachments as attachment_service
from todo_api.services import tasks as task_service


@pytest.fixture
async def groceries(db, alice):
    root = await task_service.create_task(db, "Groceries", None, alice.id)
    milk = await task_service.create_task(db, "Milk", None, alice.id, parent_task_id=root.id)
    two_percent = await task_service.create_task(db, "2%", None, alice.id, parent_task_id=milk.id)
    await db.commit()
    return root, milk, two_percent


async def test_depth_one_returns_direct_children(db, alice, groceries):
    root, milk, _ = groceries
    found = await task_service.get_subtasks_recursively(db, root.id, alice.id, max_depth=1)
    assert [t.id for t in found] == [milk.id]


async def test_depth_two_returns_grandchildren_after_children(db, alice, groceries):
    root, milk, two_percent = groceries
    found = await task_service.get_subtasks_recursively(db, root.id, alice.id, max_depth=2)
    assert [t.id for t in found] == [milk.id, two_percent.id]


@pytest.mark.parametrize("depth", [0, -1])
async def test_non_positive_depth_returns_nothing(db, alice, groceries, depth):
    root, _, _ = groceries
    assert await task_service.get_subtasks_recursively(db, root.id, alice.id, max_depth=depth) == []


async def test_siblings_are_newest_first_within_a_level(db, alice):
    base = datetime(2030, 1, 1, tzinfo=timezone.utc)
    root = Task(owner_user_id=alice.id, title="root", created_at=base)
    db.add(root)
    await db.flush()
    older = Task(owner_user_id=alice.id, title="older", parent_task_id=root.id, created_at=base + timedelta(minutes=1))
    newer = Task(owner_user_id=alice.id, title="newer", parent_task_id=root.id, created_at=base + timedelta(minutes=2))
    db.add_all([older, newer])
    await db.flush()
    nested = Task(owner_user_id=alice.id, title="nested", parent_task_id=older.id, created_at=base + timedelta(minutes=3))
    db.add(nested)
    await db.commit()

    found = await task_service.get_subtasks_recursively(db, root.id, alice.id, max_depth=5)
    assert [t.title for t in found] == ["newer", "older", "nested"]


async def test_deleted_node_hides_its_descendants(db, alice, groceries):
    root, milk, _ = groceries
    await task_service.delete_task(db, milk.id, alice.id)
    await db.commit()

    assert await task_service.get_subtasks_recursively(db, root.id, alice.id, max_depth=5) == []


async def test_foreign_parent_has_no_subtasks(db, bob, groceries):
    root, _, _ = groceries
    assert await task_service.get_subtasks(db, root.id, bob.id) == []
    assert await task_service.get_subtasks_recursively(db, root.id, bob.id, max_depth=3) == []


async def test_direct_subtasks_only(db, alice, groceries):
    root, milk, _ = groceries
    children = await task_service.get_subtasks(db, root.id, alice.id)
    assert [t.id for t in children] == [milk.id]


async def test_tree_expands_to_depth(db, alice, groceries):
    root, milk, two_percent = groceries

    tree = await task_service.get_task_with_subtasks(db, root.id, alice.id, max_depth=2)
    assert tree.id == root.id
    assert tree.subtask_count == 1
    assert [s.id for s in tree.subtasks] == [milk.id]

    milk_node = tree.subtasks[0]
    assert milk_node.subtask_count == 1
    assert [s.id for s in milk_node.subtasks] == [two_percent.id]

    leaf = milk_node.subtasks[0]
    assert leaf.subtasks is None
    assert leaf.subtask_count == 0


async def test_tree_reports_real_count_when_depth_is_exhausted(db, alice, groceries):
    root, _, _ = groceries

    tree = await task_service.get_task_with_subtasks(db, root.id, alice.id, max_depth=1)
    milk_node = tree.subtasks[0]
    assert milk_node.subtasks is None
    assert milk_node.subtask_count == 1

    shallow = await task_service.get_task_with_subtasks(db, root.id, alice.id, max_depth=0)
    assert shallow.subtasks is None
    assert shallow.subtask_count == 1


async def test_tree_of_foreign_task_is_not_found(db, bob, groceries):
    root, _, _ = groceries
    with pytest.raises(NotFoundError):
        await task_service.get_task_with_subtasks(db, root.id, bob.id, max_depth=3)


async def test_tree_queries_do_not_grow_with_width(db, engine, alice, blob_store):
    statements = []

    def count(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    root = await task_service.create_task(db, "Party", None, alice.id)
    for name in ("Cake", "Balloons"):
        await task_service.create_task(db, name, None, alice.id, parent_task_id=root.id)
    await db.commit()

    event.listen(engine.sync_engine, "before_cursor_execute", count)
    try:
        await task_service.get_task_with_subtasks(db, root.id, alice.id, max_depth=3)
        narrow = len(statements)

        for i in range(6):
            child = await task_service.create_task(db, f"Guest {i}", None, alice.id, parent_task_id=root.id)
            await attachment_service.upload_and_attach(db, blob_store, child.id, b"rsvp", "rsvp.txt", None, alice.id)
        await db.commit()

        statements.clear()
        tree = await task_service.get_task_with_subtasks(db, root.id, alice.id, max_depth=3)
        wide = len(statements)
    finally:
        event.remove(engine.sync_engine, "before_cursor_execute", count)

    assert wide == narrow
    assert tree.subtask_count == 8
    assert sum(child.attachment_count for child in tree.subtasks) == 6
    assert all(child.subtasks is None and child.subtask_count == 0 for child in tree.subtasks)
