"""Test task operations and their authorization."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from helpers import add_member, add_task, add_workspace
from taskboard.config import TaskboardConfig
from taskboard.errors import ForbiddenError, NotFoundError, ValidationError
from taskboard.models.db_models import ActivityLogEntry, TaskAssignment
from taskboard.models.schemas import TaskCreate, TaskUpdate
from taskboard.tasks import TaskService


@pytest.fixture
def service(session):
    return TaskService(session, TaskboardConfig())


@pytest.mark.asyncio
async def test_add_task_defaults(service):
    task = await service.add_task("u1", TaskCreate(title="  Write report  "))
    assert task["title"] == "Write report"
    assert task["priority"] == "standard"
    assert task["dueDate"] is None
    assert task["status"] == "pending"


@pytest.mark.asyncio
async def test_due_time_dropped_without_due_date(service):
    task = await service.add_task("u1", TaskCreate(title="x", due_time="10:00"))
    assert task["dueTime"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "fields,field",
    [
        ({"title": "   "}, "title"),
        ({"title": "x", "due_date": "2024-13-01"}, "dueDate"),
        ({"title": "x", "due_date": "2024-01-01", "due_time": "7pm"}, "dueTime"),
        ({"title": "x", "priority": "critical"}, "priority"),
    ],
)
async def test_add_task_validation(service, fields, field):
    with pytest.raises(ValidationError) as exc:
        await service.add_task("u1", TaskCreate(**fields))
    assert exc.value.field == field


@pytest.mark.asyncio
async def test_viewer_can_add_but_not_delete_others_task(session, service):
    ws = await add_workspace(session, "owner")
    await add_member(session, ws.id, "vic", "viewer")
    owners_task = await add_task(session, "owner", board_id=ws.id)

    created = await service.add_task("vic", TaskCreate(title="Mine", board_id=ws.id))
    assert created["boardId"] == ws.id

    with pytest.raises(ForbiddenError):
        await service.delete_task(owners_task.id, "vic")
    # Still the author of their own task.
    await service.delete_task(created["id"], "vic")


@pytest.mark.asyncio
async def test_non_member_cannot_add_to_workspace(session, service):
    ws = await add_workspace(session, "owner")
    with pytest.raises(ForbiddenError):
        await service.add_task("stranger", TaskCreate(title="x", board_id=ws.id))


@pytest.mark.asyncio
async def test_editor_can_edit_but_not_delete(session, service):
    ws = await add_workspace(session, "owner")
    await add_member(session, ws.id, "eddie", "editor")
    task = await add_task(session, "owner", board_id=ws.id)

    updated = await service.update_priority(task.id, "eddie", "high")
    assert updated["priority"] == "high"
    with pytest.raises(ForbiddenError):
        await service.delete_task(task.id, "eddie")


@pytest.mark.asyncio
async def test_missing_task_is_not_found(service):
    with pytest.raises(NotFoundError):
        await service.toggle_completion("missing", "u1")


@pytest.mark.asyncio
async def test_toggle_sets_and_clears_completed_at(session, service):
    task = await add_task(session, "u1")
    done = await service.toggle_completion(task.id, "u1")
    assert done["isCompleted"] is True
    assert done["completedAt"] is not None
    assert done["status"] == "complete"

    reopened = await service.toggle_completion(task.id, "u1")
    assert reopened["isCompleted"] is False
    assert reopened["completedAt"] is None


@pytest.mark.asyncio
async def test_due_date_change_resets_reminder_flags(session, service):
    task = await add_task(
        session, "u1", due_date="2024-03-15", due_time="09:00",
        reminder_sent_24hr=True, email_reminder_sent_24hr=True,
    )
    moved = await service.update_due_date(task.id, "u1", "2024-03-16", "09:00")
    assert moved["reminderSent24hr"] is False
    assert moved["emailReminderSent24hr"] is False


@pytest.mark.asyncio
async def test_moving_to_another_day_keeps_due_time(session, service):
    task = await add_task(session, "u1", due_date="2024-03-15", due_time="15:00")
    moved = await service.update_due_date(task.id, "u1", "2024-03-16")
    assert moved["dueDate"] == "2024-03-16"
    assert moved["dueTime"] == "15:00"
    assert moved["deadline"] == "2024-03-16T07:00:00+00:00"


@pytest.mark.asyncio
async def test_moving_off_the_calendar_clears_due_time(session, service):
    task = await add_task(session, "u1", due_date="2024-03-15", due_time="15:00")
    moved = await service.update_due_date(task.id, "u1", None)
    assert moved["dueDate"] is None
    assert moved["dueTime"] is None


@pytest.mark.asyncio
async def test_unrelated_edit_keeps_reminder_flags(session, service):
    task = await add_task(
        session, "u1", due_date="2024-03-15",
        reminder_sent_24hr=True, email_reminder_sent_24hr=True,
    )
    updated = await service.update_task(task.id, "u1", TaskUpdate(description="notes"))
    assert updated["reminderSent24hr"] is True


@pytest.mark.asyncio
async def test_update_cannot_blank_title(session, service):
    task = await add_task(session, "u1")
    with pytest.raises(ValidationError):
        await service.update_task(task.id, "u1", TaskUpdate(title=""))


@pytest.mark.asyncio
async def test_clearing_due_date_clears_time(session, service):
    task = await add_task(session, "u1", due_date="2024-03-15", due_time="09:00")
    updated = await service.update_task(task.id, "u1", TaskUpdate(due_date=None))
    assert updated["dueDate"] is None
    assert updated["dueTime"] is None


@pytest.mark.asyncio
async def test_batch_delete_skips_unauthorized_and_missing(session, service):
    ws = await add_workspace(session, "owner")
    await add_member(session, ws.id, "eddie", "editor")
    mine = await add_task(session, "eddie", board_id=ws.id)
    theirs = await add_task(session, "owner", board_id=ws.id)
    session.add(TaskAssignment(
        task_id=mine.id, workspace_id=ws.id, user_id="eddie", assigned_by="owner",
    ))
    await session.flush()

    result = await service.batch_delete([mine.id, theirs.id, "ghost", mine.id], "eddie")
    assert result == {"deleted": 1, "skipped": 2}
    assert await service.tasks.get(theirs.id) is not None
    assert await service.tasks.get(mine.id) is None
    assert await service.assignments.count(task_id=mine.id) == 0


@pytest.mark.asyncio
async def test_board_listing_order(session, service):
    ws = await add_workspace(session, "owner")
    now = datetime.now(timezone.utc)
    far = (now + timedelta(days=30)).date().isoformat()
    near = (now + timedelta(days=3)).date().isoformat()
    past = (now - timedelta(days=3)).date().isoformat()

    await add_task(session, "owner", ws.id, "done", is_completed=True, completed_at=now)
    await add_task(session, "owner", ws.id, "far", due_date=far)
    await add_task(session, "owner", ws.id, "overdue", due_date=past)
    await add_task(session, "owner", ws.id, "near", due_date=near)
    await add_task(session, "owner", ws.id, "someday")

    tasks = await service.list_board_tasks(ws.id, "owner")
    assert [t["title"] for t in tasks] == ["near", "far", "someday", "overdue", "done"]
    assert [t["status"] for t in tasks] == ["pending", "pending", "pending", "incomplete", "complete"]


@pytest.mark.asyncio
async def test_board_listing_requires_membership(session, service):
    ws = await add_workspace(session, "owner")
    with pytest.raises(ForbiddenError):
        await service.list_board_tasks(ws.id, "stranger")


@pytest.mark.asyncio
async def test_workspace_task_writes_are_logged(session, service):
    ws = await add_workspace(session, "owner")
    created = await service.add_task("owner", TaskCreate(title="Plan", board_id=ws.id))
    await service.toggle_completion(created["id"], "owner")

    rows = (await session.execute(
        select(ActivityLogEntry.action).where(ActivityLogEntry.workspace_id == ws.id)
    )).scalars().all()
    assert sorted(rows) == ["task_completed", "task_created"]
