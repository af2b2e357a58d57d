"""Task operations: add, edit, move, complete, delete, list.

Every mutation follows the same sequence: load the task, check
`task owner OR workspace capability`, then write. The check and the write
are separate round trips (see taskboard.permissions).

Status is attached to every task returned, recomputed at read time.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from taskboard.activity import ActivityRecorder
from taskboard.config import TaskboardConfig, get_config
from taskboard.deadlines import STATUS_ORDER, DeadlineEngine, TaskStatus
from taskboard.errors import NotFoundError
from taskboard.models.db_models import Task
from taskboard.models.schemas import ActivityAction, TaskCreate, TaskUpdate
from taskboard.permissions import Capability, PermissionChecker
from taskboard.repository import AssignmentRepository, TaskRepository
from taskboard.validation import (
    validate_due_date,
    validate_due_time,
    validate_priority,
    validate_tags,
    validate_title,
)

logger = logging.getLogger(__name__)

_NO_DEADLINE = datetime.max.replace(tzinfo=timezone.utc)
_OPEN_STATUSES = (TaskStatus.PENDING, TaskStatus.INCOMPLETE)


def sort_tasks(
    tasks: Iterable[Task],
    engine: DeadlineEngine,
    now: datetime,
) -> list[tuple[Task, TaskStatus]]:
    """Board order: status group, then soonest deadline for open tasks, then newest.

    Open tasks without a deadline go last in their group.
    """
    rows = [(task, engine.status_for(task, now)) for task in tasks]
    rows.sort(key=lambda row: row[0].created_at, reverse=True)

    def group_key(row):
        task, status = row
        due = _NO_DEADLINE
        if status in _OPEN_STATUSES:
            due = engine.deadline_for(task) or _NO_DEADLINE
        return (STATUS_ORDER[status], due)

    rows.sort(key=group_key)
    return rows


class TaskService:
    """Task reads and writes for one request."""

    def __init__(self, session: AsyncSession, config: TaskboardConfig):
        self.engine = DeadlineEngine(offset_hours=config.deadlines.timezone_offset_hours)
        self.tasks = TaskRepository(session)
        self.assignments = AssignmentRepository(session)
        self.permissions = PermissionChecker(session)
        self.activity = ActivityRecorder(session)

    # -- Serialization --

    def serialize(self, task: Task, now: datetime | None = None) -> dict:
        now = now or datetime.now(timezone.utc)
        return task.to_dict(
            status=self.engine.status_for(task, now).value,
            deadline=self.engine.deadline_for(task),
        )

    async def _load(self, task_id: str) -> Task:
        task = await self.tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task not found", task_id=task_id)
        return task

    async def _load_for(self, task_id: str, user_id: str, action: Capability) -> Task:
        task = await self._load(task_id)
        await self.permissions.require_task_permission(task, user_id, action)
        return task

    # -- Reads --

    async def get_task(self, task_id: str, user_id: str) -> dict:
        task = await self._load_for(task_id, user_id, Capability.VIEW)
        return self.serialize(task)

    async def list_board_tasks(self, board_id: str, user_id: str) -> list[dict]:
        await self.permissions.require_action(board_id, user_id, Capability.VIEW)
        now = datetime.now(timezone.utc)
        rows = sort_tasks(await self.tasks.list_for_board(board_id), self.engine, now)
        return [self.serialize(task, now) for task, _ in rows]

    async def list_my_tasks(self, user_id: str) -> list[dict]:
        now = datetime.now(timezone.utc)
        rows = sort_tasks(await self.tasks.list_for_user(user_id), self.engine, now)
        return [self.serialize(task, now) for task, _ in rows]

    # -- Writes --

    async def add_task(self, user_id: str, data: TaskCreate) -> dict:
        """Create a task. Adding into a workspace needs only view access."""
        title = validate_title(data.title)
        due_date = validate_due_date(data.due_date)
        due_time = validate_due_time(data.due_time, due_date)
        priority = validate_priority(data.priority)
        tags = validate_tags(data.tags)

        if data.board_id:
            await self.permissions.require_action(
                data.board_id, user_id, Capability.VIEW,
                "You do not have access to this workspace",
            )

        task = await self.tasks.create({
            "user_id": user_id,
            "board_id": data.board_id or None,
            "title": title,
            "description": data.description or "",
            "priority": priority,
            "tags": tags,
            "due_date": due_date,
            "due_time": due_time,
            "is_completed": False,
            "completed_at": None,
        })
        await self.activity.record(
            task.board_id, user_id, ActivityAction.TASK_CREATED,
            f'created task "{title}"', task_id=task.id,
        )
        logger.info("Task %s created by %s", task.id, user_id)
        return self.serialize(task)

    async def update_task(self, task_id: str, user_id: str, data: TaskUpdate) -> dict:
        """Partial update of the fields present in the request."""
        fields = data.model_dump(exclude_unset=True)
        task = await self._load_for(task_id, user_id, Capability.EDIT)

        changes: dict[str, Any] = {}
        if "title" in fields:
            changes["title"] = validate_title(fields["title"])
        if "description" in fields:
            changes["description"] = fields["description"] or ""
        if "priority" in fields:
            changes["priority"] = validate_priority(fields["priority"])
        if "tags" in fields:
            changes["tags"] = validate_tags(fields["tags"])
        if "due_date" in fields or "due_time" in fields:
            due_date = (
                validate_due_date(fields["due_date"])
                if "due_date" in fields else task.due_date
            )
            due_time = fields["due_time"] if "due_time" in fields else task.due_time
            changes.update(self._schedule_changes(task, due_date, due_time))
        if "is_completed" in fields and fields["is_completed"] is not None:
            changes.update(self._completion_changes(task, bool(fields["is_completed"])))

        await self.tasks.apply(task, changes)
        await self._record_update(task, user_id, changes)
        return self.serialize(task)

    async def update_due_date(
        self,
        task_id: str,
        user_id: str,
        due_date: str | None,
        due_time: str | None = None,
    ) -> dict:
        """Move a task to another day (kanban column).

        The stored time of day is kept unless a new one is given; clearing
        the date clears the time.
        """
        task = await self._load_for(task_id, user_id, Capability.EDIT)
        due_date = validate_due_date(due_date)
        if due_time is None and due_date is not None:
            due_time = task.due_time
        changes = self._schedule_changes(task, due_date, due_time)
        await self.tasks.apply(task, changes)
        await self._record_update(task, user_id, changes)
        return self.serialize(task)

    async def toggle_completion(self, task_id: str, user_id: str) -> dict:
        task = await self._load_for(task_id, user_id, Capability.EDIT)
        changes = self._completion_changes(task, not task.is_completed)
        await self.tasks.apply(task, changes)
        await self._record_update(task, user_id, changes)
        return self.serialize(task)

    async def update_priority(self, task_id: str, user_id: str, priority: str) -> dict:
        task = await self._load_for(task_id, user_id, Capability.EDIT)
        changes = {"priority": validate_priority(priority)}
        await self.tasks.apply(task, changes)
        await self._record_update(task, user_id, changes)
        return self.serialize(task)

    async def delete_task(self, task_id: str, user_id: str) -> None:
        task = await self._load_for(task_id, user_id, Capability.DELETE)
        await self._delete(task, user_id)

    async def batch_delete(self, task_ids: list[str], user_id: str) -> dict:
        """Delete what the caller may delete; skip the rest.

        Missing and unauthorized ids are skipped silently and only counted.
        """
        unique_ids = list(dict.fromkeys(task_ids))
        allowed: list[Task] = []
        for task_id in unique_ids:
            task = await self.tasks.get(task_id)
            if task is None:
                continue
            if not await self.permissions.can_modify_task(task, user_id, Capability.DELETE):
                logger.debug("Batch delete skipping %s for %s", task_id, user_id)
                continue
            allowed.append(task)

        for task in allowed:
            await self._delete(task, user_id)

        skipped = len(unique_ids) - len(allowed)
        logger.info("Batch delete by %s: %d deleted, %d skipped", user_id, len(allowed), skipped)
        return {"deleted": len(allowed), "skipped": skipped}

    # -- Helpers --

    def _schedule_changes(
        self, task: Task, due_date: str | None, due_time: str | None
    ) -> dict[str, Any]:
        due_time = validate_due_time(due_time, due_date)
        changes: dict[str, Any] = {"due_date": due_date, "due_time": due_time}
        if (due_date, due_time) != (task.due_date, task.due_time):
            # New deadline: let the reminder job look at it again.
            changes["reminder_sent_24hr"] = False
            changes["email_reminder_sent_24hr"] = False
        return changes

    @staticmethod
    def _completion_changes(task: Task, completed: bool) -> dict[str, Any]:
        if completed == task.is_completed:
            return {}
        return {
            "is_completed": completed,
            "completed_at": datetime.now(timezone.utc) if completed else None,
        }

    async def _record_update(self, task: Task, user_id: str, changes: dict[str, Any]) -> None:
        if not changes:
            return
        if "is_completed" in changes:
            action = (
                ActivityAction.TASK_COMPLETED
                if changes["is_completed"]
                else ActivityAction.TASK_UNCOMPLETED
            )
            verb = "completed" if changes["is_completed"] else "reopened"
        else:
            action = ActivityAction.TASK_UPDATED
            verb = "updated"
        await self.activity.record(
            task.board_id, user_id, action, f'{verb} task "{task.title}"',
            task_id=task.id,
            metadata={"fields": sorted(changes)},
        )

    async def _delete(self, task: Task, user_id: str) -> None:
        await self.assignments.delete_where(task_id=task.id)
        await self.activity.record(
            task.board_id, user_id, ActivityAction.TASK_DELETED,
            f'deleted task "{task.title}"', task_id=task.id,
        )
        await self.tasks.delete(task.id)


def get_task_service(
    session: AsyncSession = Depends(get_session),
    config: TaskboardConfig = Depends(get_config),
) -> TaskService:
    """FastAPI dependency for TaskService."""
    return TaskService(session, config)
