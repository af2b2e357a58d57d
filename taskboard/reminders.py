"""Deadline reminder job, run from a cron trigger.

The store query is bounded by whole calendar days and only narrows the
candidate set. Each candidate is then checked against the precise window
of its owner's preference:

    -grace_hours < hours_until_due <= reminder_hours_before

so a task due at 00:05 tomorrow is not reminded a day early for a user
who asked for one hour's notice.

Each eligible task gets one in-app notification. Owners with an email
address additionally get one email listing all their eligible tasks; the
email flag is only set when delivery succeeds, so failed sends are retried
on the next run.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from core.integrations import EmailMessage, EmailSender
from taskboard.activity import NotificationService, display_name
from taskboard.config import TaskboardConfig, get_config
from taskboard.deadlines import DeadlineEngine, hours_until
from taskboard.models.db_models import Task, UserProfile
from taskboard.models.schemas import NotificationType
from taskboard.repository import ProfileRepository, TaskRepository
from taskboard.rules import (
    check_has_deadline,
    check_has_owner,
    check_reminder_not_sent,
    check_reminder_window,
    evaluate_rules,
)

logger = logging.getLogger(__name__)

# Upper bound on a user's reminder preference; sizes the coarse date query.
MAX_REMINDER_HOURS = 168


@dataclass
class DueTask:
    task: Task
    deadline: datetime
    hours_until_due: float


@dataclass
class ReminderRunResult:
    considered: int = 0
    notified: int = 0
    emailed: int = 0
    failed_emails: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "considered": self.considered,
            "notified": self.notified,
            "emailed": self.emailed,
        }


def format_due(deadline: datetime, tz_name: str | None, fallback_tz) -> str:
    """Deadline rendered in the recipient's own timezone."""
    try:
        tz = ZoneInfo(tz_name) if tz_name else fallback_tz
    except (ZoneInfoNotFoundError, ValueError):
        tz = fallback_tz
    return deadline.astimezone(tz).strftime("%a %d %b %H:%M")


def render_reminder_email(
    profile: UserProfile,
    due_tasks: list[DueTask],
    app_base_url: str,
    fallback_tz,
) -> EmailMessage:
    count = len(due_tasks)
    subject = f"{count} task{'s' if count != 1 else ''} due soon"
    lines = [f"Hi {display_name(profile, 'there')},", "", "These tasks are due soon:", ""]
    for item in sorted(due_tasks, key=lambda d: d.deadline):
        due = format_due(item.deadline, profile.timezone, fallback_tz)
        lines.append(f"- {item.task.title} (due {due}, priority {item.task.priority})")
    lines += ["", f"Open your board: {app_base_url}"]
    return EmailMessage(
        to=profile.email,
        subject=subject,
        text="\n".join(lines),
        tags={"category": "task_reminder"},
    )


class ReminderJob:
    """Finds tasks entering their reminder window and notifies owners."""

    def __init__(
        self,
        session: AsyncSession,
        config: TaskboardConfig,
        email_sender: EmailSender,
    ):
        self.config = config
        self.engine = DeadlineEngine(offset_hours=config.deadlines.timezone_offset_hours)
        self.tasks = TaskRepository(session)
        self.profiles = ProfileRepository(session)
        self.notifications = NotificationService(session, config)
        self.email_sender = email_sender

    def candidate_date_range(self, now: datetime) -> tuple[str, str]:
        """Whole-day bounds wide enough for any preference plus the grace period."""
        today = self.engine.today(now)
        days_ahead = math.ceil(MAX_REMINDER_HOURS / 24)
        return (
            (today - timedelta(days=1)).isoformat(),
            (today + timedelta(days=days_ahead)).isoformat(),
        )

    def window_hours(self, profile: UserProfile | None) -> float:
        if profile is not None and profile.reminder_hours_before:
            return float(profile.reminder_hours_before)
        return float(self.config.reminders.default_hours_before)

    def check_eligible(
        self, task: Task, profile: UserProfile | None, now: datetime
    ) -> DueTask | None:
        deadline = self.engine.deadline_for(task)
        remaining = hours_until(deadline, now) if deadline is not None else None
        checks = evaluate_rules(
            check_has_owner(task),
            check_has_deadline(deadline),
            check_reminder_window(
                remaining, self.window_hours(profile), self.config.reminders.grace_hours
            ),
        )
        if not checks.all_passed:
            return None
        return DueTask(task=task, deadline=deadline, hours_until_due=remaining)

    async def _profile(self, cache: dict, user_id: str) -> UserProfile | None:
        if user_id not in cache:
            cache[user_id] = await self.profiles.get(user_id)
        return cache[user_id]

    async def run(self, now: datetime | None = None) -> ReminderRunResult:
        now = now or datetime.now(timezone.utc)
        result = ReminderRunResult()
        profiles: dict[str, UserProfile | None] = {}
        email_batches: dict[str, list[DueTask]] = defaultdict(list)

        date_from, date_to = self.candidate_date_range(now)
        for task in await self.tasks.reminder_candidates(date_from, date_to):
            result.considered += 1
            profile = await self._profile(profiles, task.user_id)
            due = self.check_eligible(task, profile, now)
            if due is None:
                continue

            if check_reminder_not_sent(task).passed:
                tz_name = profile.timezone if profile else None
                due_text = format_due(due.deadline, tz_name, self.engine.tz)
                await self.notifications.notify(
                    task.user_id,
                    NotificationType.TASK_REMINDER,
                    "Task due soon",
                    f'"{task.title}" is due {due_text}',
                    workspace_id=task.board_id,
                    task_id=task.id,
                )
                await self.tasks.apply(task, {"reminder_sent_24hr": True})
                result.notified += 1

            if profile is not None and profile.email and not task.email_reminder_sent_24hr:
                email_batches[task.user_id].append(due)

        for user_id, due_tasks in email_batches.items():
            profile = profiles[user_id]
            message = render_reminder_email(
                profile, due_tasks, self.config.app_base_url, self.engine.tz
            )
            delivery = await self.email_sender.send(message)
            if not delivery.success:
                result.failed_emails.append(user_id)
                continue
            for item in due_tasks:
                await self.tasks.apply(item.task, {"email_reminder_sent_24hr": True})
            result.emailed += len(due_tasks)

        logger.info(
            "Reminder run: %d considered, %d notified, %d emailed, %d email failures",
            result.considered, result.notified, result.emailed, len(result.failed_emails),
        )
        return result


_email_sender: EmailSender | None = None


def get_email_sender() -> EmailSender:
    """FastAPI dependency returning the process-wide email client."""
    global _email_sender
    if _email_sender is None:
        _email_sender = EmailSender()
    return _email_sender


def get_reminder_job(
    session: AsyncSession = Depends(get_session),
    config: TaskboardConfig = Depends(get_config),
    email_sender: EmailSender = Depends(get_email_sender),
) -> ReminderJob:
    """FastAPI dependency for ReminderJob."""
    return ReminderJob(session, config, email_sender)
