"""Dashboard statistics for a user's own tasks.

Calendar boundaries (today, this week starting Monday, this month) are taken
in the configured target timezone, the same one deadlines are computed in.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from taskboard.config import TaskboardConfig, get_config
from taskboard.deadlines import DeadlineEngine, TaskStatus
from taskboard.models.db_models import Task
from taskboard.models.schemas import Priority
from taskboard.repository import TaskRepository

MAX_STREAK_DAYS = 365


def _empty_priority_counts() -> dict[str, int]:
    counts = {p.value: 0 for p in Priority}
    counts["unprioritized"] = 0
    return counts


@dataclass
class DashboardStats:
    total_tasks: int = 0
    pending_tasks: int = 0
    overdue_tasks: int = 0
    tasks_due_today: int = 0
    tasks_done_today: int = 0
    tasks_done_this_week: int = 0
    tasks_done_this_month: int = 0
    tasks_done_all_time: int = 0
    tasks_done_on_time: int = 0
    tasks_done_late: int = 0
    priority_counts: dict[str, int] = field(default_factory=_empty_priority_counts)
    completion_rate: int = 0
    current_streak: int = 0
    avg_tasks_per_day: float = 0.0
    productivity_score: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def current_streak(completion_days: set[date], today: date) -> int:
    """Consecutive days with a completion, counting back from today.

    A day with nothing done yet does not break the streak until it is over,
    so counting starts from yesterday in that case.
    """
    day = today if today in completion_days else today - timedelta(days=1)
    streak = 0
    while day in completion_days and streak <= MAX_STREAK_DAYS:
        streak += 1
        day -= timedelta(days=1)
    return streak


def productivity_score(stats: DashboardStats) -> int:
    """0-100: on-time rate 40, streak 20, completion rate 20, done today 20."""
    if stats.tasks_done_all_time:
        on_time = stats.tasks_done_on_time / stats.tasks_done_all_time * 40
    else:
        on_time = 20
    streak = min(stats.current_streak, 7) / 7 * 20
    completion = stats.completion_rate / 100 * 20
    today = min(stats.tasks_done_today, 5) / 5 * 20
    return round(on_time + streak + completion + today)


def compute_dashboard_stats(
    tasks: Iterable[Task],
    engine: DeadlineEngine,
    now: datetime,
) -> DashboardStats:
    stats = DashboardStats()
    today = engine.local_date(now)
    week_start = today - timedelta(days=today.weekday())
    completion_days: set[date] = set()

    for task in tasks:
        stats.total_tasks += 1
        priority = (task.priority or "").lower() or "unprioritized"
        if priority not in stats.priority_counts:
            priority = "unprioritized"
        stats.priority_counts[priority] += 1

        status = engine.status_for(task, now)
        if task.is_completed:
            if task.completed_at is None:
                continue
            stats.tasks_done_all_time += 1
            done_on = engine.local_date(task.completed_at)
            completion_days.add(done_on)
            if done_on == today:
                stats.tasks_done_today += 1
            if week_start <= done_on <= today:
                stats.tasks_done_this_week += 1
            if (done_on.year, done_on.month) == (today.year, today.month):
                stats.tasks_done_this_month += 1
            if status is TaskStatus.LATE:
                stats.tasks_done_late += 1
            else:
                stats.tasks_done_on_time += 1
        else:
            stats.pending_tasks += 1
            if task.due_date == today.isoformat():
                stats.tasks_due_today += 1
            if status is TaskStatus.INCOMPLETE:
                stats.overdue_tasks += 1

    stats.current_streak = current_streak(completion_days, today)
    if stats.total_tasks:
        stats.completion_rate = round(stats.tasks_done_all_time / stats.total_tasks * 100)
    days_this_week = today.weekday() + 1
    stats.avg_tasks_per_day = round(stats.tasks_done_this_week / days_this_week, 1)
    stats.productivity_score = productivity_score(stats)
    return stats


class StatsService:
    def __init__(self, session: AsyncSession, config: TaskboardConfig):
        self.engine = DeadlineEngine(offset_hours=config.deadlines.timezone_offset_hours)
        self.tasks = TaskRepository(session)

    async def dashboard(self, user_id: str, now: datetime | None = None) -> DashboardStats:
        now = now or datetime.now(timezone.utc)
        return compute_dashboard_stats(await self.tasks.list_for_user(user_id), self.engine, now)


def get_stats_service(
    session: AsyncSession = Depends(get_session),
    config: TaskboardConfig = Depends(get_config),
) -> StatsService:
    """FastAPI dependency for StatsService."""
    return StatsService(session, config)
