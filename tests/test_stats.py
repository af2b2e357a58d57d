"""Test dashboard statistics."""
from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from helpers import add_task
from taskboard.config import TaskboardConfig
from taskboard.deadlines import DeadlineEngine, TaskStatus
from taskboard.stats import StatsService, compute_dashboard_stats, current_streak

ENGINE = DeadlineEngine(offset_hours=8)
# Wednesday 2024-03-13, 12:00 in the target timezone.
NOW = datetime(2024, 3, 13, 4, 0, tzinfo=timezone.utc)


def task(priority="standard", due_date=None, due_time=None, completed_at=None, is_completed=None):
    return SimpleNamespace(
        priority=priority,
        due_date=due_date,
        due_time=due_time,
        completed_at=completed_at,
        is_completed=completed_at is not None if is_completed is None else is_completed,
    )


def at(day, hour):
    return datetime(2024, 3, day, hour, 0, tzinfo=timezone.utc)


def test_dashboard_counts():
    tasks = [
        task("high", due_date="2024-03-14", completed_at=at(13, 2)),
        task("urgent", due_date="2024-03-11", completed_at=at(12, 3)),  # late
        task("low", completed_at=at(11, 1)),  # no deadline counts as on time
        task(completed_at=at(1, 5)),
        task(due_date="2024-03-13"),
        task("", due_date="2024-03-10"),
    ]
    stats = compute_dashboard_stats(tasks, ENGINE, NOW)

    assert stats.total_tasks == 6
    assert stats.pending_tasks == 2
    assert stats.overdue_tasks == 1
    assert stats.tasks_due_today == 1
    assert stats.tasks_done_today == 1
    assert stats.tasks_done_this_week == 3
    assert stats.tasks_done_this_month == 4
    assert stats.tasks_done_all_time == 4
    assert stats.tasks_done_on_time == 3
    assert stats.tasks_done_late == 1
    assert stats.completion_rate == 67
    assert stats.current_streak == 3
    assert stats.avg_tasks_per_day == 1.0
    assert stats.priority_counts == {
        "low": 1, "standard": 2, "high": 1, "urgent": 1, "unprioritized": 1,
    }
    # 30 on time + 8.57 streak + 13.4 completion + 4 today
    assert stats.productivity_score == 56


def test_empty_dashboard():
    stats = compute_dashboard_stats([], ENGINE, NOW)
    assert stats.total_tasks == 0
    assert stats.completion_rate == 0
    assert stats.productivity_score == 20


def test_completed_without_timestamp_is_not_counted_as_done():
    stats = compute_dashboard_stats([task(is_completed=True)], ENGINE, NOW)
    assert stats.total_tasks == 1
    assert stats.tasks_done_all_time == 0
    assert stats.pending_tasks == 0


def test_completion_day_uses_target_timezone():
    # 20:00 UTC on the 12th is already the 13th at +8.
    stats = compute_dashboard_stats([task(completed_at=at(12, 20))], ENGINE, NOW)
    assert stats.tasks_done_today == 1


@pytest.mark.parametrize(
    "days,expected",
    [
        ({date(2024, 3, 13), date(2024, 3, 12)}, 2),
        # Nothing yet today: the streak runs through yesterday.
        ({date(2024, 3, 12), date(2024, 3, 11)}, 2),
        ({date(2024, 3, 11)}, 0),
        (set(), 0),
    ],
)
def test_current_streak(days, expected):
    assert current_streak(days, date(2024, 3, 13)) == expected


@pytest.mark.asyncio
async def test_service_reads_only_own_tasks(session):
    await add_task(session, "u1", due_date="2024-03-13", completed_at=at(13, 1), is_completed=True)
    await add_task(session, "u1")
    await add_task(session, "u2")

    stats = await StatsService(session, TaskboardConfig()).dashboard("u1", now=NOW)
    assert stats.total_tasks == 2
    assert stats.to_dict()["tasks_done_today"] == 1


def test_on_time_split_matches_task_status():
    exactly_due = task(due_date="2024-03-12", due_time="15:00", completed_at=at(12, 7))
    a_minute_late = task(
        due_date="2024-03-12", due_time="15:00",
        completed_at=datetime(2024, 3, 12, 7, 1, tzinfo=timezone.utc),
    )
    stats = compute_dashboard_stats([exactly_due, a_minute_late], ENGINE, NOW)
    assert stats.tasks_done_on_time == 1
    assert stats.tasks_done_late == 1
    assert [ENGINE.status_for(t, NOW) for t in (exactly_due, a_minute_late)] == [
        TaskStatus.COMPLETE, TaskStatus.LATE,
    ]
