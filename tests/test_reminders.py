"""Test the reminder job."""
import json
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from helpers import add_profile, add_task
from taskboard.config import TaskboardConfig
from taskboard.models.db_models import UserNotification
from taskboard.reminders import ReminderJob

# 08:00 on 2024-03-15 in the +8 target timezone.
NOW = datetime(2024, 3, 15, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def config():
    return TaskboardConfig(app_base_url="https://board.test")


async def seed(session):
    await add_profile(session, "u1", email="u1@example.com", timezone="Asia/Manila")
    await add_profile(session, "u2", email="u2@example.com", reminder_hours_before=1)
    tasks = {
        "soon": await add_task(session, "u1", title="Soon", due_date="2024-03-15", due_time="15:00"),
        "later": await add_task(session, "u1", title="Later", due_date="2024-03-17", due_time="12:00"),
        "just_missed": await add_task(session, "u1", title="Just missed", due_date="2024-03-15", due_time="07:30"),
        "long_overdue": await add_task(session, "u1", title="Old", due_date="2024-03-14", due_time="12:00"),
        "done": await add_task(session, "u1", title="Done", due_date="2024-03-15",
                               is_completed=True, completed_at=NOW),
        "reminded": await add_task(session, "u1", title="Reminded", due_date="2024-03-15",
                                   reminder_sent_24hr=True, email_reminder_sent_24hr=True),
        # Due 00:05 tomorrow; u2 only wants an hour's notice.
        "short_notice": await add_task(session, "u2", title="Short", due_date="2024-03-16", due_time="00:05"),
    }
    return tasks


@pytest.mark.asyncio
async def test_reminder_run_selects_precise_window(session, config, email_sender, outbox):
    tasks = await seed(session)
    result = await ReminderJob(session, config, email_sender).run(now=NOW)

    assert result.to_dict() == {"considered": 5, "notified": 2, "emailed": 2}
    assert tasks["soon"].reminder_sent_24hr is True
    assert tasks["just_missed"].email_reminder_sent_24hr is True
    assert tasks["later"].reminder_sent_24hr is False
    assert tasks["short_notice"].reminder_sent_24hr is False

    notes = (await session.execute(select(UserNotification))).scalars().all()
    assert sorted(n.task_id for n in notes) == sorted([tasks["soon"].id, tasks["just_missed"].id])
    assert all(n.type == "task_reminder" for n in notes)

    assert len(outbox.requests) == 1
    payload = json.loads(outbox.requests[0].content)
    assert payload["to"] == ["u1@example.com"]
    assert payload["subject"] == "2 tasks due soon"
    assert "Soon" in payload["text"] and "Just missed" in payload["text"]
    assert outbox.requests[0].headers["Authorization"] == "Bearer test-key"


@pytest.mark.asyncio
async def test_second_run_sends_nothing(session, config, email_sender, outbox):
    await seed(session)
    job = ReminderJob(session, config, email_sender)
    await job.run(now=NOW)
    again = await job.run(now=NOW)
    assert again.notified == 0
    assert again.emailed == 0
    assert len(outbox.requests) == 1


@pytest.mark.asyncio
async def test_failed_email_is_retried_next_run(session, config, email_sender, outbox):
    tasks = await seed(session)
    job = ReminderJob(session, config, email_sender)

    outbox.fail = True
    first = await job.run(now=NOW)
    assert first.notified == 2
    assert first.emailed == 0
    assert first.failed_emails == ["u1"]
    assert tasks["soon"].email_reminder_sent_24hr is False

    outbox.fail = False
    second = await job.run(now=NOW)
    assert second.notified == 0
    assert second.emailed == 2


@pytest.mark.asyncio
async def test_short_preference_reminds_within_the_hour(session, config, email_sender):
    await seed(session)
    # 23:30 local on the 15th: 35 minutes before the 00:05 deadline.
    late_evening = datetime(2024, 3, 15, 15, 30, tzinfo=timezone.utc)
    result = await ReminderJob(session, config, email_sender).run(now=late_evening)
    notes = (await session.execute(
        select(UserNotification).where(UserNotification.user_id == "u2")
    )).scalars().all()
    assert len(notes) == 1
    assert result.notified >= 1


@pytest.mark.asyncio
async def test_owner_without_profile_gets_in_app_reminder_only(session, config, email_sender, outbox):
    await add_task(session, "ghost", title="No profile", due_date="2024-03-15", due_time="12:00")
    result = await ReminderJob(session, config, email_sender).run(now=NOW)
    assert result.notified == 1
    assert result.emailed == 0
    assert outbox.requests == []
