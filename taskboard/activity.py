"""Workspace activity feed and per-user notifications."""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from taskboard.config import TaskboardConfig, get_config
from taskboard.errors import NotFoundError
from taskboard.models.db_models import ActivityLogEntry, UserNotification, UserProfile
from taskboard.models.schemas import ActivityAction, NotificationType
from taskboard.repository import ActivityRepository, NotificationRepository, ProfileRepository

logger = logging.getLogger(__name__)


def display_name(profile: UserProfile | None, fallback: str = "Unknown") -> str:
    if profile is None:
        return fallback
    return profile.username or (profile.email or "").split("@")[0] or fallback


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"


def format_time_ago(then: datetime, now: datetime | None = None) -> str:
    """Coarse relative time for activity feeds ("3 hours ago", "yesterday")."""
    now = now or datetime.now(timezone.utc)
    seconds = int((now - then).total_seconds())
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return _plural(minutes, "minute")
    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour")
    days = hours // 24
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return _plural(days // 7, "week")
    if days < 365:
        return _plural(days // 30, "month")
    return _plural(days // 365, "year")


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------

class ActivityRecorder:
    """Appends entries to a workspace's activity feed.

    The actor's username is copied from their profile at write time.
    """

    def __init__(self, session: AsyncSession):
        self.entries = ActivityRepository(session)
        self.profiles = ProfileRepository(session)

    async def record(
        self,
        workspace_id: str | None,
        user_id: str,
        action: ActivityAction,
        details: str,
        task_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ActivityLogEntry | None:
        if not workspace_id:
            return None
        profile = await self.profiles.get(user_id)
        return await self.entries.create({
            "workspace_id": workspace_id,
            "user_id": user_id,
            "username": display_name(profile),
            "action": action.value,
            "details": details,
            "task_id": task_id,
            "metadata_": metadata,
        })

    async def recent(
        self, workspace_id: str, limit: int, now: datetime | None = None
    ) -> list[dict]:
        now = now or datetime.now(timezone.utc)
        rows = await self.entries.recent(workspace_id, limit)
        return [
            {**row.to_dict(), "timeAgo": format_time_ago(row.created_at, now)}
            for row in rows
        ]


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class NotificationService:
    """In-app notifications. A user only ever sees or touches their own."""

    def __init__(self, session: AsyncSession, config: TaskboardConfig):
        self.notifications = NotificationRepository(session)
        self.limit = config.collaboration.notification_list_limit

    async def notify(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        workspace_id: str | None = None,
        task_id: str | None = None,
        from_user_id: str | None = None,
    ) -> UserNotification:
        notification = await self.notifications.create({
            "user_id": user_id,
            "type": type.value,
            "title": title,
            "message": message,
            "workspace_id": workspace_id,
            "task_id": task_id,
            "from_user_id": from_user_id,
        })
        logger.debug("Notification %s queued for %s", type.value, user_id)
        return notification

    async def list_for_user(self, user_id: str, unread_only: bool = False) -> list[dict]:
        rows = await self.notifications.for_user(user_id, unread_only, self.limit)
        return [row.to_dict() for row in rows]

    async def unread_count(self, user_id: str) -> int:
        return await self.notifications.unread_count(user_id)

    async def _own(self, notification_id: str, user_id: str) -> UserNotification:
        notification = await self.notifications.get(notification_id)
        # Someone else's notification reads as missing.
        if notification is None or notification.user_id != user_id:
            raise NotFoundError("Notification not found")
        return notification

    async def mark_read(self, notification_id: str, user_id: str) -> dict:
        notification = await self._own(notification_id, user_id)
        await self.notifications.apply(notification, {"is_read": True})
        return notification.to_dict()

    async def mark_all_read(self, user_id: str) -> int:
        return await self.notifications.mark_all_read(user_id)

    async def delete(self, notification_id: str, user_id: str) -> None:
        notification = await self._own(notification_id, user_id)
        await self.notifications.delete(notification.id)


def get_notification_service(
    session: AsyncSession = Depends(get_session),
    config: TaskboardConfig = Depends(get_config),
) -> NotificationService:
    """FastAPI dependency for NotificationService."""
    return NotificationService(session, config)
