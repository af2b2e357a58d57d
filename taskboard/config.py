"""Dataclass-based Taskboard configuration.

Policy values (target timezone, invitation validity, reminder windows) live
in frozen dataclasses so they can be injected into services and replaced
in tests. Nothing in the domain reads these from module-level constants.
"""

import os
from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DeadlineConfig:
    """Deadline/status computation settings."""

    timezone_offset_hours: int = 8  # hours east of UTC


@dataclass(frozen=True)
class CollaborationConfig:
    """Workspace sharing limits."""

    invitation_valid_days: int = 7
    max_workspace_title_length: int = 100
    activity_log_limit: int = 50
    notification_list_limit: int = 50
    default_share_link_role: str = "viewer"


@dataclass(frozen=True)
class ReminderConfig:
    """Reminder job thresholds."""

    default_hours_before: int = 24
    grace_hours: float = 1.0  # cron delay tolerated after the deadline


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TaskboardConfig:
    """Complete configuration for the Taskboard app.

    Usage::

        config = TaskboardConfig.from_env()
        engine = DeadlineEngine(config.deadlines.timezone_offset_hours)
    """

    deadlines: DeadlineConfig = field(default_factory=DeadlineConfig)
    collaboration: CollaborationConfig = field(default_factory=CollaborationConfig)
    reminders: ReminderConfig = field(default_factory=ReminderConfig)

    app_base_url: str = "http://localhost:5173"
    cron_secret: str = ""

    @classmethod
    def default(cls) -> "TaskboardConfig":
        """Create config with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "TASKBOARD_") -> "TaskboardConfig":
        """Create config from environment variables.

        Example: TASKBOARD_TIMEZONE_OFFSET_HOURS=-5
        """
        deadlines = DeadlineConfig()
        offset = os.getenv(f"{prefix}TIMEZONE_OFFSET_HOURS")
        if offset:
            deadlines = DeadlineConfig(timezone_offset_hours=int(offset))

        collaboration = CollaborationConfig()
        valid_days = os.getenv(f"{prefix}INVITATION_VALID_DAYS")
        if valid_days:
            collaboration = CollaborationConfig(invitation_valid_days=int(valid_days))

        reminders = ReminderConfig()
        hours_before = os.getenv(f"{prefix}REMINDER_HOURS_BEFORE")
        if hours_before:
            reminders = ReminderConfig(default_hours_before=int(hours_before))

        overrides = {}
        app_url = os.getenv(f"{prefix}APP_URL")
        if app_url:
            overrides["app_base_url"] = app_url.rstrip("/")
        cron_secret = os.getenv(f"{prefix}CRON_SECRET")
        if cron_secret:
            overrides["cron_secret"] = cron_secret

        return cls(
            deadlines=deadlines,
            collaboration=collaboration,
            reminders=reminders,
            **overrides,
        )


_config: TaskboardConfig | None = None


def get_config() -> TaskboardConfig:
    """FastAPI dependency returning the process-wide configuration."""
    global _config
    if _config is None:
        _config = TaskboardConfig.from_env()
    return _config
