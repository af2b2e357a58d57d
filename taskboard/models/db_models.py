"""SQLAlchemy models for the Taskboard collections.

One table per document-store collection. Display fields (username, email,
photo) are copied onto membership, assignment and activity rows at write
time; the user profile is their only writer and later renames do not
rewrite existing copies.

The to_dict() method provides the camelCase wire shape used by routers.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.models.base import Base, DocumentMixin, UTCDateTime


class UserProfile(DocumentMixin, Base):
    """Credential record for an identity-provider user. `id` is the user id."""

    __tablename__ = "user_profiles"

    username: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    photo_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    reminder_hours_before: Mapped[int] = mapped_column(Integer, nullable=False, default=24)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "photoUrl": self.photo_url,
            "timezone": self.timezone,
            "reminderHoursBefore": self.reminder_hours_before,
            "createdAt": self._iso(self.created_at),
        }


class Workspace(DocumentMixin, Base):
    """A board. `user_id` is the creator."""

    __tablename__ = "workspaces"

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "createdAt": self._iso(self.created_at),
        }


class WorkspaceMember(DocumentMixin, Base):
    """Membership row; the (workspace, user) pair is unique."""

    __tablename__ = "workspace_members"
    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
    )

    workspace_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    invited_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    joined_via_link: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workspaceId": self.workspace_id,
            "userId": self.user_id,
            "username": self.username,
            "email": self.email,
            "photoUrl": self.photo_url,
            "role": self.role,
            "joinedAt": self._iso(self.joined_at),
            "invitedBy": self.invited_by,
            "joinedViaLink": self.joined_via_link,
        }


class WorkspaceInvitation(DocumentMixin, Base):
    """Email invitation into a workspace with a fixed validity window."""

    __tablename__ = "workspace_invitations"

    workspace_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    workspace_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    invited_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    invited_user_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    invited_by: Mapped[str] = mapped_column(String(128), nullable=False)
    invited_by_username: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def to_dict(self, status: str | None = None) -> dict:
        return {
            "id": self.id,
            "workspaceId": self.workspace_id,
            "workspaceName": self.workspace_name,
            "invitedEmail": self.invited_email,
            "invitedUserId": self.invited_user_id,
            "invitedBy": self.invited_by,
            "invitedByUsername": self.invited_by_username,
            "role": self.role,
            "status": status or self.status,
            "createdAt": self._iso(self.created_at),
            "expiresAt": self._iso(self.expires_at),
        }


class WorkspaceShareLink(DocumentMixin, Base):
    """Tokenized join link. `id` is the token."""

    __tablename__ = "workspace_share_links"

    workspace_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="viewer")
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def token(self) -> str:
        return self.id

    def to_dict(self, join_url: str | None = None) -> dict:
        data = {
            "token": self.id,
            "workspaceId": self.workspace_id,
            "role": self.role,
            "createdBy": self.created_by,
            "createdAt": self._iso(self.created_at),
            "expiresAt": self._iso(self.expires_at),
            "usageLimit": self.usage_limit,
            "usageCount": self.usage_count,
            "isActive": self.is_active,
        }
        if join_url is not None:
            data["joinUrl"] = join_url
        return data


class Task(DocumentMixin, Base):
    """A task. Status is derived on read and never stored."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_board_due", "board_id", "due_date"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    board_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="standard")
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    due_date: Mapped[str | None] = mapped_column(String(10), nullable=True, index=True)
    due_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    reminder_sent_24hr: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_reminder_sent_24hr: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dict(self, status: str | None = None, deadline: datetime | None = None) -> dict:
        data = {
            "id": self.id,
            "userId": self.user_id,
            "boardId": self.board_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "tags": list(self.tags or []),
            "dueDate": self.due_date,
            "dueTime": self.due_time,
            "isCompleted": self.is_completed,
            "completedAt": self._iso(self.completed_at),
            "reminderSent24hr": self.reminder_sent_24hr,
            "emailReminderSent24hr": self.email_reminder_sent_24hr,
            "createdAt": self._iso(self.created_at),
            "updatedAt": self._iso(self.updated_at),
        }
        if status is not None:
            data["status"] = status
        if deadline is not None:
            data["deadline"] = deadline.isoformat()
        return data


class TaskAssignment(DocumentMixin, Base):
    """One row per (task, assignee)."""

    __tablename__ = "task_assignments"
    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_assignment"),
    )

    task_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    workspace_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    assigned_by: Mapped[str] = mapped_column(String(128), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "workspaceId": self.workspace_id,
            "userId": self.user_id,
            "username": self.username,
            "email": self.email,
            "photoUrl": self.photo_url,
            "assignedBy": self.assigned_by,
            "assignedAt": self._iso(self.created_at),
        }


class ActivityLogEntry(DocumentMixin, Base):
    """Workspace activity feed entry."""

    __tablename__ = "activity_log"

    workspace_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    action: Mapped[str] = mapped_column(String(40), nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=False, default="")
    task_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workspaceId": self.workspace_id,
            "userId": self.user_id,
            "username": self.username,
            "action": self.action,
            "details": self.details,
            "taskId": self.task_id,
            "metadata": self.metadata_ or {},
            "createdAt": self._iso(self.created_at),
        }


class UserNotification(DocumentMixin, Base):
    """In-app notification addressed to one user."""

    __tablename__ = "user_notifications"

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    workspace_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    task_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    from_user_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "workspaceId": self.workspace_id,
            "taskId": self.task_id,
            "fromUserId": self.from_user_id,
            "isRead": self.is_read,
            "createdAt": self._iso(self.created_at),
        }
