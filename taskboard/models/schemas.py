"""Pydantic schemas for API request/response validation.

Request bodies accept camelCase keys (the record field names clients
already use) as well as snake_case. Shape checks live here; domain checks
(title rules, date formats, role names) live in taskboard.validation so
they surface as field-level validation errors rather than 422s.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Priority(str, Enum):
    LOW = "low"
    STANDARD = "standard"
    HIGH = "high"
    URGENT = "urgent"


class ActivityAction(str, Enum):
    WORKSPACE_CREATED = "workspace_created"
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_COMPLETED = "task_completed"
    TASK_UNCOMPLETED = "task_uncompleted"
    TASK_DELETED = "task_deleted"
    TASK_ASSIGNED = "task_assigned"
    TASK_UNASSIGNED = "task_unassigned"
    MEMBER_ADDED = "member_added"
    MEMBER_JOINED = "member_joined"
    MEMBER_REMOVED = "member_removed"
    MEMBER_LEFT = "member_left"
    ROLE_CHANGED = "role_changed"
    INVITATION_SENT = "invitation_sent"


class NotificationType(str, Enum):
    TASK_ASSIGNED = "task_assigned"
    INVITATION_ACCEPTED = "invitation_accepted"
    TASK_REMINDER = "task_reminder"


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class ProfileUpdate(_RequestModel):
    username: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=320)
    photo_url: Optional[str] = None
    timezone: Optional[str] = None
    reminder_hours_before: Optional[int] = Field(None, ge=1, le=168)


# ---------------------------------------------------------------------------
# Workspaces & membership
# ---------------------------------------------------------------------------

class WorkspaceCreate(_RequestModel):
    title: str


class MemberAdd(_RequestModel):
    user_id: str = Field(..., min_length=1)
    role: str = "viewer"


class RoleUpdate(_RequestModel):
    role: str


class InvitationCreate(_RequestModel):
    email: str = Field(..., min_length=3, max_length=320)
    role: str = "viewer"


class ShareLinkCreate(_RequestModel):
    role: Optional[str] = None
    expires_in_days: Optional[int] = Field(None, ge=1, le=365)
    usage_limit: Optional[int] = Field(None, ge=1)


class AssignRequest(_RequestModel):
    user_id: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class TaskCreate(_RequestModel):
    title: str
    description: str = ""
    priority: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    due_date: Optional[str] = None
    due_time: Optional[str] = None
    board_id: Optional[str] = None


class TaskUpdate(_RequestModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    tags: Optional[list[str]] = None
    due_date: Optional[str] = None
    due_time: Optional[str] = None
    is_completed: Optional[bool] = None


class DueDateUpdate(_RequestModel):
    due_date: Optional[str] = None
    due_time: Optional[str] = None


class PriorityUpdate(_RequestModel):
    priority: str


class BatchDeleteRequest(_RequestModel):
    task_ids: list[str] = Field(..., min_length=1, max_length=500)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class BatchDeleteResponse(BaseModel):
    deleted: int
    skipped: int


class JoinResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    workspace_id: str
    role: str
    already_member: bool = False


class ReminderRunResponse(BaseModel):
    considered: int
    notified: int
    emailed: int
