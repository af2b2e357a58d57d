"""Taskboard API router.

Every route except the cron trigger requires an authenticated caller
(X-User-ID, see api.middleware). Services raise TaskboardError subclasses;
api.main turns them into status codes.
"""

import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.middleware import require_user
from taskboard.activity import NotificationService, get_notification_service
from taskboard.collaboration import CollaborationService, get_collaboration_service
from taskboard.config import TaskboardConfig, get_config
from taskboard.models.schemas import (
    AssignRequest,
    BatchDeleteRequest,
    BatchDeleteResponse,
    DueDateUpdate,
    InvitationCreate,
    JoinResponse,
    MemberAdd,
    PriorityUpdate,
    ProfileUpdate,
    ReminderRunResponse,
    RoleUpdate,
    ShareLinkCreate,
    TaskCreate,
    TaskUpdate,
    WorkspaceCreate,
)
from taskboard.reminders import ReminderJob, get_reminder_job
from taskboard.stats import StatsService, get_stats_service
from taskboard.tasks import TaskService, get_task_service

router = APIRouter()


# ============================================================================
# Profile
# ============================================================================

@router.get("/me/profile")
async def get_my_profile(
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.get_profile(user_id)


@router.put("/me/profile")
async def update_my_profile(
    request: ProfileUpdate,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Create or update the caller's display fields and reminder preferences."""
    return await service.update_profile(user_id, request)


# ============================================================================
# Workspaces
# ============================================================================

@router.get("/workspaces")
async def list_workspaces(
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Workspaces the caller created or belongs to, with their role."""
    workspaces = await service.list_accessible_workspaces(user_id)
    return {"data": workspaces, "count": len(workspaces)}


@router.post("/workspaces", status_code=201)
async def create_workspace(
    request: WorkspaceCreate,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.create_workspace(user_id, request.title)


@router.get("/workspaces/{workspace_id}")
async def get_workspace(
    workspace_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.get_workspace(workspace_id, user_id)


@router.delete("/workspaces/{workspace_id}", status_code=204)
async def delete_workspace(
    workspace_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Owner only. Removes tasks, members, invitations, links and activity."""
    await service.delete_workspace(workspace_id, user_id)


@router.get("/workspaces/{workspace_id}/activity")
async def list_activity(
    workspace_id: str,
    limit: Optional[int] = Query(None, ge=1, le=200),
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    entries = await service.list_activity(workspace_id, user_id, limit)
    return {"data": entries, "count": len(entries)}


@router.get("/workspaces/{workspace_id}/tasks")
async def list_workspace_tasks(
    workspace_id: str,
    user_id: str = Depends(require_user),
    service: TaskService = Depends(get_task_service),
):
    """Board tasks with derived status, in board order."""
    tasks = await service.list_board_tasks(workspace_id, user_id)
    return {"data": tasks, "count": len(tasks)}


@router.get("/workspaces/{workspace_id}/assignments")
async def list_workspace_assignments(
    workspace_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    assignments = await service.list_workspace_assignments(workspace_id, user_id)
    return {"data": assignments, "count": len(assignments)}


# ============================================================================
# Members
# ============================================================================

@router.get("/workspaces/{workspace_id}/members")
async def list_members(
    workspace_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    members = await service.list_members(workspace_id, user_id)
    return {"data": members, "count": len(members)}


@router.post("/workspaces/{workspace_id}/members", status_code=201)
async def add_member(
    workspace_id: str,
    request: MemberAdd,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.add_member(workspace_id, user_id, request.user_id, request.role)


@router.patch("/workspaces/{workspace_id}/members/{member_id}")
async def update_member_role(
    workspace_id: str,
    member_id: str,
    request: RoleUpdate,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.update_member_role(workspace_id, user_id, member_id, request.role)


@router.delete("/workspaces/{workspace_id}/members/{member_id}", status_code=204)
async def remove_member(
    workspace_id: str,
    member_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Remove a member, or leave when member_id is the caller."""
    await service.remove_member(workspace_id, user_id, member_id)


# ============================================================================
# Invitations
# ============================================================================

@router.get("/workspaces/{workspace_id}/invitations")
async def list_workspace_invitations(
    workspace_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    invitations = await service.list_workspace_invitations(workspace_id, user_id)
    return {"data": invitations, "count": len(invitations)}


@router.post("/workspaces/{workspace_id}/invitations", status_code=201)
async def create_invitation(
    workspace_id: str,
    request: InvitationCreate,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.create_invitation(workspace_id, user_id, request.email, request.role)


@router.delete("/workspaces/{workspace_id}/invitations/{invitation_id}", status_code=204)
async def cancel_invitation(
    workspace_id: str,
    invitation_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    await service.cancel_invitation(workspace_id, invitation_id, user_id)


@router.get("/invitations")
async def list_my_invitations(
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Pending invitations addressed to the caller's email."""
    invitations = await service.list_my_invitations(user_id)
    return {"data": invitations, "count": len(invitations)}


@router.post("/invitations/{invitation_id}/accept")
async def accept_invitation(
    invitation_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.accept_invitation(invitation_id, user_id)


@router.post("/invitations/{invitation_id}/decline", status_code=204)
async def decline_invitation(
    invitation_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    await service.decline_invitation(invitation_id, user_id)


# ============================================================================
# Share links
# ============================================================================

@router.get("/workspaces/{workspace_id}/share-links")
async def list_share_links(
    workspace_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    links = await service.list_share_links(workspace_id, user_id)
    return {"data": links, "count": len(links)}


@router.post("/workspaces/{workspace_id}/share-links", status_code=201)
async def create_share_link(
    workspace_id: str,
    request: ShareLinkCreate,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.create_share_link(
        workspace_id,
        user_id,
        role=request.role,
        expires_in_days=request.expires_in_days,
        usage_limit=request.usage_limit,
    )


@router.delete("/workspaces/{workspace_id}/share-links/{token}", status_code=204)
async def deactivate_share_link(
    workspace_id: str,
    token: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    await service.deactivate_share_link(workspace_id, token, user_id)


@router.get("/share-links/{token}")
async def preview_share_link(
    token: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.preview_share_link(token, user_id)


@router.post("/share-links/{token}/join", response_model=JoinResponse)
async def join_via_share_link(
    token: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.join_via_share_link(token, user_id)


# ============================================================================
# Tasks
# ============================================================================

@router.get("/tasks")
async def list_my_tasks(
    user_id: str = Depends(require_user),
    service: TaskService = Depends(get_task_service),
):
    tasks = await service.list_my_tasks(user_id)
    return {"data": tasks, "count": len(tasks)}


@router.post("/tasks", status_code=201)
async def add_task(
    request: TaskCreate,
    user_id: str = Depends(require_user),
    service: TaskService = Depends(get_task_service),
):
    return await service.add_task(user_id, request)


@router.post("/tasks/batch-delete", response_model=BatchDeleteResponse)
async def batch_delete_tasks(
    request: BatchDeleteRequest,
    user_id: str = Depends(require_user),
    service: TaskService = Depends(get_task_service),
):
    """Delete the tasks the caller may delete; the rest are counted as skipped."""
    return await service.batch_delete(request.task_ids, user_id)


@router.get("/tasks/{task_id}")
async def get_task(
    task_id: str,
    user_id: str = Depends(require_user),
    service: TaskService = Depends(get_task_service),
):
    return await service.get_task(task_id, user_id)


@router.patch("/tasks/{task_id}")
async def update_task(
    task_id: str,
    request: TaskUpdate,
    user_id: str = Depends(require_user),
    service: TaskService = Depends(get_task_service),
):
    return await service.update_task(task_id, user_id, request)


@router.put("/tasks/{task_id}/due-date")
async def update_due_date(
    task_id: str,
    request: DueDateUpdate,
    user_id: str = Depends(require_user),
    service: TaskService = Depends(get_task_service),
):
    return await service.update_due_date(task_id, user_id, request.due_date, request.due_time)


@router.post("/tasks/{task_id}/toggle")
async def toggle_task(
    task_id: str,
    user_id: str = Depends(require_user),
    service: TaskService = Depends(get_task_service),
):
    return await service.toggle_completion(task_id, user_id)


@router.put("/tasks/{task_id}/priority")
async def update_priority(
    task_id: str,
    request: PriorityUpdate,
    user_id: str = Depends(require_user),
    service: TaskService = Depends(get_task_service),
):
    return await service.update_priority(task_id, user_id, request.priority)


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    user_id: str = Depends(require_user),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(task_id, user_id)


# ============================================================================
# Task assignments
# ============================================================================

@router.get("/tasks/{task_id}/assignees")
async def list_task_assignees(
    task_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    assignees = await service.list_task_assignees(task_id, user_id)
    return {"data": assignees, "count": len(assignees)}


@router.post("/tasks/{task_id}/assignees", status_code=201)
async def assign_task(
    task_id: str,
    request: AssignRequest,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.assign_task(task_id, user_id, request.user_id)


@router.delete("/tasks/{task_id}/assignees/{assignee_id}", status_code=204)
async def unassign_task(
    task_id: str,
    assignee_id: str,
    user_id: str = Depends(require_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    await service.unassign_task(task_id, user_id, assignee_id)


# ============================================================================
# Notifications
# ============================================================================

@router.get("/notifications")
async def list_notifications(
    unread_only: bool = False,
    user_id: str = Depends(require_user),
    service: NotificationService = Depends(get_notification_service),
):
    notifications = await service.list_for_user(user_id, unread_only)
    return {"data": notifications, "count": len(notifications)}


@router.get("/notifications/unread-count")
async def unread_notification_count(
    user_id: str = Depends(require_user),
    service: NotificationService = Depends(get_notification_service),
):
    return {"count": await service.unread_count(user_id)}


@router.post("/notifications/read-all")
async def mark_all_notifications_read(
    user_id: str = Depends(require_user),
    service: NotificationService = Depends(get_notification_service),
):
    return {"updated": await service.mark_all_read(user_id)}


@router.post("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    user_id: str = Depends(require_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.mark_read(notification_id, user_id)


@router.delete("/notifications/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: str,
    user_id: str = Depends(require_user),
    service: NotificationService = Depends(get_notification_service),
):
    await service.delete(notification_id, user_id)


# ============================================================================
# Dashboard & cron
# ============================================================================

@router.get("/stats")
async def dashboard_stats(
    user_id: str = Depends(require_user),
    service: StatsService = Depends(get_stats_service),
):
    stats = await service.dashboard(user_id)
    return stats.to_dict()


@router.get("/cron/send-reminders", response_model=ReminderRunResponse)
async def send_reminders(
    secret: str = Query(""),
    config: TaskboardConfig = Depends(get_config),
    job: ReminderJob = Depends(get_reminder_job),
):
    """Cron trigger. Authenticated by shared secret, not by user."""
    if not config.cron_secret or not secrets.compare_digest(secret, config.cron_secret):
        raise HTTPException(status_code=401, detail="Invalid cron secret")
    result = await job.run()
    return result.to_dict()
