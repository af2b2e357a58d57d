"""Workspace sharing: workspaces, members, invitations, share links, assignments.

All authorization goes through PermissionChecker. Guards on the owner role
run before any capability check, so `owner` is rejected as a target role no
matter who asks.

Workspace-level checks report a missing workspace and a non-member the same
way (forbidden), so callers cannot probe for workspace ids.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from taskboard.activity import ActivityRecorder, NotificationService, display_name
from taskboard.config import TaskboardConfig, get_config
from taskboard.errors import (
    ConflictError,
    ForbiddenError,
    LinkUnavailableError,
    NotFoundError,
    ValidationError,
)
from taskboard.models.db_models import (
    Task,
    UserProfile,
    Workspace,
    WorkspaceInvitation,
    WorkspaceShareLink,
)
from taskboard.models.schemas import ActivityAction, NotificationType, ProfileUpdate
from taskboard.permissions import (
    ROLE_DISPLAY_NAMES,
    Capability,
    PermissionChecker,
    Role,
    ensure_grantable,
    ensure_not_owner,
    is_self_removal,
    resolve_role,
)
from taskboard.repository import (
    ActivityRepository,
    AssignmentRepository,
    InvitationRepository,
    MemberRepository,
    ProfileRepository,
    ShareLinkRepository,
    TaskRepository,
    WorkspaceRepository,
)
from taskboard.rules import check_share_link
from taskboard.validation import normalize_email, validate_timezone, validate_title
from taskboard.workflows import (
    InvitationEvent,
    InvitationStatus,
    deactivate_share_link,
    effective_invitation_status,
    plan_invitation_transition,
    share_link_state,
)

logger = logging.getLogger(__name__)

SHARE_TOKEN_BYTES = 16


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CollaborationService:
    """Collaboration operations for one request/session."""

    def __init__(self, session: AsyncSession, config: TaskboardConfig):
        self.session = session
        self.config = config
        self.permissions = PermissionChecker(session)
        self.workspaces = WorkspaceRepository(session)
        self.members = MemberRepository(session)
        self.invitations = InvitationRepository(session)
        self.links = ShareLinkRepository(session)
        self.tasks = TaskRepository(session)
        self.assignments = AssignmentRepository(session)
        self.profiles = ProfileRepository(session)
        self.activity = ActivityRecorder(session)
        self.activity_entries = ActivityRepository(session)
        self.notifications = NotificationService(session, config)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    async def get_profile(self, user_id: str) -> dict:
        profile = await self.profiles.get(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile.to_dict()

    async def update_profile(self, user_id: str, data: ProfileUpdate) -> dict:
        """Create or update the caller's profile.

        Display fields already copied onto memberships and assignments are
        left as they are.
        """
        fields = data.model_dump(exclude_unset=True, exclude_none=True)
        if "timezone" in fields:
            fields["timezone"] = validate_timezone(fields["timezone"])
        if "email" in fields:
            fields["email"] = normalize_email(fields["email"])
        if "username" in fields:
            fields["username"] = fields["username"].strip()
        profile = await self.profiles.upsert(user_id, fields)
        return profile.to_dict()

    # ------------------------------------------------------------------
    # Workspaces
    # ------------------------------------------------------------------

    async def create_workspace(self, user_id: str, title: str) -> dict:
        title = validate_title(
            title, max_length=self.config.collaboration.max_workspace_title_length
        )
        workspace = await self.workspaces.create({"user_id": user_id, "title": title})
        profile = await self.profiles.get(user_id)
        await self.members.create(
            self._member_row(workspace.id, user_id, profile, Role.OWNER)
        )
        await self.activity.record(
            workspace.id, user_id, ActivityAction.WORKSPACE_CREATED,
            f'created workspace "{title}"',
        )
        logger.info("Workspace %s created by %s", workspace.id, user_id)
        return {**workspace.to_dict(), "role": Role.OWNER.value}

    async def list_accessible_workspaces(self, user_id: str) -> list[dict]:
        workspaces = await self.workspaces.list_accessible(user_id)
        roles = await self.members.roles_for_user(user_id)
        result = []
        for workspace in workspaces:
            role = resolve_role(roles.get(workspace.id), workspace.user_id, user_id)
            if role is None:
                continue
            result.append({**workspace.to_dict(), "role": role.value})
        return result

    async def get_workspace(self, workspace_id: str, user_id: str) -> dict:
        role = await self.permissions.require_action(workspace_id, user_id, Capability.VIEW)
        workspace = await self.workspaces.get(workspace_id)
        return {**workspace.to_dict(), "role": role.value}

    async def delete_workspace(self, workspace_id: str, user_id: str) -> None:
        """Remove the workspace and everything stored under it."""
        await self.permissions.require_action(
            workspace_id, user_id, Capability.DELETE_WORKSPACE,
            "Only the owner can delete this workspace",
        )
        await self.assignments.delete_where(workspace_id=workspace_id)
        await self.tasks.delete_where(board_id=workspace_id)
        await self.members.delete_where(workspace_id=workspace_id)
        await self.invitations.delete_where(workspace_id=workspace_id)
        await self.links.delete_where(workspace_id=workspace_id)
        await self.activity_entries.delete_where(workspace_id=workspace_id)
        await self.workspaces.delete(workspace_id)
        logger.info("Workspace %s deleted by %s", workspace_id, user_id)

    async def list_activity(
        self, workspace_id: str, user_id: str, limit: int | None = None
    ) -> list[dict]:
        await self.permissions.require_action(workspace_id, user_id, Capability.VIEW)
        limit = min(limit or self.config.collaboration.activity_log_limit,
                    self.config.collaboration.activity_log_limit)
        return await self.activity.recent(workspace_id, limit)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    async def list_members(self, workspace_id: str, user_id: str) -> list[dict]:
        await self.permissions.require_action(workspace_id, user_id, Capability.VIEW)
        workspace = await self.workspaces.get(workspace_id)
        rows = await self.members.list_for_workspace(workspace_id)
        members = [
            {**row.to_dict(), "isCurrentUser": row.user_id == user_id}
            for row in rows
        ]
        if not any(row.user_id == workspace.user_id for row in rows):
            # Pre-membership workspace: its creator has no row yet.
            creator = await self.profiles.get(workspace.user_id)
            members.insert(0, {
                "id": None,
                "workspaceId": workspace_id,
                "userId": workspace.user_id,
                "username": display_name(creator),
                "email": creator.email if creator else None,
                "photoUrl": creator.photo_url if creator else None,
                "role": Role.OWNER.value,
                "joinedAt": workspace.created_at.isoformat(),
                "invitedBy": None,
                "joinedViaLink": None,
                "isCurrentUser": workspace.user_id == user_id,
            })
        return members

    async def add_member(
        self,
        workspace_id: str,
        actor_id: str,
        target_user_id: str,
        role: str,
    ) -> dict:
        granted = ensure_grantable(role)
        await self.permissions.require_action(
            workspace_id, actor_id, Capability.MANAGE_MEMBERS,
            "You do not have permission to add members",
        )
        profile = await self.profiles.get(target_user_id)
        if profile is None:
            raise NotFoundError("User not found", user_id=target_user_id)
        if await self.permissions.get_user_role(workspace_id, target_user_id) is not None:
            raise ConflictError("User is already a member of this workspace")

        member = await self.members.create(
            self._member_row(workspace_id, target_user_id, profile, granted, invited_by=actor_id)
        )
        await self.activity.record(
            workspace_id, actor_id, ActivityAction.MEMBER_ADDED,
            f"added {display_name(profile)} as {ROLE_DISPLAY_NAMES[granted]}",
            metadata={"targetUserId": target_user_id, "role": granted.value},
        )
        logger.info("User %s added to workspace %s as %s", target_user_id, workspace_id, granted.value)
        return member.to_dict()

    async def update_member_role(
        self,
        workspace_id: str,
        actor_id: str,
        target_user_id: str,
        new_role: str,
    ) -> dict:
        granted = ensure_grantable(new_role)
        await self.permissions.require_action(
            workspace_id, actor_id, Capability.MANAGE_MEMBERS,
            "You do not have permission to change roles",
        )
        current = await self.permissions.get_user_role(workspace_id, target_user_id)
        if current is None:
            raise NotFoundError("Member not found", user_id=target_user_id)
        ensure_not_owner(current, "change the role of")

        member = await self.members.get_membership(workspace_id, target_user_id)
        await self.members.apply(member, {"role": granted.value})
        await self.activity.record(
            workspace_id, actor_id, ActivityAction.ROLE_CHANGED,
            f"changed {member.username or 'a member'} from "
            f"{ROLE_DISPLAY_NAMES[current]} to {ROLE_DISPLAY_NAMES[granted]}",
            metadata={
                "targetUserId": target_user_id,
                "oldRole": current.value,
                "newRole": granted.value,
            },
        )
        logger.info(
            "Role of %s in workspace %s changed %s -> %s",
            target_user_id, workspace_id, current.value, granted.value,
        )
        return member.to_dict()

    async def remove_member(
        self,
        workspace_id: str,
        actor_id: str,
        target_user_id: str,
    ) -> None:
        """Remove a member and their assignments in this workspace.

        Leaving (removing yourself) needs no capability; the owner can
        neither leave nor be removed.
        """
        leaving = is_self_removal(actor_id, target_user_id)
        if not leaving:
            await self.permissions.require_action(
                workspace_id, actor_id, Capability.MANAGE_MEMBERS,
                "You do not have permission to remove members",
            )
        current = await self.permissions.get_user_role(workspace_id, target_user_id)
        if current is None:
            if leaving:
                raise ForbiddenError("You are not a member of this workspace")
            raise NotFoundError("Member not found", user_id=target_user_id)
        ensure_not_owner(current, "remove")

        member = await self.members.get_membership(workspace_id, target_user_id)
        username = member.username
        await self.members.delete(member.id)
        removed = await self.assignments.delete_where(
            workspace_id=workspace_id, user_id=target_user_id
        )
        if leaving:
            action, details = ActivityAction.MEMBER_LEFT, "left the workspace"
        else:
            action, details = ActivityAction.MEMBER_REMOVED, f"removed {username or 'a member'}"
        await self.activity.record(
            workspace_id, actor_id, action, details,
            metadata={"targetUserId": target_user_id, "assignmentsRemoved": removed},
        )
        logger.info("User %s removed from workspace %s", target_user_id, workspace_id)

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    async def create_invitation(
        self,
        workspace_id: str,
        actor_id: str,
        email: str,
        role: str,
    ) -> dict:
        granted = ensure_grantable(role)
        email = normalize_email(email)
        await self.permissions.require_action(
            workspace_id, actor_id, Capability.MANAGE_MEMBERS,
            "You do not have permission to invite members",
        )
        workspace = await self.workspaces.get(workspace_id)

        invitee = await self.profiles.find_by_email(email)
        if invitee is not None and await self.permissions.get_user_role(
            workspace_id, invitee.id
        ) is not None:
            raise ConflictError("User is already a member of this workspace")
        if await self.invitations.pending_for_workspace_email(workspace_id, email):
            raise ConflictError("An invitation is already pending for this email")

        now = _now()
        inviter = await self.profiles.get(actor_id)
        invitation = await self.invitations.create({
            "workspace_id": workspace_id,
            "workspace_name": workspace.title,
            "invited_email": email,
            "invited_user_id": invitee.id if invitee else None,
            "invited_by": actor_id,
            "invited_by_username": display_name(inviter),
            "role": granted.value,
            "status": InvitationStatus.PENDING.value,
            "expires_at": now + timedelta(days=self.config.collaboration.invitation_valid_days),
        })
        await self.activity.record(
            workspace_id, actor_id, ActivityAction.INVITATION_SENT,
            f"invited {email} as {ROLE_DISPLAY_NAMES[granted]}",
            metadata={"invitationId": invitation.id},
        )
        return invitation.to_dict()

    async def list_my_invitations(self, user_id: str) -> list[dict]:
        """Pending invitations addressed to the caller's email.

        Invitations found past their expiry are stored as expired on the way.
        """
        profile = await self.profiles.get(user_id)
        if profile is None or not profile.email:
            return []
        now = _now()
        result = []
        for invitation in await self.invitations.pending_for_email(profile.email):
            status = effective_invitation_status(invitation.status, invitation.expires_at, now)
            if status is InvitationStatus.EXPIRED:
                await self.invitations.apply(invitation, {"status": status.value})
                continue
            result.append(invitation.to_dict())
        return result

    async def list_workspace_invitations(self, workspace_id: str, actor_id: str) -> list[dict]:
        await self.permissions.require_action(workspace_id, actor_id, Capability.MANAGE_MEMBERS)
        now = _now()
        return [
            invitation.to_dict(
                status=effective_invitation_status(
                    invitation.status, invitation.expires_at, now
                ).value
            )
            for invitation in await self.invitations.list_for_workspace(workspace_id)
        ]

    async def _invitation_for(self, invitation_id: str, user_id: str) -> WorkspaceInvitation:
        invitation = await self.invitations.get(invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation not found")
        profile = await self.profiles.get(user_id)
        addressed = invitation.invited_user_id == user_id or (
            profile is not None
            and profile.email is not None
            and profile.email.lower() == invitation.invited_email
        )
        if not addressed:
            raise ForbiddenError("This invitation is not addressed to you")
        return invitation

    async def _reject_if_expired(self, invitation: WorkspaceInvitation, now: datetime) -> None:
        status = effective_invitation_status(invitation.status, invitation.expires_at, now)
        if status is not InvitationStatus.EXPIRED:
            return
        raise LinkUnavailableError(LinkUnavailableError.EXPIRED, "This invitation has expired")

    async def accept_invitation(self, invitation_id: str, user_id: str) -> dict:
        invitation = await self._invitation_for(invitation_id, user_id)
        now = _now()
        await self._reject_if_expired(invitation, now)
        transition = plan_invitation_transition(
            invitation.id, invitation.status, invitation.expires_at,
            InvitationEvent.ACCEPT, user_id, now,
        )

        workspace = await self.workspaces.get(invitation.workspace_id)
        if workspace is None:
            raise NotFoundError("Workspace no longer exists")

        profile = await self.profiles.get(user_id)
        if await self.permissions.get_user_role(workspace.id, user_id) is None:
            await self.members.create(self._member_row(
                workspace.id, user_id, profile, Role(invitation.role),
                invited_by=invitation.invited_by,
            ))
        await self.invitations.apply(invitation, {
            "status": transition.to_state.value,
            "invited_user_id": user_id,
            "responded_at": now,
        })
        name = display_name(profile)
        await self.activity.record(
            workspace.id, user_id, ActivityAction.MEMBER_JOINED,
            f"{name} joined the workspace",
            metadata={"invitationId": invitation.id, "role": invitation.role},
        )
        await self.notifications.notify(
            invitation.invited_by,
            NotificationType.INVITATION_ACCEPTED,
            "Invitation accepted",
            f'{name} joined "{workspace.title}"',
            workspace_id=workspace.id,
            from_user_id=user_id,
        )
        logger.info("Invitation %s accepted by %s", invitation.id, user_id)
        return {"workspaceId": workspace.id, "role": invitation.role}

    async def decline_invitation(self, invitation_id: str, user_id: str) -> None:
        invitation = await self._invitation_for(invitation_id, user_id)
        now = _now()
        await self._reject_if_expired(invitation, now)
        transition = plan_invitation_transition(
            invitation.id, invitation.status, invitation.expires_at,
            InvitationEvent.DECLINE, user_id, now,
        )
        await self.invitations.apply(invitation, {
            "status": transition.to_state.value,
            "responded_at": now,
        })

    async def cancel_invitation(self, workspace_id: str, invitation_id: str, actor_id: str) -> None:
        """Delete a pending invitation. Stale pending ones can be cleared too."""
        await self.permissions.require_action(
            workspace_id, actor_id, Capability.MANAGE_MEMBERS,
            "You do not have permission to cancel invitations",
        )
        invitation = await self.invitations.get(invitation_id)
        if invitation is None or invitation.workspace_id != workspace_id:
            raise NotFoundError("Invitation not found")
        transition = plan_invitation_transition(
            invitation.id, invitation.status, None,
            InvitationEvent.CANCEL, actor_id, _now(),
        )
        if transition.deletes_record:
            await self.invitations.delete(invitation.id)

    # ------------------------------------------------------------------
    # Share links
    # ------------------------------------------------------------------

    def join_url(self, token: str) -> str:
        return f"{self.config.app_base_url}/join/{token}"

    async def create_share_link(
        self,
        workspace_id: str,
        actor_id: str,
        role: str | None = None,
        expires_in_days: int | None = None,
        usage_limit: int | None = None,
    ) -> dict:
        granted = ensure_grantable(role or self.config.collaboration.default_share_link_role)
        if usage_limit is not None and usage_limit < 1:
            raise ValidationError("usageLimit", "Usage limit must be at least 1")
        actor_role = await self.permissions.require_action(
            workspace_id, actor_id, Capability.MANAGE_MEMBERS,
            "You do not have permission to create share links",
        )
        if granted is Role.ADMIN and actor_role is not Role.OWNER:
            raise ForbiddenError("Only the owner can create admin links")

        expires_at = _now() + timedelta(days=expires_in_days) if expires_in_days else None
        link = await self.links.create({
            "id": secrets.token_urlsafe(SHARE_TOKEN_BYTES),
            "workspace_id": workspace_id,
            "role": granted.value,
            "created_by": actor_id,
            "expires_at": expires_at,
            "usage_limit": usage_limit,
            "usage_count": 0,
            "is_active": True,
        })
        logger.info("Share link created for workspace %s (%s)", workspace_id, granted.value)
        return link.to_dict(join_url=self.join_url(link.id))

    async def list_share_links(self, workspace_id: str, actor_id: str) -> list[dict]:
        await self.permissions.require_action(workspace_id, actor_id, Capability.MANAGE_MEMBERS)
        return [
            link.to_dict(join_url=self.join_url(link.id))
            for link in await self.links.active_for_workspace(workspace_id)
        ]

    async def deactivate_share_link(self, workspace_id: str, token: str, actor_id: str) -> None:
        await self.permissions.require_action(
            workspace_id, actor_id, Capability.MANAGE_MEMBERS,
            "You do not have permission to manage share links",
        )
        link = await self.links.get(token)
        if link is None or link.workspace_id != workspace_id:
            raise NotFoundError("Share link not found")
        deactivate_share_link(share_link_state(link.is_active))
        await self.links.apply(link, {"is_active": False})

    async def _link_and_workspace(self, token: str) -> tuple[WorkspaceShareLink, Workspace]:
        link = await self.links.get(token)
        if link is None:
            raise NotFoundError("Share link not found")
        workspace = await self.workspaces.get(link.workspace_id)
        if workspace is None:
            raise NotFoundError("Workspace no longer exists")
        return link, workspace

    async def preview_share_link(self, token: str, user_id: str) -> dict:
        """What joining would do, without joining."""
        link, workspace = await self._link_and_workspace(token)
        checks = check_share_link(link, _now())
        role = await self.permissions.get_user_role(workspace.id, user_id)
        failure = checks.first_failure
        return {
            "workspaceId": workspace.id,
            "workspaceName": workspace.title,
            "role": link.role,
            "isMember": role is not None,
            "currentRole": role.value if role else None,
            "usable": checks.all_passed,
            "reason": failure.rule_name if failure else None,
        }

    async def join_via_share_link(self, token: str, user_id: str) -> dict:
        """Redeem a share link.

        Existing members (including the legacy creator) are sent straight
        through without using up the link. Otherwise the link is claimed
        with one conditional update; losing that race reads as exhausted.
        """
        link, workspace = await self._link_and_workspace(token)
        current = await self.permissions.get_user_role(workspace.id, user_id)
        if current is not None:
            return {"workspaceId": workspace.id, "role": current.value, "alreadyMember": True}

        now = _now()
        failure = check_share_link(link, now).first_failure
        if failure is not None:
            raise LinkUnavailableError(failure.rule_name, failure.message)

        if not await self.links.claim_use(token, now):
            await self.session.refresh(link)
            failure = check_share_link(link, now).first_failure
            reason = failure.rule_name if failure else LinkUnavailableError.LIMIT_EXCEEDED
            logger.info("Share link %s claim lost by %s (%s)", token, user_id, reason)
            raise LinkUnavailableError(reason, "This link can no longer be used")

        profile = await self.profiles.get(user_id)
        await self.members.create(self._member_row(
            workspace.id, user_id, profile, Role(link.role),
            invited_by=link.created_by, joined_via_link=token,
        ))
        name = display_name(profile)
        await self.activity.record(
            workspace.id, user_id, ActivityAction.MEMBER_JOINED,
            f"{name} joined via share link",
            metadata={"token": token, "role": link.role},
        )
        logger.info("User %s joined workspace %s via share link", user_id, workspace.id)
        return {"workspaceId": workspace.id, "role": link.role, "alreadyMember": False}

    # ------------------------------------------------------------------
    # Task assignments
    # ------------------------------------------------------------------

    async def _workspace_task(self, task_id: str) -> Task:
        task = await self.tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task not found", task_id=task_id)
        if not task.board_id:
            raise ValidationError("taskId", "Only workspace tasks can be assigned")
        return task

    async def assign_task(self, task_id: str, actor_id: str, assignee_id: str) -> dict:
        task = await self._workspace_task(task_id)
        await self.permissions.require_action(
            task.board_id, actor_id, Capability.ASSIGN,
            "You do not have permission to assign tasks",
        )
        if await self.permissions.get_user_role(task.board_id, assignee_id) is None:
            raise ValidationError("userId", "Assignee is not a member of this workspace")
        if await self.assignments.get_assignment(task.id, assignee_id):
            raise ConflictError("User is already assigned to this task")

        profile = await self.profiles.get(assignee_id)
        assignment = await self.assignments.create({
            "task_id": task.id,
            "workspace_id": task.board_id,
            "user_id": assignee_id,
            "username": display_name(profile),
            "email": profile.email if profile else None,
            "photo_url": profile.photo_url if profile else None,
            "assigned_by": actor_id,
        })
        if assignee_id != actor_id:
            actor = await self.profiles.get(actor_id)
            await self.notifications.notify(
                assignee_id,
                NotificationType.TASK_ASSIGNED,
                "New task assigned",
                f'{display_name(actor)} assigned you "{task.title}"',
                workspace_id=task.board_id,
                task_id=task.id,
                from_user_id=actor_id,
            )
        await self.activity.record(
            task.board_id, actor_id, ActivityAction.TASK_ASSIGNED,
            f'assigned "{task.title}" to {display_name(profile)}',
            task_id=task.id,
            metadata={"assigneeId": assignee_id},
        )
        return assignment.to_dict()

    async def unassign_task(self, task_id: str, actor_id: str, assignee_id: str) -> None:
        """Anyone may drop their own assignment; others need assign."""
        task = await self._workspace_task(task_id)
        if actor_id != assignee_id:
            await self.permissions.require_action(
                task.board_id, actor_id, Capability.ASSIGN,
                "You do not have permission to unassign tasks",
            )
        assignment = await self.assignments.get_assignment(task.id, assignee_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        await self.assignments.delete(assignment.id)
        await self.activity.record(
            task.board_id, actor_id, ActivityAction.TASK_UNASSIGNED,
            f'unassigned {assignment.username or "a member"} from "{task.title}"',
            task_id=task.id,
            metadata={"assigneeId": assignee_id},
        )

    async def list_task_assignees(self, task_id: str, user_id: str) -> list[dict]:
        task = await self.tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task not found", task_id=task_id)
        await self.permissions.require_task_permission(task, user_id, Capability.VIEW)
        return [
            {**row.to_dict(), "isCurrentUser": row.user_id == user_id}
            for row in await self.assignments.for_task(task.id)
        ]

    async def list_workspace_assignments(self, workspace_id: str, user_id: str) -> list[dict]:
        await self.permissions.require_action(workspace_id, user_id, Capability.VIEW)
        return [
            {**row.to_dict(), "isCurrentUser": row.user_id == user_id}
            for row in await self.assignments.for_workspace(workspace_id)
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _member_row(
        workspace_id: str,
        user_id: str,
        profile: UserProfile | None,
        role: Role,
        invited_by: str | None = None,
        joined_via_link: str | None = None,
    ) -> dict:
        return {
            "workspace_id": workspace_id,
            "user_id": user_id,
            "username": display_name(profile),
            "email": profile.email if profile else None,
            "photo_url": profile.photo_url if profile else None,
            "role": role.value,
            "joined_at": _now(),
            "invited_by": invited_by,
            "joined_via_link": joined_via_link,
        }


def get_collaboration_service(
    session: AsyncSession = Depends(get_session),
    config: TaskboardConfig = Depends(get_config),
) -> CollaborationService:
    """FastAPI dependency for CollaborationService."""
    return CollaborationService(session, config)
