"""Taskboard repositories: async access to each collection.

Extends BaseRepository with collection-specific queries: membership lookup
by (workspace, user), pending invitations by email, the atomic share-link
claim, reminder candidates, and per-user notification queries.
"""

from datetime import datetime
from typing import Sequence

from sqlalchemy import and_, func, or_, select, update

from core.repository import BaseRepository
from taskboard.models.db_models import (
    ActivityLogEntry,
    Task,
    TaskAssignment,
    UserNotification,
    UserProfile,
    Workspace,
    WorkspaceInvitation,
    WorkspaceMember,
    WorkspaceShareLink,
)


# ---------------------------------------------------------------------------
# Profiles & workspaces
# ---------------------------------------------------------------------------

class ProfileRepository(BaseRepository[UserProfile]):
    model = UserProfile

    async def find_by_email(self, email: str) -> UserProfile | None:
        stmt = select(UserProfile).where(func.lower(UserProfile.email) == email.lower()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def upsert(self, user_id: str, data: dict) -> UserProfile:
        profile = await self.get(user_id)
        if profile is None:
            return await self.create({"id": user_id, **data})
        return await self.apply(profile, data)


class WorkspaceRepository(BaseRepository[Workspace]):
    model = Workspace

    async def list_accessible(self, user_id: str) -> Sequence[Workspace]:
        """Workspaces the user created or holds a membership in."""
        member_of = select(WorkspaceMember.workspace_id).where(WorkspaceMember.user_id == user_id)
        stmt = (
            select(Workspace)
            .where(or_(Workspace.user_id == user_id, Workspace.id.in_(member_of)))
            .order_by(Workspace.created_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()


# ---------------------------------------------------------------------------
# Membership, invitations, share links
# ---------------------------------------------------------------------------

class MemberRepository(BaseRepository[WorkspaceMember]):
    model = WorkspaceMember

    async def get_membership(self, workspace_id: str, user_id: str) -> WorkspaceMember | None:
        return await self.find_one(workspace_id=workspace_id, user_id=user_id)

    async def list_for_workspace(self, workspace_id: str) -> Sequence[WorkspaceMember]:
        return await self.find(order_by=WorkspaceMember.joined_at, workspace_id=workspace_id)

    async def roles_for_user(self, user_id: str) -> dict[str, str]:
        """{workspace_id: role} for every membership the user holds."""
        rows = await self.find(user_id=user_id)
        return {row.workspace_id: row.role for row in rows}


class InvitationRepository(BaseRepository[WorkspaceInvitation]):
    model = WorkspaceInvitation

    async def pending_for_email(self, email: str) -> Sequence[WorkspaceInvitation]:
        return await self.find(
            order_by=WorkspaceInvitation.created_at.desc(),
            invited_email=email.lower(),
            status="pending",
        )

    async def pending_for_workspace_email(
        self, workspace_id: str, email: str
    ) -> WorkspaceInvitation | None:
        return await self.find_one(
            workspace_id=workspace_id,
            invited_email=email.lower(),
            status="pending",
        )

    async def list_for_workspace(self, workspace_id: str) -> Sequence[WorkspaceInvitation]:
        return await self.find(
            order_by=WorkspaceInvitation.created_at.desc(),
            workspace_id=workspace_id,
        )


class ShareLinkRepository(BaseRepository[WorkspaceShareLink]):
    model = WorkspaceShareLink

    async def active_for_workspace(self, workspace_id: str) -> Sequence[WorkspaceShareLink]:
        return await self.find(
            order_by=WorkspaceShareLink.created_at.desc(),
            workspace_id=workspace_id,
            is_active=True,
        )

    async def claim_use(self, token: str, now: datetime) -> bool:
        """Atomically take one use of a link.

        A single conditional UPDATE increments the counter only while the
        link is active, unexpired and under its limit. Concurrent callers
        serialize on the row; exactly as many succeed as there are uses left.
        """
        link = WorkspaceShareLink
        stmt = (
            update(link)
            .where(
                and_(
                    link.id == token,
                    link.is_active.is_(True),
                    or_(link.expires_at.is_(None), link.expires_at >= now),
                    or_(link.usage_limit.is_(None), link.usage_count < link.usage_limit),
                )
            )
            .values(usage_count=link.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) == 1


# ---------------------------------------------------------------------------
# Tasks & assignments
# ---------------------------------------------------------------------------

class TaskRepository(BaseRepository[Task]):
    model = Task

    async def list_for_board(self, board_id: str) -> Sequence[Task]:
        return await self.find(board_id=board_id)

    async def list_for_user(self, user_id: str) -> Sequence[Task]:
        return await self.find(order_by=Task.created_at.desc(), user_id=user_id)

    async def reminder_candidates(self, date_from: str, date_to: str) -> Sequence[Task]:
        """Open tasks due within [date_from, date_to] still owed a reminder.

        Whole-day bounds only; callers apply the precise per-user window.
        """
        stmt = select(Task).where(
            Task.is_completed.is_(False),
            Task.due_date.is_not(None),
            Task.due_date >= date_from,
            Task.due_date <= date_to,
            or_(
                Task.reminder_sent_24hr.is_(False),
                Task.email_reminder_sent_24hr.is_(False),
            ),
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()


class AssignmentRepository(BaseRepository[TaskAssignment]):
    model = TaskAssignment

    async def get_assignment(self, task_id: str, user_id: str) -> TaskAssignment | None:
        return await self.find_one(task_id=task_id, user_id=user_id)

    async def for_task(self, task_id: str) -> Sequence[TaskAssignment]:
        return await self.find(order_by=TaskAssignment.created_at, task_id=task_id)

    async def for_workspace(self, workspace_id: str) -> Sequence[TaskAssignment]:
        return await self.find(order_by=TaskAssignment.created_at, workspace_id=workspace_id)


# ---------------------------------------------------------------------------
# Activity & notifications
# ---------------------------------------------------------------------------

class ActivityRepository(BaseRepository[ActivityLogEntry]):
    model = ActivityLogEntry

    async def recent(self, workspace_id: str, limit: int) -> Sequence[ActivityLogEntry]:
        return await self.find(
            order_by=ActivityLogEntry.created_at.desc(),
            limit=limit,
            workspace_id=workspace_id,
        )


class NotificationRepository(BaseRepository[UserNotification]):
    model = UserNotification

    async def for_user(
        self, user_id: str, unread_only: bool = False, limit: int = 50
    ) -> Sequence[UserNotification]:
        filters = {"user_id": user_id}
        if unread_only:
            filters["is_read"] = False
        return await self.find(
            order_by=UserNotification.created_at.desc(),
            limit=limit,
            **filters,
        )

    async def unread_count(self, user_id: str) -> int:
        return await self.count(user_id=user_id, is_read=False)

    async def mark_all_read(self, user_id: str) -> int:
        stmt = (
            update(UserNotification)
            .where(UserNotification.user_id == user_id, UserNotification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

