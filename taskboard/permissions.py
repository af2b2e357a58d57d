"""Role-based collaboration permission model.

A role is an unordered enum mapped to a capability set. Decisions are made
from the user's membership row in a workspace, with two extra paths:

- Implicit ownership: a workspace whose creator has no membership row
  (created before memberships existed) still treats the creator as owner.
  Explicit membership is checked first; the creator fallback second.
- Task ownership: the author of a task may edit/delete that task even
  without any workspace role. Callers check `task owner OR capability`.

Everything fails closed: unknown actions, unknown roles, missing workspaces
and non-members are all denied.

Role checks and the mutations they guard are separate store round trips.
A role revoked between the check and the write lets that one write through;
this window is accepted rather than closed with a transaction.
"""

import logging
from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.errors import ForbiddenError, ValidationError
from taskboard.repository import MemberRepository, WorkspaceRepository

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Roles and capabilities
# ---------------------------------------------------------------------------

class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class Capability(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    MANAGE_MEMBERS = "manageMembers"
    DELETE_WORKSPACE = "deleteWorkspace"
    ASSIGN = "assign"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.OWNER: frozenset(Capability),
    Role.ADMIN: frozenset({
        Capability.VIEW,
        Capability.EDIT,
        Capability.DELETE,
        Capability.MANAGE_MEMBERS,
        Capability.ASSIGN,
    }),
    Role.EDITOR: frozenset({Capability.VIEW, Capability.EDIT}),
    Role.VIEWER: frozenset({Capability.VIEW}),
}

# Roles that may be granted through invitations, share links and role changes.
GRANTABLE_ROLES = (Role.ADMIN, Role.EDITOR, Role.VIEWER)

ROLE_DISPLAY_NAMES = {
    Role.OWNER: "Owner",
    Role.ADMIN: "Admin",
    Role.EDITOR: "Editor",
    Role.VIEWER: "Viewer",
}


def parse_role(value: Any) -> Role | None:
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def parse_capability(value: Any) -> Capability | None:
    if isinstance(value, Capability):
        return value
    try:
        return Capability(value)
    except ValueError:
        return None


def role_allows(role: Role | str | None, action: Capability | str) -> bool:
    """Pure capability lookup. Unknown roles or actions are denied."""
    parsed_role = parse_role(role) if role is not None else None
    capability = parse_capability(action)
    if parsed_role is None or capability is None:
        return False
    return capability in ROLE_CAPABILITIES[parsed_role]


def resolve_role(
    membership_role: str | None,
    workspace_creator_id: str | None,
    user_id: str,
) -> Role | None:
    """Combine an explicit membership row with the legacy creator fallback."""
    if membership_role is not None:
        return parse_role(membership_role)
    if workspace_creator_id is not None and workspace_creator_id == user_id:
        return Role.OWNER
    return None


# ---------------------------------------------------------------------------
# Guards for membership changes
# ---------------------------------------------------------------------------

def ensure_grantable(role: Role | str, field: str = "role") -> Role:
    """Validate a role offered through add/invite/link/role-change.

    The owner role is never grantable, whoever is asking.
    """
    parsed = parse_role(role)
    if parsed is None:
        raise ValidationError(field, f"Invalid role: {role!r}")
    if parsed is Role.OWNER:
        raise ValidationError(field, "The owner role cannot be granted")
    return parsed


def ensure_not_owner(target_role: Role | None, action: str) -> None:
    """The owner membership can never be demoted or removed."""
    if target_role is Role.OWNER:
        raise ValidationError("targetUserId", f"Cannot {action} the workspace owner")


def is_self_removal(actor_id: str, target_id: str) -> bool:
    """Members may always remove themselves (owners excepted by ensure_not_owner)."""
    return actor_id == target_id


# ---------------------------------------------------------------------------
# Store-backed checker
# ---------------------------------------------------------------------------

class PermissionChecker:
    """Answers (workspace, user, action) questions from the document store."""

    def __init__(self, session: AsyncSession):
        self.workspaces = WorkspaceRepository(session)
        self.members = MemberRepository(session)

    async def get_user_role(self, workspace_id: str | None, user_id: str) -> Role | None:
        """Stored role for the pair, the creator fallback, or None."""
        if not workspace_id:
            return None
        workspace = await self.workspaces.get(workspace_id)
        if workspace is None:
            return None
        membership = await self.members.get_membership(workspace_id, user_id)
        return resolve_role(
            membership.role if membership else None,
            workspace.user_id,
            user_id,
        )

    async def can_perform_action(
        self,
        workspace_id: str | None,
        user_id: str,
        action: Capability | str,
    ) -> bool:
        if parse_capability(action) is None:
            return False
        role = await self.get_user_role(workspace_id, user_id)
        return role_allows(role, action)

    async def require_action(
        self,
        workspace_id: str | None,
        user_id: str,
        action: Capability | str,
        message: str | None = None,
    ) -> Role:
        """Return the caller's role or raise ForbiddenError."""
        role = await self.get_user_role(workspace_id, user_id)
        if not role_allows(role, action):
            logger.debug(
                "Denied %s for user %s in workspace %s (role=%s)",
                action, user_id, workspace_id, role,
            )
            raise ForbiddenError(message or "Permission denied")
        return role

    async def can_modify_task(
        self,
        task: Any,
        user_id: str,
        action: Capability | str,
    ) -> bool:
        """Task author OR the workspace capability."""
        if task.user_id == user_id:
            return True
        return await self.can_perform_action(task.board_id, user_id, action)

    async def require_task_permission(
        self,
        task: Any,
        user_id: str,
        action: Capability | str,
    ) -> None:
        if not await self.can_modify_task(task, user_id, action):
            raise ForbiddenError("Permission denied")
