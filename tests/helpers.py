"""Record builders shared by the service and API tests."""
from core.models.base import utcnow
from taskboard.models.db_models import Task, UserProfile, Workspace, WorkspaceMember


async def add_profile(session, user_id, email=None, username=None, **extra):
    profile = UserProfile(
        id=user_id,
        username=username or user_id,
        email=email or f"{user_id}@example.com",
        **extra,
    )
    session.add(profile)
    await session.flush()
    return profile


async def add_workspace(session, creator_id, title="Board", owner_row=True):
    """Workspace; owner_row=False builds a pre-membership (legacy) workspace."""
    workspace = Workspace(user_id=creator_id, title=title)
    session.add(workspace)
    await session.flush()
    if owner_row:
        await add_member(session, workspace.id, creator_id, "owner")
    return workspace


async def add_member(session, workspace_id, user_id, role):
    member = WorkspaceMember(
        workspace_id=workspace_id,
        user_id=user_id,
        username=user_id,
        role=role,
        joined_at=utcnow(),
    )
    session.add(member)
    await session.flush()
    return member


async def add_task(session, user_id, board_id=None, title="Task", **fields):
    task = Task(user_id=user_id, board_id=board_id, title=title, **fields)
    session.add(task)
    await session.flush()
    return task
