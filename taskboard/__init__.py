"""Taskboard: tasks, deadlines and shared workspaces.

Pieces:
- Deadline/status engine (pure, timezone-offset injected)
- Role/capability permission model with the implicit-owner fallback
- Invitation and share-link state machines
- Pure-function rules for link redemption and reminder eligibility
- Async repositories, services and a FastAPI router
- Dataclass configuration
"""
