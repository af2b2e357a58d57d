"""Enum-based state machines for invitations and share links.

Invitations:

    pending --accept--> accepted
    pending --decline--> declined
    pending --cancel--> (record deleted)
    pending --expire--> expired      (evaluated lazily at read time)

Any event on a non-pending invitation is a conflict. Expiry is never swept;
an invitation past `expires_at` reads as expired whatever its stored status.

Share links are active until deactivated; there is no way back.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from taskboard.errors import ConflictError


# ---------------------------------------------------------------------------
# Invitation states
# ---------------------------------------------------------------------------

class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class InvitationEvent(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    CANCEL = "cancel"
    EXPIRE = "expire"


# {current_state: {event: next_state}}; None means the record is deleted.
_INVITATION_TRANSITIONS: dict[InvitationStatus, dict[InvitationEvent, InvitationStatus | None]] = {
    InvitationStatus.PENDING: {
        InvitationEvent.ACCEPT: InvitationStatus.ACCEPTED,
        InvitationEvent.DECLINE: InvitationStatus.DECLINED,
        InvitationEvent.CANCEL: None,
        InvitationEvent.EXPIRE: InvitationStatus.EXPIRED,
    },
    InvitationStatus.ACCEPTED: {},  # terminal
    InvitationStatus.DECLINED: {},  # terminal
    InvitationStatus.EXPIRED: {},   # terminal
}


def effective_invitation_status(
    stored_status: str,
    expires_at: datetime | None,
    now: datetime,
) -> InvitationStatus:
    """Stored status with lazy expiry applied."""
    status = InvitationStatus(stored_status)
    if status is InvitationStatus.PENDING and expires_at is not None and expires_at < now:
        return InvitationStatus.EXPIRED
    return status


def can_transition(current: InvitationStatus, event: InvitationEvent) -> bool:
    return event in _INVITATION_TRANSITIONS.get(current, {})


def next_invitation_status(
    current: InvitationStatus,
    event: InvitationEvent,
) -> InvitationStatus | None:
    """Target state for an event. Raises ConflictError if not allowed."""
    if not can_transition(current, event):
        raise ConflictError(
            f"Cannot {event.value} an invitation that is {current.value}",
            status=current.value,
        )
    return _INVITATION_TRANSITIONS[current][event]


@dataclass
class InvitationTransition:
    """Record of a single invitation state change."""

    invitation_id: str
    from_state: InvitationStatus
    to_state: InvitationStatus | None
    actor: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def deletes_record(self) -> bool:
        return self.to_state is None


def plan_invitation_transition(
    invitation_id: str,
    stored_status: str,
    expires_at: datetime | None,
    event: InvitationEvent,
    actor: str,
    now: datetime,
) -> InvitationTransition:
    """Resolve the effective state (with expiry) and validate the event."""
    current = effective_invitation_status(stored_status, expires_at, now)
    target = next_invitation_status(current, event)
    return InvitationTransition(
        invitation_id=invitation_id,
        from_state=current,
        to_state=target,
        actor=actor,
        timestamp=now,
    )


# ---------------------------------------------------------------------------
# Share link states
# ---------------------------------------------------------------------------

class ShareLinkState(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


def share_link_state(is_active: bool) -> ShareLinkState:
    return ShareLinkState.ACTIVE if is_active else ShareLinkState.INACTIVE


def deactivate_share_link(current: ShareLinkState) -> ShareLinkState:
    """Active -> inactive. Deactivating twice is a conflict."""
    if current is ShareLinkState.INACTIVE:
        raise ConflictError("Share link is already inactive")
    return ShareLinkState.INACTIVE
