"""Pure-function rules for share-link redemption and reminder eligibility.

Rules are stateless functions: (record, context) -> RuleResult.
No database, no side effects. Services evaluate a rule set and act on the
first failure; the cron job and the join flow both go through here.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class RuleResult:
    """Outcome of a single rule evaluation."""

    passed: bool
    rule_name: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class RuleSetResult:
    """Aggregate outcome of multiple rules."""

    all_passed: bool
    results: list[RuleResult]
    failed: list[RuleResult] = field(default_factory=list)

    def __post_init__(self):
        self.failed = [r for r in self.results if not r.passed]
        self.all_passed = len(self.failed) == 0

    @property
    def first_failure(self) -> RuleResult | None:
        return self.failed[0] if self.failed else None


def evaluate_rules(*rules: RuleResult) -> RuleSetResult:
    """Compose multiple rule results into a single aggregate."""
    return RuleSetResult(
        all_passed=all(r.passed for r in rules),
        results=list(rules),
    )


# ---------------------------------------------------------------------------
# Share links
# ---------------------------------------------------------------------------

def check_link_active(link: Any) -> RuleResult:
    passed = bool(link.is_active)
    return RuleResult(
        passed=passed,
        rule_name="inactive",
        message="Link is active" if passed else "This link has been deactivated",
    )


def check_link_not_expired(link: Any, now: datetime) -> RuleResult:
    expires_at = link.expires_at
    passed = expires_at is None or now <= expires_at
    return RuleResult(
        passed=passed,
        rule_name="expired",
        message="Link has not expired" if passed else "This link has expired",
        details={"expires_at": expires_at.isoformat() if expires_at else None},
    )


def check_link_usage(link: Any) -> RuleResult:
    """Usage count must stay below a non-null usage limit."""
    limit = link.usage_limit
    used = link.usage_count or 0
    passed = limit is None or used < limit
    return RuleResult(
        passed=passed,
        rule_name="limit_exceeded",
        message=(
            f"{used} of {limit if limit is not None else 'unlimited'} uses"
            if passed
            else "This link has reached its usage limit"
        ),
        details={"usage_count": used, "usage_limit": limit},
    )


def check_share_link(link: Any, now: datetime) -> RuleSetResult:
    """Active, unexpired, and under its usage limit."""
    return evaluate_rules(
        check_link_active(link),
        check_link_not_expired(link, now),
        check_link_usage(link),
    )


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------

def check_reminder_not_sent(task: Any) -> RuleResult:
    passed = not task.reminder_sent_24hr
    return RuleResult(
        passed=passed,
        rule_name="reminder_not_sent",
        message="No reminder sent yet" if passed else "Reminder already sent",
    )


def check_has_owner(task: Any) -> RuleResult:
    passed = bool(task.user_id)
    return RuleResult(
        passed=passed,
        rule_name="has_owner",
        message="Task has an owner" if passed else "Task is missing its owner",
    )


def check_has_deadline(deadline: datetime | None) -> RuleResult:
    passed = deadline is not None
    return RuleResult(
        passed=passed,
        rule_name="has_deadline",
        message="Task has a deadline" if passed else "Task has no parseable due date",
    )


def check_reminder_window(
    hours_until_due: float | None,
    window_hours: float,
    grace_hours: float,
) -> RuleResult:
    """Due within the next `window_hours`, or overdue by less than `grace_hours`."""
    passed = hours_until_due is not None and -grace_hours < hours_until_due <= window_hours
    return RuleResult(
        passed=passed,
        rule_name="reminder_window",
        message=(
            f"Due in {hours_until_due:.1f}h"
            if hours_until_due is not None
            else "No deadline"
        ),
        details={
            "hours_until_due": hours_until_due,
            "window_hours": window_hours,
            "grace_hours": grace_hours,
        },
    )
