"""Input validation for task and workspace writes.

Every check raises ValidationError naming the offending field before
anything touches the store. Reads never go through here: the deadline
engine tolerates whatever is already stored.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from taskboard.deadlines import parse_due_date, parse_due_time
from taskboard.errors import ValidationError
from taskboard.models.schemas import Priority

MAX_TASK_TITLE_LENGTH = 500
MAX_TAG_LENGTH = 50


def validate_title(
    value: str | None,
    field: str = "title",
    max_length: int = MAX_TASK_TITLE_LENGTH,
) -> str:
    title = (value or "").strip()
    if not title:
        raise ValidationError(field, "Title is required")
    if len(title) > max_length:
        raise ValidationError(field, f"Title must be at most {max_length} characters")
    return title


def validate_due_date(value: str | None) -> str | None:
    """`YYYY-MM-DD` that names a real calendar day, or None when blank."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    if parse_due_date(value) is None:
        raise ValidationError("dueDate", f"Invalid date {value!r}, expected YYYY-MM-DD")
    return value


def validate_due_time(value: str | None, due_date: str | None) -> str | None:
    """`HH:MM` 24-hour time. Always None when there is no due date."""
    if due_date is None:
        return None
    if value is None or not value.strip():
        return None
    value = value.strip()
    if parse_due_time(value) is None:
        raise ValidationError("dueTime", f"Invalid time {value!r}, expected HH:MM")
    return value


def validate_priority(value: str | None) -> str:
    if value is None or value == "":
        return Priority.STANDARD.value
    try:
        return Priority(value).value
    except ValueError:
        allowed = ", ".join(p.value for p in Priority)
        raise ValidationError("priority", f"Priority must be one of: {allowed}")


def validate_tags(values: list[str] | None) -> list[str]:
    """Stripped, de-duplicated, order preserved."""
    tags: list[str] = []
    for raw in values or []:
        tag = raw.strip()
        if not tag or tag in tags:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValidationError("tags", f"Tags must be at most {MAX_TAG_LENGTH} characters")
        tags.append(tag)
    return tags


def validate_timezone(value: str) -> str:
    """IANA zone name such as `Asia/Manila`."""
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError("timezone", f"Unknown timezone {value!r}")
    return value


def normalize_email(value: str | None, field: str = "email") -> str:
    email = (value or "").strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValidationError(field, "A valid email address is required")
    return email
