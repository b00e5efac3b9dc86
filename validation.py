"""
Request validation.

Every validator returns a ValidationResult: the normalized value when the
input is fine, otherwise the first failing field and a message. Rules run
in a fixed order and stop at the first failure, so callers always get a
single field to fix.
"""
import functools
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

from schemas import ValidationResult

logger = logging.getLogger(__name__)

# letters, digits, whitespace and basic punctuation
ALLOWED_TEXT = re.compile(r"[A-Za-z0-9\s\-_.,!?()]+")

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 1000
MAX_SEARCH_LENGTH = 100
MAX_EVENT_YEARS_AHEAD = 2

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100
DEFAULT_UPCOMING_DAYS = 30
MAX_UPCOMING_DAYS = 730

# largest value a SQLite INTEGER column holds
MAX_SQL_INTEGER = 2**63 - 1

# ascii digits only, int() alone would also take "1_0" and other scripts' digits
INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")

INVALID_CHARACTERS_HINT = "Only letters, numbers, spaces, and basic punctuation are allowed"


def _fail(field: str, value: Any, message: str) -> ValidationResult:
    shown = value[:100] if isinstance(value, str) else value
    logger.warning("Validation failed for field: %s | value=%r | error=%s", field, shown, message)
    return ValidationResult.failure(field, message)


def _guarded(func):
    """Turns an unexpected exception inside a validator into an internal validation error."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception:
            logger.exception("Error in %s", func.__name__)
            return ValidationResult.failure("validation", "Internal validation error", internal=True)

    return wrapper


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def is_allowed_text(value: str) -> bool:
    return ALLOWED_TEXT.fullmatch(value) is not None


def parse_event_date(raw: Any) -> Optional[datetime]:
    """
    Parses an ISO 8601 date or timestamp into an aware UTC datetime.
    Naive values and plain dates are taken as UTC. Returns None when the
    value can't be read as a date.
    """
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, str):
        try:
            parsed = datetime.fromisoformat(raw.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def add_years(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        # Feb 29 rolls over to Mar 1
        return moment.replace(year=moment.year + years, month=3, day=1)


@_guarded
def validate_club_creation(payload: dict) -> ValidationResult:
    name = payload.get("name")
    description = payload.get("description")

    logger.debug("Validating club creation: name=%r", name[:50] if isinstance(name, str) else name)

    if _is_blank(name):
        return _fail("name", name, "Club name is required")

    if len(name.strip()) > MAX_NAME_LENGTH:
        return _fail("name", name, f"Club name must be {MAX_NAME_LENGTH} characters or less")

    if not is_allowed_text(name.strip()):
        return _fail("name", name, f"Club name contains invalid characters. {INVALID_CHARACTERS_HINT}")

    if _is_blank(description):
        return _fail("description", description, "Club description is required")

    if len(description.strip()) > MAX_DESCRIPTION_LENGTH:
        return _fail(
            "description", description,
            f"Club description must be {MAX_DESCRIPTION_LENGTH} characters or less"
        )

    # sanitize in place
    payload["name"] = name.strip()
    payload["description"] = description.strip()

    logger.debug("Club creation validation passed: name=%r", payload["name"])
    return ValidationResult.success({"name": payload["name"], "description": payload["description"]})


@_guarded
def validate_event_creation(payload: dict, now: Optional[datetime] = None) -> ValidationResult:
    title = payload.get("title")
    description = payload.get("description")
    event_date = payload.get("event_date")

    logger.debug("Validating event creation: title=%r event_date=%r",
                 title[:50] if isinstance(title, str) else title, event_date)

    if _is_blank(title):
        return _fail("title", title, "Event title is required")

    if _is_blank(description):
        return _fail("description", description, "Event description is required")

    if not event_date:
        return _fail("event_date", event_date, "Event date is required")

    if len(title.strip()) > MAX_NAME_LENGTH:
        return _fail("title", title, f"Event title must be {MAX_NAME_LENGTH} characters or less")

    if not is_allowed_text(title.strip()):
        return _fail("title", title, f"Event title contains invalid characters. {INVALID_CHARACTERS_HINT}")

    if len(description.strip()) > MAX_DESCRIPTION_LENGTH:
        return _fail(
            "description", description,
            f"Event description must be {MAX_DESCRIPTION_LENGTH} characters or less"
        )

    parsed = parse_event_date(event_date)
    if parsed is None:
        return _fail(
            "event_date", event_date,
            "Invalid event date format. Please use ISO 8601 format (e.g., 2024-12-31T18:00:00Z)"
        )

    now = now or datetime.now(timezone.utc)
    if parsed < now:
        return _fail("event_date", event_date, "Event date cannot be in the past")

    if parsed > add_years(now, MAX_EVENT_YEARS_AHEAD):
        return _fail(
            "event_date", event_date,
            f"Event date cannot be more than {MAX_EVENT_YEARS_AHEAD} years in the future"
        )

    payload["title"] = title.strip()
    payload["description"] = description.strip()
    # event_date keeps the caller's representation

    return ValidationResult.success({
        "title": payload["title"],
        "description": payload["description"],
        "event_date": event_date,
    })


def _parse_int(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if INTEGER_TEXT.fullmatch(text) is None:
            return None
        return int(text)
    return None


@_guarded
def validate_resource_id(raw: Any, resource: str = "Club") -> ValidationResult:
    if raw is None or raw == "":
        return _fail("id", raw, f"{resource} ID is required")

    resource_id = _parse_int(raw)
    if resource_id is None or not 0 < resource_id <= MAX_SQL_INTEGER:
        return _fail("id", raw, f"{resource} ID must be a positive integer")

    return ValidationResult.success(resource_id)


@_guarded
def validate_search_term(raw: Any) -> ValidationResult:
    # no search means no filtering
    if raw is None or raw == "":
        return ValidationResult.success(None)

    if not isinstance(raw, str):
        return _fail("search", raw, "Search parameter must be a string")

    if len(raw) > MAX_SEARCH_LENGTH:
        return _fail("search", raw, f"Search term must be {MAX_SEARCH_LENGTH} characters or less")

    if not is_allowed_text(raw):
        return _fail("search", raw, f"Search term contains invalid characters. {INVALID_CHARACTERS_HINT}")

    return ValidationResult.success(raw.strip())


@_guarded
def validate_pagination(limit: Any = None, offset: Any = None) -> ValidationResult:
    if limit is None:
        limit = DEFAULT_PAGE_LIMIT
    if offset is None:
        offset = 0

    parsed_limit = _parse_int(limit)
    if parsed_limit is None or not 1 <= parsed_limit <= MAX_PAGE_LIMIT:
        return _fail("limit", limit, f"Limit must be an integer between 1 and {MAX_PAGE_LIMIT}")

    parsed_offset = _parse_int(offset)
    if parsed_offset is None or not 0 <= parsed_offset <= MAX_SQL_INTEGER:
        return _fail("offset", offset, "Offset must be a non-negative integer")

    return ValidationResult.success((parsed_limit, parsed_offset))


@_guarded
def validate_days(raw: Any = None) -> ValidationResult:
    if raw is None:
        return ValidationResult.success(DEFAULT_UPCOMING_DAYS)

    days = _parse_int(raw)
    if days is None or not 1 <= days <= MAX_UPCOMING_DAYS:
        return _fail("days", raw, f"Days must be an integer between 1 and {MAX_UPCOMING_DAYS}")

    return ValidationResult.success(days)
