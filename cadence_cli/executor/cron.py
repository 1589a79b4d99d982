"""Cron expression evaluation.

Computes the next due instant of a 5-field cron pattern evaluated in an
IANA timezone. Evaluation never raises: an invalid pattern or unknown
timezone comes back as an error value, since it is an authoring defect
that will not fix itself on retry.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

logger = logging.getLogger(__name__)

CRON_FIELD_COUNT = 5


@dataclass
class NextDue:
    """Outcome of a next-due computation.

    Attributes:
        instant: Next due instant (aware, UTC), None on error
        error: Why the instant could not be computed
    """

    instant: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.instant is not None


def _resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone '{name}'") from e


def validate_pattern(pattern: object) -> Optional[str]:
    """Check a cron pattern.

    Returns:
        None if the pattern is valid, otherwise an error message
    """
    if not isinstance(pattern, str) or not pattern.strip():
        return "Cron pattern must be a non-empty string"

    if len(pattern.split()) != CRON_FIELD_COUNT:
        return (
            f"Invalid cron pattern '{pattern}': expected {CRON_FIELD_COUNT} fields "
            "(minute hour day month weekday)"
        )

    if not croniter.is_valid(pattern):
        return f"Invalid cron pattern '{pattern}'"

    return None


def is_valid_pattern(pattern: object) -> bool:
    """Check whether a cron pattern can be evaluated."""
    return validate_pattern(pattern) is None


def next_due(pattern: str, tz_name: str, reference: datetime) -> NextDue:
    """Compute the first instant matching ``pattern`` strictly after ``reference``.

    Args:
        pattern: 5-field cron expression
        tz_name: IANA timezone the pattern's fields are interpreted in
        reference: Instant to search forward from (naive values are UTC)

    Returns:
        NextDue carrying either the instant (UTC) or an error message
    """
    error = validate_pattern(pattern)
    if error:
        return NextDue(error=error)

    try:
        tz = _resolve_timezone(tz_name or "UTC")
    except ValueError as e:
        return NextDue(error=str(e))

    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)

    try:
        itr = croniter(pattern, reference.astimezone(tz))
        instant = itr.get_next(datetime)
    except Exception as e:
        logger.debug(f"Cron evaluation failed for '{pattern}' in {tz_name}: {e}")
        return NextDue(error=f"Failed to evaluate cron pattern '{pattern}': {e}")

    return NextDue(instant=instant.astimezone(timezone.utc))
