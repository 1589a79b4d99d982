"""Decides whether a schedule is due to run.

The decision runs through a fixed sequence of gates: structure, the
active flag, error backoff, pattern validity, and finally the timing
check against the schedule's watermark. The policy never raises; any
failure along the way is reported in the returned DueCheck.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from cadence_cli.executor.cron import next_due, validate_pattern
from cadence_cli.executor.models import Schedule, parse_timestamp

logger = logging.getLogger(__name__)

MAX_ERROR_COUNT = 3
ERROR_RESET_HOURS = 24.0
BOOTSTRAP_LOOKBACK_HOURS = 24.0


@dataclass
class DueCheck:
    """Decision for one schedule.

    Attributes:
        should_run: Whether the schedule should execute now
        error: Reported problem; set only for real errors, never for an
            intentional pause or a schedule that simply is not due yet
        next_due: The instant the decision was made against, if computed
        suspended: Whether the schedule is held back by error backoff
    """

    should_run: bool
    error: Optional[str] = None
    next_due: Optional[datetime] = None
    suspended: bool = False


class DueCheckPolicy:
    """Evaluates schedules against the current time.

    Example:
        policy = DueCheckPolicy(max_error_count=3, error_reset_hours=24)
        check = policy.is_due(schedule, now)
        if check.should_run:
            ...
    """

    def __init__(
        self,
        max_error_count: int = MAX_ERROR_COUNT,
        error_reset_hours: float = ERROR_RESET_HOURS,
        bootstrap_lookback_hours: float = BOOTSTRAP_LOOKBACK_HOURS,
    ) -> None:
        """Initialize the policy.

        Args:
            max_error_count: Consecutive failures that suspend a schedule
            error_reset_hours: Cooldown after the last failure before a
                suspended schedule becomes eligible again
            bootstrap_lookback_hours: How far back a never-run schedule
                looks for a tick it should already have fired on
        """
        self.max_error_count = max_error_count
        self.error_reset = timedelta(hours=error_reset_hours)
        self.bootstrap_lookback = timedelta(hours=bootstrap_lookback_hours)

    def is_due(self, schedule: Schedule, now: datetime) -> DueCheck:
        """Decide whether ``schedule`` should run at ``now``."""
        try:
            return self._evaluate(schedule, now)
        except Exception as e:
            logger.exception(f"Unexpected error checking schedule {getattr(schedule, 'id', None)}")
            return DueCheck(
                should_run=False,
                error=f"Unexpected error in due check: {e}",
            )

    def _evaluate(self, schedule: Schedule, now: datetime) -> DueCheck:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        if not isinstance(schedule.id, str) or not schedule.id:
            return DueCheck(should_run=False, error="Schedule missing valid ID")

        interval = schedule.interval
        if interval is None:
            return DueCheck(should_run=False, error="Schedule missing interval configuration")

        if not interval.active:
            return DueCheck(should_run=False)

        suspension = self._check_backoff(schedule, now)
        if suspension is not None:
            return suspension

        pattern_error = validate_pattern(interval.pattern)
        if pattern_error:
            return DueCheck(
                should_run=False,
                error=f"Invalid cron pattern for schedule {schedule.id}: {pattern_error}",
            )

        reference = self._watermark(schedule)
        if reference is None:
            reference = now - self.bootstrap_lookback

        due = next_due(interval.pattern, interval.timezone, reference)
        if not due.ok:
            return DueCheck(
                should_run=False,
                error=f"Failed to calculate next run time: {due.error}",
            )

        return DueCheck(should_run=now >= due.instant, next_due=due.instant)

    def _check_backoff(self, schedule: Schedule, now: datetime) -> Optional[DueCheck]:
        """Return a suspended decision if error backoff holds the schedule."""
        if schedule.error_count < self.max_error_count:
            return None

        try:
            last_error_at = parse_timestamp(schedule.last_error_at)
        except ValueError:
            logger.warning(
                f"Invalid lastErrorAt for schedule {schedule.id}: {schedule.last_error_at!r}"
            )
            last_error_at = None

        if last_error_at is None:
            return DueCheck(
                should_run=False,
                suspended=True,
                error=f"Schedule disabled due to {schedule.error_count} consecutive errors.",
            )

        if now - last_error_at < self.error_reset:
            hours = self.error_reset.total_seconds() / 3600
            return DueCheck(
                should_run=False,
                suspended=True,
                error=(
                    f"Schedule disabled due to {schedule.error_count} consecutive errors. "
                    f"Will retry after {hours:g} hours from last error."
                ),
            )

        # Cooldown elapsed; the count itself is only cleared by a success
        return None

    def _watermark(self, schedule: Schedule) -> Optional[datetime]:
        try:
            return parse_timestamp(schedule.last_processed_at)
        except ValueError:
            logger.warning(
                f"Invalid lastProcessedAt for schedule {schedule.id}: "
                f"{schedule.last_processed_at!r}, treating as never processed"
            )
            return None
