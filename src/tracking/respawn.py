"""
Respawn timing.

A killed boss comes back 72 hours after it died, unless the weekly server reset happens first.
The reset is every Tuesday at 10:00 in UTC-5 (15:00 UTC). The offset is fixed: no daylight saving.
"""

from datetime import datetime, timedelta, timezone

RESPAWN_COOLDOWN = timedelta(hours=72)

RESET_TIMEZONE = timezone(timedelta(hours=-5))
RESET_WEEKDAY = 1  # Tuesday (Monday == 0)
RESET_HOUR = 10

ONE_WEEK = timedelta(days=7)


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def next_weekly_reset(event_time: datetime) -> datetime:
    """First reset instant at or after event_time (an event exactly on the reset counts as that reset)."""
    local = as_utc(event_time).astimezone(RESET_TIMEZONE)
    days_ahead = (RESET_WEEKDAY - local.weekday()) % 7
    reset = (local + timedelta(days=days_ahead)).replace(
        hour=RESET_HOUR, minute=0, second=0, microsecond=0
    )
    # Same weekday, but already past the reset time
    if reset < local:
        reset += ONE_WEEK
    return reset.astimezone(timezone.utc)


def compute_next_respawn(event_time: datetime) -> datetime:
    """Earliest moment a boss killed at event_time can be up again."""
    cooldown_over = as_utc(event_time) + RESPAWN_COOLDOWN
    return min(cooldown_over, next_weekly_reset(event_time))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
