"""
Clock abstraction injected wherever expiry or TTLs are computed.
"""
from datetime import datetime, timezone as dt_timezone

from django.utils import timezone


class SystemClock:
    """Wall clock, always timezone-aware UTC."""

    def now(self):
        return timezone.now()


def start_of_day_utc(moment):
    """Midnight (UTC) of the calendar day containing `moment`."""
    moment = moment.astimezone(dt_timezone.utc)
    return datetime(moment.year, moment.month, moment.day, tzinfo=dt_timezone.utc)


def to_iso(moment):
    return moment.astimezone(dt_timezone.utc).isoformat()


def from_iso(value):
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed


default_clock = SystemClock()
