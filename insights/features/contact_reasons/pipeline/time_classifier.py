"""
Business-hours classification for message arrival times.

The business runs on a fixed UTC-3 civil clock (Brasília time without
daylight saving). Weekdays 08:00-17:59 are business hours, the rest of a
weekday is off-hours, and Saturday/Sunday are weekend at any hour.
"""

from datetime import UTC, datetime, timedelta, timezone

from ..domain.models import PeriodClass

REFERENCE_TZ = timezone(timedelta(hours=-3), "BRT")
BUSINESS_START_HOUR = 8
BUSINESS_END_HOUR = 18  # exclusive
WEEKEND_DAYS = (5, 6)  # Saturday, Sunday


class InvalidTimestamp(ValueError):
    """Raised when a message timestamp cannot be interpreted."""

    def __init__(self, value: object):
        super().__init__(f"Invalid timestamp: {value!r}")
        self.value = value


def _parse(timestamp: datetime | str) -> datetime:
    if isinstance(timestamp, datetime):
        parsed = timestamp
    elif isinstance(timestamp, str):
        try:
            parsed = datetime.fromisoformat(timestamp.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidTimestamp(timestamp) from e
    else:
        raise InvalidTimestamp(timestamp)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_local(timestamp: datetime | str) -> datetime:
    """Convert an instant to the reference business timezone."""
    return _parse(timestamp).astimezone(REFERENCE_TZ)


def local_hour(timestamp: datetime | str) -> int:
    """Hour of day (0-23) on the reference clock, weekends included."""
    return to_local(timestamp).hour


def is_business_hour(hour: int) -> bool:
    return BUSINESS_START_HOUR <= hour < BUSINESS_END_HOUR


def classify(timestamp: datetime | str) -> PeriodClass:
    local = to_local(timestamp)
    if local.weekday() in WEEKEND_DAYS:
        return PeriodClass.WEEKEND
    if is_business_hour(local.hour):
        return PeriodClass.BUSINESS
    return PeriodClass.OFF_HOURS
