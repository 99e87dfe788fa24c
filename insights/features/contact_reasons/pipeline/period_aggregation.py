"""
Hourly and per-period message volume.

Turns incoming message timestamps into the 24-bar hourly histogram and the
business / off-hours / weekend summary shown next to it.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..domain.models import HourlyBucket, PeriodClass, PeriodSummary, RawMessageEvent
from .time_classifier import InvalidTimestamp, classify, is_business_hour, local_hour
from insights.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

HOURS_PER_DAY = 24


def bucket_color_class(hour: int) -> PeriodClass:
    """
    Bar colour for an hour of the histogram.

    Only the business window is considered; weekend traffic at 10:00 still
    colours the 10h bar as business even though the summary counts it as
    weekend.
    """
    return PeriodClass.BUSINESS if is_business_hour(hour) else PeriodClass.OFF_HOURS


class PeriodAggregator:
    def aggregate(
        self, events: Iterable[RawMessageEvent]
    ) -> tuple[list[HourlyBucket], PeriodSummary]:
        hour_counts = [0] * HOURS_PER_DAY
        summary = PeriodSummary()
        skipped = 0

        for event in events:
            try:
                hour = local_hour(event.timestamp)
                period_class = classify(event.timestamp)
            except InvalidTimestamp as e:
                skipped += 1
                logger.warning("Skipping message with invalid timestamp", value=repr(e.value)[:64])
                continue
            hour_counts[hour] += 1
            summary.add(period_class)

        if skipped:
            logger.info("Period aggregation skipped events", skipped=skipped, counted=summary.total)

        buckets = [
            HourlyBucket(hour=hour, count=count, period_class=bucket_color_class(hour))
            for hour, count in enumerate(hour_counts)
        ]
        return buckets, summary
