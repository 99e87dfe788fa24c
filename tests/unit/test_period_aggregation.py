from insights.features.contact_reasons.domain.models import PeriodClass, PeriodSummary
from insights.features.contact_reasons.pipeline.period_aggregation import PeriodAggregator
from tests.conftest import message, utc


def test_scenario_weekday_and_saturday_messages():
    events = [
        message(utc(2024, 1, 1, 12, 0)),  # Mon 09:00 local
        message(utc(2024, 1, 1, 12, 30)),  # Mon 09:30 local
        message(utc(2024, 1, 6, 17, 0)),  # Sat 14:00 local
    ]

    buckets, summary = PeriodAggregator().aggregate(events)

    assert summary == PeriodSummary(business_count=2, off_hours_count=0, weekend_count=1, total=3)
    assert buckets[9].count == 2
    assert buckets[14].count == 1


def test_bucket_invariants():
    events = [message(utc(2024, 1, day, hour)) for day in range(1, 8) for hour in (0, 5, 11, 14, 22)]

    buckets, summary = PeriodAggregator().aggregate(events)

    assert [bucket.hour for bucket in buckets] == list(range(24))
    assert sum(bucket.count for bucket in buckets) == summary.total == len(events)
    assert (
        summary.business_count + summary.off_hours_count + summary.weekend_count == summary.total
    )


def test_bucket_colour_ignores_weekend():
    buckets, summary = PeriodAggregator().aggregate([message(utc(2024, 1, 6, 13))])  # Sat 10:00

    assert summary.weekend_count == 1
    assert buckets[10].period_class == PeriodClass.BUSINESS
    assert buckets[7].period_class == PeriodClass.OFF_HOURS
    assert buckets[18].period_class == PeriodClass.OFF_HOURS
    assert buckets[10].label == "10h"


def test_empty_input():
    buckets, summary = PeriodAggregator().aggregate([])

    assert len(buckets) == 24
    assert all(bucket.count == 0 for bucket in buckets)
    assert summary.total == 0
    assert summary.percentage(PeriodClass.BUSINESS) == 0


def test_invalid_timestamps_are_skipped():
    events = [message("garbage"), message(utc(2024, 1, 1, 12)), message(None)]

    buckets, summary = PeriodAggregator().aggregate(events)

    assert summary.total == 1
    assert sum(bucket.count for bucket in buckets) == 1


def test_summary_percentages():
    summary = PeriodSummary(business_count=2, off_hours_count=0, weekend_count=1, total=3)

    assert summary.percentage(PeriodClass.BUSINESS) == 67
    assert summary.percentage(PeriodClass.WEEKEND) == 33
    assert summary.as_dict() == {"business": 2, "off_hours": 0, "weekend": 1, "total": 3}


def test_summary_percentages_round_halves_up():
    summary = PeriodSummary(business_count=1, off_hours_count=7, weekend_count=0, total=8)

    assert summary.percentage(PeriodClass.BUSINESS) == 13
    assert summary.percentage(PeriodClass.OFF_HOURS) == 88
    assert summary.percentage(PeriodClass.WEEKEND) == 0
