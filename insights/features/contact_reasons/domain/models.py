"""
Domain models for the contact-reasons dashboard.

These lightweight dataclasses describe the inputs read from the store and
the structures the report pipeline hands to presentation. Every instance is
rebuilt per report request; nothing here is persisted.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

UNKNOWN_MAILBOX_NAME = "Sem caixa"


class PeriodClass(str, Enum):
    BUSINESS = "business"
    OFF_HOURS = "off_hours"
    WEEKEND = "weekend"


@dataclass(slots=True, frozen=True)
class RawMessageEvent:
    """An incoming message arrival. Naive timestamps are UTC."""

    timestamp: datetime | str
    mailbox_id: str | None = None


@dataclass(slots=True, frozen=True)
class RawReasonEvent:
    """A conversation summary reason; reason_text may be missing or not a string."""

    mailbox_id: str | None
    reason_text: Any


@dataclass(slots=True)
class HourlyBucket:
    hour: int
    count: int
    period_class: PeriodClass

    @property
    def label(self) -> str:
        return f"{self.hour:02d}h"


@dataclass(slots=True)
class PeriodSummary:
    business_count: int = 0
    off_hours_count: int = 0
    weekend_count: int = 0
    total: int = 0

    def add(self, period_class: PeriodClass) -> None:
        if period_class is PeriodClass.BUSINESS:
            self.business_count += 1
        elif period_class is PeriodClass.OFF_HOURS:
            self.off_hours_count += 1
        else:
            self.weekend_count += 1
        self.total += 1

    def count_for(self, period_class: PeriodClass) -> int:
        return {
            PeriodClass.BUSINESS: self.business_count,
            PeriodClass.OFF_HOURS: self.off_hours_count,
            PeriodClass.WEEKEND: self.weekend_count,
        }[period_class]

    def percentage(self, period_class: PeriodClass) -> int:
        """Whole-number share of the total, halves rounded up, 0 when nothing was counted."""
        if self.total <= 0:
            return 0
        return int(self.count_for(period_class) / self.total * 100 + 0.5)

    def as_dict(self) -> dict[str, int]:
        return {
            "business": self.business_count,
            "off_hours": self.off_hours_count,
            "weekend": self.weekend_count,
            "total": self.total,
        }


@dataclass(slots=True)
class ReasonCount:
    reason: str
    count: int


@dataclass(slots=True)
class Category:
    """A named group of normalized reasons with their combined count."""

    label: str
    count: int
    absorbed_reasons: list[str] = field(default_factory=list)


@dataclass(slots=True)
class MailboxReasons:
    mailbox_id: str | None
    mailbox_name: str
    total: int
    reasons: list[ReasonCount]


@dataclass(slots=True)
class ReportFilters:
    mailbox_id: str | None = None
    instance_id: str | None = None
    period_days: int = 30


@dataclass(slots=True)
class Report:
    hourly: list[HourlyBucket]
    summary: PeriodSummary
    view: str  # "flat" or "grouped"
    mailboxes: list[MailboxReasons]
    top_reasons: list[ReasonCount]
    categories: list[Category]
    classification_degraded: bool
    period_days: int
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_flat(self) -> bool:
        return self.view == "flat"
