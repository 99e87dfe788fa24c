"""Domain models for the contact-reasons report."""

from .models import (  # noqa: F401
    Category,
    HourlyBucket,
    MailboxReasons,
    PeriodClass,
    PeriodSummary,
    RawMessageEvent,
    RawReasonEvent,
    ReasonCount,
    Report,
    ReportFilters,
)
