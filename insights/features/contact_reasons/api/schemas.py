"""
Contact-reasons API response models.
Used by the router for output formatting.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from ..domain.models import PeriodClass, Report


class HourlyBucketResponse(BaseModel):
    hour: int = Field(..., ge=0, le=23, description="Hour of day, Brasília time")
    label: str = Field(..., description="Axis label such as '09h'")
    count: int = Field(..., ge=0, description="Incoming messages in this hour")
    period_class: PeriodClass = Field(..., description="Bar colour class (no weekend override)")


class PeriodSummaryResponse(BaseModel):
    business: int
    off_hours: int
    weekend: int
    total: int
    business_pct: int
    off_hours_pct: int
    weekend_pct: int


class ReasonCountResponse(BaseModel):
    reason: str
    count: int


class MailboxReasonsResponse(BaseModel):
    mailbox_id: str | None
    mailbox_name: str
    total: int = Field(..., description="Conversations with a usable reason")
    reasons: list[ReasonCountResponse]


class CategoryResponse(BaseModel):
    category: str
    count: int
    original_reasons: list[str]


class ContactReasonsReportResponse(BaseModel):
    period_days: int
    generated_at: datetime
    view: str = Field(..., description="'flat' for a single mailbox, 'grouped' otherwise")
    hourly: list[HourlyBucketResponse]
    summary: PeriodSummaryResponse
    mailboxes: list[MailboxReasonsResponse]
    top_reasons: list[ReasonCountResponse]
    categories: list[CategoryResponse]
    classification_degraded: bool = Field(
        ..., description="True when categories are the ungrouped reasons"
    )

    @classmethod
    def from_report(cls, report: Report) -> "ContactReasonsReportResponse":
        summary = report.summary
        return cls(
            period_days=report.period_days,
            generated_at=report.generated_at,
            view=report.view,
            hourly=[
                HourlyBucketResponse(
                    hour=bucket.hour,
                    label=bucket.label,
                    count=bucket.count,
                    period_class=bucket.period_class,
                )
                for bucket in report.hourly
            ],
            summary=PeriodSummaryResponse(
                **summary.as_dict(),
                business_pct=summary.percentage(PeriodClass.BUSINESS),
                off_hours_pct=summary.percentage(PeriodClass.OFF_HOURS),
                weekend_pct=summary.percentage(PeriodClass.WEEKEND),
            ),
            mailboxes=[
                MailboxReasonsResponse(
                    mailbox_id=mailbox.mailbox_id,
                    mailbox_name=mailbox.mailbox_name,
                    total=mailbox.total,
                    reasons=[
                        ReasonCountResponse(reason=item.reason, count=item.count)
                        for item in mailbox.reasons
                    ],
                )
                for mailbox in report.mailboxes
            ],
            top_reasons=[
                ReasonCountResponse(reason=item.reason, count=item.count)
                for item in report.top_reasons
            ],
            categories=[
                CategoryResponse(
                    category=category.label,
                    count=category.count,
                    original_reasons=category.absorbed_reasons,
                )
                for category in report.categories
            ],
            classification_degraded=report.classification_degraded,
        )


class GroupReasonsResponse(BaseModel):
    grouped: list[CategoryResponse] = Field(default_factory=list)
