"""
Contact-reasons dashboard routes.

Serves the assembled report and exposes the reason grouping contract used
by the dashboard's "top contact reasons" card.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..domain.models import ReasonCount, ReportFilters
from ..services.report_service import ReportAssembler, report_service
from .schemas import CategoryResponse, ContactReasonsReportResponse, GroupReasonsResponse
from insights.config import settings
from insights.db.helpers import DatabaseError
from insights.infrastructure.observability.logging import get_logger
from insights.services.reason_classification_service import GroupReasonsRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/dashboard/contact-reasons", tags=["dashboard"])


def get_report_service() -> ReportAssembler:
    return report_service


@router.get("/report", response_model=ContactReasonsReportResponse)
async def get_contact_reasons_report(
    mailbox_id: str | None = Query(None, description="Restrict to one mailbox"),
    instance_id: str | None = Query(None, description="Restrict to one tenant instance"),
    period_days: int = Query(settings.REPORT_PERIOD_DAYS, ge=1, le=365),
    service: ReportAssembler = Depends(get_report_service),
) -> ContactReasonsReportResponse:
    filters = ReportFilters(mailbox_id=mailbox_id, instance_id=instance_id, period_days=period_days)
    try:
        report = await service.generate_report(filters)
    except DatabaseError as e:
        logger.error("Report data unavailable", error=str(e), operation=e.operation)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Report data is temporarily unavailable",
        ) from e

    return ContactReasonsReportResponse.from_report(report)


@router.post("/group", response_model=GroupReasonsResponse)
async def group_reasons(
    request: GroupReasonsRequest,
    service: ReportAssembler = Depends(get_report_service),
) -> GroupReasonsResponse:
    """Group ranked reasons into categories; falls back to the reasons themselves."""
    if not request.reasons:
        return GroupReasonsResponse(grouped=[])

    frequencies = [ReasonCount(reason=item.reason, count=item.count) for item in request.reasons]
    categories = await service.clusterer.cluster(frequencies)
    return GroupReasonsResponse(
        grouped=[
            CategoryResponse(
                category=category.label,
                count=category.count,
                original_reasons=category.absorbed_reasons,
            )
            for category in categories
        ]
    )
