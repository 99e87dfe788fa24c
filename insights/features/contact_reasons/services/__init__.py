"""Report assembly for the contact-reasons dashboard."""

from .report_service import ReportAssembler, report_service  # noqa: F401
