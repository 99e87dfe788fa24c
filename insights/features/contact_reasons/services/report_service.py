"""
Contact-reasons report service.

Builds the dashboard report from a point-in-time snapshot of the store:
hourly/period volume of incoming messages plus ranked and categorised
contact reasons. Classification problems only degrade the categories; the
report itself always completes. Store failures propagate to the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from datetime import UTC, datetime, timedelta

from ..domain.models import RawMessageEvent, RawReasonEvent, Report, ReportFilters
from ..pipeline.clustering import CategoryClusterer
from ..pipeline.period_aggregation import PeriodAggregator
from ..pipeline.reason_aggregation import ReasonAggregator
from ..repository import ContactReasonRepository
from insights.config import settings
from insights.infrastructure.observability.logging import get_logger
from insights.services.reason_classification_service import reason_classifier

logger = get_logger(__name__)

InstanceLookup = Callable[[Iterable[str]], Awaitable[Mapping[str, str | None]]]


class ReportAssembler:
    def __init__(
        self,
        clusterer: CategoryClusterer,
        repository: type[ContactReasonRepository] | ContactReasonRepository = ContactReasonRepository,
        instance_lookup: InstanceLookup | None = None,
        period_aggregator: PeriodAggregator | None = None,
        reason_aggregator: ReasonAggregator | None = None,
        mailbox_top_k: int | None = None,
        flat_top_k: int | None = None,
    ):
        self.clusterer = clusterer
        self.repository = repository
        self.instance_lookup = instance_lookup or repository.fetch_mailbox_instances
        self.period_aggregator = period_aggregator or PeriodAggregator()
        self.reason_aggregator = reason_aggregator or ReasonAggregator()
        self.mailbox_top_k = mailbox_top_k or settings.MAILBOX_TOP_K
        self.flat_top_k = flat_top_k or settings.FLAT_TOP_K

    async def generate_report(self, filters: ReportFilters) -> Report:
        """Fetch the report window from the store and build the report."""
        window_start = datetime.now(UTC) - timedelta(days=filters.period_days)

        message_events, reason_events, mailbox_names = await asyncio.gather(
            self.repository.fetch_incoming_messages(window_start, filters.mailbox_id),
            self.repository.fetch_reason_events(window_start, filters.mailbox_id),
            self.repository.fetch_mailbox_names(),
        )

        logger.info(
            "Report data fetched",
            messages=len(message_events),
            reason_rows=len(reason_events),
            mailbox_id=filters.mailbox_id,
            instance_id=filters.instance_id,
            period_days=filters.period_days,
        )

        return await self.build_report(message_events, reason_events, mailbox_names, filters)

    async def build_report(
        self,
        message_events: Sequence[RawMessageEvent],
        reason_events: Sequence[RawReasonEvent],
        mailbox_names: Mapping[str, str],
        filters: ReportFilters,
        mailbox_instances: Mapping[str, str | None] | None = None,
    ) -> Report:
        hourly, summary = self.period_aggregator.aggregate(message_events)

        reasons = await self._filter_reason_events(reason_events, filters, mailbox_instances)

        mailboxes = self.reason_aggregator.aggregate_mailboxes(
            reasons, self.mailbox_top_k, mailbox_names
        )
        merged = self.reason_aggregator.merge(reasons)
        flat = filters.mailbox_id is not None or len(mailboxes) == 1

        clustering = await self.clusterer.cluster_with_status(merged)

        return Report(
            hourly=hourly,
            summary=summary,
            view="flat" if flat else "grouped",
            mailboxes=mailboxes,
            top_reasons=merged[: self.flat_top_k],
            categories=clustering.categories,
            classification_degraded=clustering.degraded,
            period_days=filters.period_days,
        )

    async def _filter_reason_events(
        self,
        events: Sequence[RawReasonEvent],
        filters: ReportFilters,
        mailbox_instances: Mapping[str, str | None] | None,
    ) -> list[RawReasonEvent]:
        retained = list(events)

        if filters.mailbox_id is not None:
            retained = [event for event in retained if event.mailbox_id == filters.mailbox_id]

        if filters.instance_id is not None:
            if mailbox_instances is None:
                mailbox_ids = {event.mailbox_id for event in retained if event.mailbox_id}
                mailbox_instances = await self.instance_lookup(mailbox_ids)
            retained = [
                event
                for event in retained
                if event.mailbox_id is not None
                and mailbox_instances.get(event.mailbox_id) == filters.instance_id
            ]

        return retained


report_service = ReportAssembler(clusterer=CategoryClusterer(reason_classifier))
