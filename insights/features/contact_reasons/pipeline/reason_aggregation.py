"""
Per-mailbox frequency tables of normalized contact reasons.

Ranking is by descending count; equal counts keep the order in which the
reason was first seen so the same input always produces the same table.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping

from ..domain.models import UNKNOWN_MAILBOX_NAME, MailboxReasons, RawReasonEvent, ReasonCount
from .normalizer import is_reason_text, normalize
from insights.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def rank(frequencies: Mapping[str, int], limit: int | None = None) -> list[ReasonCount]:
    """Sort a reason -> count mapping; insertion order breaks ties."""
    ranked = sorted(frequencies.items(), key=lambda item: -item[1])
    if limit is not None:
        ranked = ranked[: max(limit, 0)]
    return [ReasonCount(reason=reason, count=count) for reason, count in ranked]


def _reason_key(event: RawReasonEvent) -> str | None:
    """Normalized grouping key, or None when nothing usable is left."""
    if not is_reason_text(event.reason_text):
        return None
    return normalize(event.reason_text) or None


class ReasonAggregator:
    def _count(self, events: Iterable[RawReasonEvent]) -> dict[str | None, dict[str, int]]:
        per_mailbox: dict[str | None, dict[str, int]] = {}
        skipped = 0

        for event in events:
            key = _reason_key(event)
            if key is None:
                skipped += 1
                continue
            frequencies = per_mailbox.setdefault(event.mailbox_id, {})
            frequencies[key] = frequencies.get(key, 0) + 1

        if skipped:
            logger.debug("Skipped events without a usable reason", skipped=skipped)
        return per_mailbox

    def aggregate(
        self, events: Iterable[RawReasonEvent], top_k: int
    ) -> dict[str | None, list[ReasonCount]]:
        """Ranked reasons per mailbox, each list capped at top_k."""
        return {
            mailbox_id: rank(frequencies, top_k)
            for mailbox_id, frequencies in self._count(events).items()
        }

    def merge(self, events: Iterable[RawReasonEvent]) -> list[ReasonCount]:
        """Cross-mailbox ranking, summing identical reasons. Not capped."""
        merged: defaultdict[str, int] = defaultdict(int)
        for event in events:
            key = _reason_key(event)
            if key is not None:
                merged[key] += 1
        return rank(merged)

    def aggregate_mailboxes(
        self,
        events: Iterable[RawReasonEvent],
        top_k: int,
        mailbox_names: Mapping[str, str] | None = None,
    ) -> list[MailboxReasons]:
        """Per-mailbox views with display names, busiest mailbox first."""
        names = mailbox_names or {}
        views = [
            MailboxReasons(
                mailbox_id=mailbox_id,
                mailbox_name=names.get(mailbox_id) or UNKNOWN_MAILBOX_NAME,
                total=sum(frequencies.values()),
                reasons=rank(frequencies, top_k),
            )
            for mailbox_id, frequencies in self._count(events).items()
        ]
        views.sort(key=lambda view: -view.total)
        return views
