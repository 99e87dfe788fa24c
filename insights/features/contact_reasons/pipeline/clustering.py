"""
Collapse ranked reasons into a bounded set of named categories.

Small tables (three reasons or fewer) are returned as they are. Larger ones
go to the configured classification backend; whenever that backend cannot
produce a well-formed grouping the reasons are returned ungrouped, one
category per reason, so no count is ever lost.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import TypeAdapter, ValidationError

from ..domain.models import Category, ReasonCount
from insights.config import settings
from insights.infrastructure.observability.logging import get_logger
from insights.services.reason_classification_service import (
    ClassificationUnavailable,
    ReasonClassifier,
    ReasonGroup,
)

logger = get_logger(__name__)

IDENTITY_THRESHOLD = 3

_grouping_adapter = TypeAdapter(list[ReasonGroup])


@dataclass(slots=True)
class ClusteringResult:
    categories: list[Category]
    degraded: bool = False
    failure_reason: str | None = None


def identity_categories(frequencies: Sequence[ReasonCount]) -> list[Category]:
    """One category per reason, in input order."""
    return [
        Category(label=item.reason, count=item.count, absorbed_reasons=[item.reason])
        for item in frequencies
    ]


class CategoryClusterer:
    def __init__(self, classifier: ReasonClassifier, timeout_seconds: float | None = None):
        self.classifier = classifier
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.CLASSIFICATION_TIMEOUT_SECONDS
        )

    async def cluster(self, frequencies: Sequence[ReasonCount]) -> list[Category]:
        result = await self.cluster_with_status(frequencies)
        return result.categories

    async def cluster_with_status(self, frequencies: Sequence[ReasonCount]) -> ClusteringResult:
        entries = list(frequencies)
        if len(entries) <= IDENTITY_THRESHOLD:
            return ClusteringResult(categories=identity_categories(entries))

        try:
            payload = await asyncio.wait_for(
                self.classifier.group_reasons(entries), timeout=self.timeout_seconds
            )
            groups = _grouping_adapter.validate_python(payload)
        except ClassificationUnavailable as e:
            return self._fallback(entries, e.reason, str(e))
        except TimeoutError:
            return self._fallback(entries, "timeout", "classification timed out")
        except ValidationError as e:
            return self._fallback(entries, "malformed", f"{e.error_count()} validation errors")
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return self._fallback(entries, "cancelled", "classification call was cancelled")
        except Exception as e:
            logger.error(
                "Unexpected error from reason classifier",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return self._fallback(entries, "unexpected", str(e))

        if not groups:
            return self._fallback(entries, "malformed", "empty grouping for non-empty input")

        categories = [
            Category(label=group.category, count=group.count, absorbed_reasons=group.original_reasons)
            for group in groups
        ]
        logger.info(
            "Reasons grouped into categories",
            backend=getattr(self.classifier, "name", type(self.classifier).__name__),
            reasons=len(entries),
            categories=len(categories),
        )
        return ClusteringResult(categories=categories)

    def _fallback(self, entries: list[ReasonCount], reason: str, detail: str) -> ClusteringResult:
        logger.warning(
            "Reason classification unavailable, returning ungrouped reasons",
            reason=reason,
            detail=detail,
            reasons=len(entries),
        )
        return ClusteringResult(
            categories=identity_categories(entries), degraded=True, failure_reason=reason
        )
