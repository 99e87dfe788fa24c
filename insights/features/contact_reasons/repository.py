"""
Repository helpers for the contact-reasons report.

Reads incoming message timestamps, reason-bearing conversation summaries and
mailbox metadata. Nothing is written back.
"""

import asyncio
from collections.abc import Iterable, Sequence
from datetime import datetime

from .domain.models import RawMessageEvent, RawReasonEvent
from insights.config import settings
from insights.db.helpers import fetch_all
from insights.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def chunked(ids: Iterable[str], size: int) -> list[list[str]]:
    """Split ids into lists of at most size elements, dropping duplicates."""
    unique = list(dict.fromkeys(ids))
    step = max(size, 1)
    return [unique[i : i + step] for i in range(0, len(unique), step)]


class ContactReasonRepository:
    """Raw SQL helpers for the dashboard report."""

    @classmethod
    async def fetch_incoming_messages(
        cls, window_start: datetime, mailbox_id: str | None = None, limit: int | None = None
    ) -> list[RawMessageEvent]:
        query = """
            SELECT m.created_at, c.inbox_id
            FROM conversation_messages m
            LEFT JOIN conversations c ON c.id = m.conversation_id
            WHERE m.direction = 'incoming'
              AND m.created_at >= %s
              AND (%s::uuid IS NULL OR c.inbox_id = %s::uuid)
            ORDER BY m.created_at ASC
            LIMIT %s
        """
        row_limit = limit or settings.MESSAGE_FETCH_LIMIT
        rows = await fetch_all(query, (window_start, mailbox_id, mailbox_id, row_limit))
        return [
            RawMessageEvent(
                timestamp=row["created_at"],
                mailbox_id=str(row["inbox_id"]) if row.get("inbox_id") else None,
            )
            for row in rows
        ]

    @classmethod
    async def fetch_reason_events(
        cls, window_start: datetime, mailbox_id: str | None = None, limit: int | None = None
    ) -> list[RawReasonEvent]:
        # ai_summary->'reason' keeps the JSON value so non-string reasons reach the aggregator as-is
        query = """
            SELECT c.inbox_id, c.ai_summary -> 'reason' AS reason
            FROM conversations c
            WHERE c.ai_summary IS NOT NULL
              AND c.created_at >= %s
              AND (%s::uuid IS NULL OR c.inbox_id = %s::uuid)
            ORDER BY c.created_at DESC
            LIMIT %s
        """
        row_limit = limit or settings.REASON_FETCH_LIMIT
        rows = await fetch_all(query, (window_start, mailbox_id, mailbox_id, row_limit))
        return [
            RawReasonEvent(
                mailbox_id=str(row["inbox_id"]) if row.get("inbox_id") else None,
                reason_text=row.get("reason"),
            )
            for row in rows
        ]

    @classmethod
    async def fetch_mailbox_names(cls) -> dict[str, str]:
        rows = await fetch_all("SELECT id, name FROM inboxes ORDER BY name")
        return {str(row["id"]): row["name"] for row in rows if row.get("name")}

    @classmethod
    async def fetch_instance_chunk(cls, mailbox_ids: Sequence[str]) -> dict[str, str | None]:
        query = """
            SELECT id, instance_id
            FROM inboxes
            WHERE id = ANY(%s::uuid[])
        """
        rows = await fetch_all(query, (list(mailbox_ids),))
        return {
            str(row["id"]): str(row["instance_id"]) if row.get("instance_id") else None
            for row in rows
        }

    @classmethod
    async def fetch_mailbox_instances(
        cls,
        mailbox_ids: Iterable[str],
        chunk_size: int | None = None,
        max_concurrency: int | None = None,
    ) -> dict[str, str | None]:
        """
        Resolve mailbox -> instance membership in concurrent id chunks.

        Chunks write disjoint keys, so results are merged in whatever order
        they complete. Any chunk failure propagates.
        """
        chunks = chunked(
            (mailbox_id for mailbox_id in mailbox_ids if mailbox_id),
            chunk_size or settings.MAILBOX_LOOKUP_CHUNK_SIZE,
        )
        if not chunks:
            return {}

        semaphore = asyncio.Semaphore(max_concurrency or settings.MAILBOX_LOOKUP_CONCURRENCY)

        async def _fetch_with_semaphore(chunk: list[str]) -> dict[str, str | None]:
            async with semaphore:
                return await cls.fetch_instance_chunk(chunk)

        results = await asyncio.gather(*(_fetch_with_semaphore(chunk) for chunk in chunks))

        instances: dict[str, str | None] = {}
        for result in results:
            instances.update(result)

        logger.debug(
            "Mailbox instances resolved",
            mailboxes=len(instances),
            chunks=len(chunks),
        )
        return instances
