from datetime import UTC, datetime

import pytest

from insights.features.contact_reasons.domain.models import RawMessageEvent, RawReasonEvent
from insights.services.reason_classification_service import ClassificationUnavailable


class FakeClassifier:
    """Records calls and returns a canned payload or raises."""

    name = "fake"

    def __init__(self, payload=None, error: Exception | None = None):
        self.payload = payload
        self.error = error
        self.calls: list[list] = []

    async def group_reasons(self, reasons):
        self.calls.append(list(reasons))
        if self.error is not None:
            raise self.error
        return self.payload


class FakeRepository:
    def __init__(self, messages=None, reasons=None, names=None, instances=None, error=None):
        self.messages = messages or []
        self.reasons = reasons or []
        self.names = names or {}
        self.instances = instances or {}
        self.error = error
        self.instance_lookups: list[set] = []
        self.fetch_args: list[tuple] = []

    async def fetch_incoming_messages(self, window_start, mailbox_id=None, limit=None):
        if self.error is not None:
            raise self.error
        self.fetch_args.append(("messages", window_start, mailbox_id))
        return list(self.messages)

    async def fetch_reason_events(self, window_start, mailbox_id=None, limit=None):
        if self.error is not None:
            raise self.error
        self.fetch_args.append(("reasons", window_start, mailbox_id))
        return list(self.reasons)

    async def fetch_mailbox_names(self):
        return dict(self.names)

    async def fetch_mailbox_instances(self, mailbox_ids):
        ids = set(mailbox_ids)
        self.instance_lookups.append(ids)
        return {mailbox_id: self.instances.get(mailbox_id) for mailbox_id in ids}


def utc(year, month, day, hour, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


def reason(mailbox_id, text):
    return RawReasonEvent(mailbox_id=mailbox_id, reason_text=text)


def message(timestamp, mailbox_id="mb-1"):
    return RawMessageEvent(timestamp=timestamp, mailbox_id=mailbox_id)


@pytest.fixture
def failing_classifier():
    return FakeClassifier(error=ClassificationUnavailable("boom", reason="status", status_code=500))


@pytest.fixture
def fake_repository():
    return FakeRepository()
