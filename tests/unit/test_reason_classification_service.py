import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from insights.features.contact_reasons.domain.models import ReasonCount
from insights.services import reason_classification_service as service_module
from insights.services.reason_classification_service import (
    ClassificationUnavailable,
    DisabledReasonClassifier,
    HttpReasonClassifier,
    LlmReasonClassifier,
    build_reason_classifier,
    parse_grouping_content,
)

REASONS = [
    ReasonCount("erro no boleto", 3),
    ReasonCount("segunda via", 2),
    ReasonCount("problema login", 2),
    ReasonCount("não consigo entrar", 1),
]

GROUPED = [
    {"category": "Boleto", "count": 5, "original_reasons": ["erro no boleto", "segunda via"]},
    {"category": "Acesso", "count": 3, "original_reasons": ["problema login", "não consigo entrar"]},
]


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=message)] if self.content is not None else [],
            usage=SimpleNamespace(total_tokens=42),
        )


def _llm(completions):
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LlmReasonClassifier(client=client)


def test_parse_accepts_fenced_list_and_grouped_object():
    fenced = "```json\n" + json.dumps(GROUPED) + "\n```"

    assert parse_grouping_content(fenced) == GROUPED
    assert parse_grouping_content(json.dumps({"grouped": GROUPED})) == GROUPED


def test_parse_rejects_invalid_json():
    with pytest.raises(ClassificationUnavailable) as exc_info:
        parse_grouping_content("Aqui estão as categorias: [")

    assert exc_info.value.reason == "malformed"


@pytest.mark.asyncio
async def test_llm_classifier_sends_reasons_and_parses_reply():
    completions = FakeCompletions(content="```" + json.dumps(GROUPED) + "```")

    result = await _llm(completions).group_reasons(REASONS)

    assert result == GROUPED
    user_message = completions.kwargs["messages"][1]["content"]
    assert '- "erro no boleto" (3x)' in user_message
    assert completions.kwargs["temperature"] == 0.2


@pytest.mark.asyncio
async def test_llm_classifier_empty_reply_is_malformed():
    with pytest.raises(ClassificationUnavailable) as exc_info:
        await _llm(FakeCompletions(content=None)).group_reasons(REASONS)

    assert exc_info.value.reason == "malformed"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "expected_reason"),
    [
        (openai.APITimeoutError(request=httpx.Request("POST", "https://llm.test")), "timeout"),
        (openai.APIConnectionError(request=httpx.Request("POST", "https://llm.test")), "network"),
        (
            openai.APIStatusError(
                "rate limited",
                response=httpx.Response(429, request=httpx.Request("POST", "https://llm.test")),
                body=None,
            ),
            "status",
        ),
    ],
)
async def test_llm_classifier_maps_api_errors(error, expected_reason):
    with pytest.raises(ClassificationUnavailable) as exc_info:
        await _llm(FakeCompletions(error=error)).group_reasons(REASONS)

    assert exc_info.value.reason == expected_reason


@pytest.mark.asyncio
async def test_http_classifier_returns_grouped_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"grouped": GROUPED})

    classifier = HttpReasonClassifier(
        "https://functions.test/group-reasons", api_key="anon", transport=httpx.MockTransport(handler)
    )

    assert await classifier.group_reasons(REASONS) == GROUPED
    assert seen["body"]["reasons"][0] == {"reason": "erro no boleto", "count": 3}
    assert seen["auth"] == "Bearer anon"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response", "expected_reason"),
    [
        (httpx.Response(500, json={"error": "x"}), "status"),
        (httpx.Response(200, text="<html>oops</html>"), "malformed"),
        (httpx.Response(200, json=[1, 2]), "malformed"),
    ],
)
async def test_http_classifier_failures(response, expected_reason):
    classifier = HttpReasonClassifier(
        "https://functions.test/group-reasons", transport=httpx.MockTransport(lambda _: response)
    )

    with pytest.raises(ClassificationUnavailable) as exc_info:
        await classifier.group_reasons(REASONS)

    assert exc_info.value.reason == expected_reason


@pytest.mark.asyncio
async def test_http_classifier_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    classifier = HttpReasonClassifier(
        "https://functions.test/group-reasons", transport=httpx.MockTransport(handler)
    )

    with pytest.raises(ClassificationUnavailable) as exc_info:
        await classifier.group_reasons(REASONS)

    assert exc_info.value.reason == "network"


@pytest.mark.asyncio
async def test_disabled_classifier_always_unavailable():
    with pytest.raises(ClassificationUnavailable) as exc_info:
        await DisabledReasonClassifier().group_reasons(REASONS)

    assert exc_info.value.reason == "disabled"


def test_build_classifier_without_api_key_is_disabled(monkeypatch):
    monkeypatch.setattr(service_module.settings, "REASON_CLASSIFIER_BACKEND", "llm")
    monkeypatch.setattr(service_module.settings, "LLM_API_KEY", None)

    assert build_reason_classifier().name == "disabled"


def test_build_http_classifier_from_supabase_url(monkeypatch):
    monkeypatch.setattr(service_module.settings, "REASON_CLASSIFIER_BACKEND", "http")
    monkeypatch.setattr(service_module.settings, "GROUP_REASONS_URL", None)
    monkeypatch.setattr(service_module.settings, "SUPABASE_URL", "https://abc.supabase.co/")

    classifier = build_reason_classifier()

    assert classifier.name == "http"
    assert classifier.url == "https://abc.supabase.co/functions/v1/group-reasons"


def test_build_unknown_backend_is_disabled(monkeypatch):
    monkeypatch.setattr(service_module.settings, "REASON_CLASSIFIER_BACKEND", "magic")

    assert build_reason_classifier().name == "disabled"
