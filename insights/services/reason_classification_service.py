# insights/services/reason_classification_service.py
"""
Reason classification backends.

Groups near-duplicate contact reasons into named categories through an
external model. Every backend honours the same contract: it receives the
ranked {reason, count} pairs and returns the decoded "grouped" payload, or
raises ClassificationUnavailable. Shape validation and the ungrouped fallback
live in the clustering pipeline, not here.
"""

import json
import re
from collections.abc import Sequence
from typing import Any, Protocol

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from insights.config import settings
from insights.features.contact_reasons.domain.models import ReasonCount
from insights.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MAX_CATEGORIES = 10

_CODE_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


class ClassificationUnavailable(Exception):
    """Raised when no grouping could be obtained from the backend."""

    def __init__(self, message: str, reason: str = "network", status_code: int | None = None):
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class ReasonGroup(BaseModel):
    """One category as returned by the classification backend."""

    category: str = Field(..., min_length=1, description="Specific category name")
    count: int = Field(..., ge=1, description="Sum of the absorbed reason counts")
    original_reasons: list[str] = Field(default_factory=list, description="Absorbed reasons")


class ReasonCountPayload(BaseModel):
    reason: str = Field(..., min_length=1)
    count: int = Field(..., ge=0)


class GroupReasonsRequest(BaseModel):
    reasons: list[ReasonCountPayload] = Field(default_factory=list)


class ReasonClassifier(Protocol):
    name: str

    async def group_reasons(self, reasons: Sequence[ReasonCount]) -> Any:
        """Return the decoded list of grouped categories."""
        ...


def build_request_payload(reasons: Sequence[ReasonCount]) -> dict[str, Any]:
    return {"reasons": [{"reason": item.reason, "count": item.count} for item in reasons]}


class DisabledReasonClassifier:
    """Backend used when classification is switched off or not configured."""

    name = "disabled"

    async def group_reasons(self, reasons: Sequence[ReasonCount]) -> Any:
        raise ClassificationUnavailable("Reason classification is disabled", reason="disabled")


class LlmReasonClassifier:
    """
    Groups reasons with an OpenAI-compatible chat completion endpoint.

    Defaults to Groq's llama-3.1-8b-instant. The client is created with
    retries disabled: a failed call falls back immediately.
    """

    name = "llm"

    def __init__(self, client: AsyncOpenAI | None = None):
        self.client = client or AsyncOpenAI(
            api_key=settings.LLM_API_KEY,
            base_url=settings.LLM_BASE_URL,
            timeout=settings.CLASSIFICATION_TIMEOUT_SECONDS,
            max_retries=0,
        )
        logger.info(
            "LLM reason classifier initialized",
            model=settings.LLM_MODEL,
            base_url=settings.LLM_BASE_URL,
        )

    def _get_system_message(self) -> str:
        return f"""Você é um analista de atendimento ao cliente que categoriza motivos de contato.

Regras:
- Agrupe apenas motivos que tratam do MESMO assunto (ex: "problema login" e "não consigo entrar")
- Não agrupe motivos apenas parecidos; prefira categorias específicas e descritivas
  (ex: "Erro ao Gerar Boleto", "Dúvida sobre Prazo de Entrega", "Alteração de Dados Cadastrais")
- Nunca use categorias genéricas como "Informações Gerais", "Solicitações Diversas" ou "Outros"
- Um motivo que não combina com nenhum outro mantém o próprio nome como categoria
- A contagem de cada categoria é a soma das contagens dos motivos absorvidos
- Cada motivo original aparece em exatamente uma categoria
- Retorne no máximo {MAX_CATEGORIES} categorias, em ordem decrescente de contagem
- Responda somente com JSON válido, sem markdown

Formato:
[{{"category": "Nome da Categoria", "count": 10, "original_reasons": ["motivo1", "motivo2"]}}]"""

    def _build_user_message(self, reasons: Sequence[ReasonCount]) -> str:
        lines = "\n".join(f'- "{item.reason}" ({item.count}x)' for item in reasons)
        return f"Motivos de contato:\n{lines}"

    async def group_reasons(self, reasons: Sequence[ReasonCount]) -> Any:
        try:
            response = await self.client.chat.completions.create(
                model=settings.LLM_MODEL,
                messages=[
                    {"role": "system", "content": self._get_system_message()},
                    {"role": "user", "content": self._build_user_message(reasons)},
                ],
                temperature=settings.LLM_TEMPERATURE,
                max_tokens=settings.LLM_MAX_TOKENS,
            )
        except openai.APITimeoutError as e:
            raise ClassificationUnavailable("LLM request timed out", reason="timeout") from e
        except openai.APIStatusError as e:
            raise ClassificationUnavailable(
                f"LLM returned status {e.status_code}", reason="status", status_code=e.status_code
            ) from e
        except openai.APIError as e:
            raise ClassificationUnavailable(f"LLM request failed: {e}", reason="network") from e

        if not response.choices or not response.choices[0].message.content:
            raise ClassificationUnavailable("Empty response from LLM", reason="malformed")

        content = response.choices[0].message.content
        logger.debug(
            "LLM reason grouping returned",
            response_length=len(content),
            usage_tokens=response.usage.total_tokens if response.usage else 0,
        )
        return parse_grouping_content(content)


class HttpReasonClassifier:
    """Delegates grouping to a remote group-reasons function over HTTP."""

    name = "http"

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.api_key = api_key
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    async def group_reasons(self, reasons: Sequence[ReasonCount]) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=settings.CLASSIFICATION_TIMEOUT_SECONDS, transport=self._transport
            ) as client:
                response = await client.post(
                    self.url, json=build_request_payload(reasons), headers=self._headers()
                )
        except httpx.TimeoutException as e:
            raise ClassificationUnavailable("group-reasons timed out", reason="timeout") from e
        except httpx.HTTPError as e:
            raise ClassificationUnavailable(f"group-reasons request failed: {e}") from e

        if not response.is_success:
            raise ClassificationUnavailable(
                f"group-reasons returned status {response.status_code}",
                reason="status",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ClassificationUnavailable("group-reasons body is not JSON", reason="malformed") from e

        if not isinstance(body, dict) or "grouped" not in body:
            raise ClassificationUnavailable("group-reasons body has no 'grouped'", reason="malformed")
        return body["grouped"]


def parse_grouping_content(content: str) -> Any:
    """
    Decode a model reply into the grouped payload.

    Accepts a bare JSON list or an object with a "grouped" key, optionally
    wrapped in markdown code fences.
    """
    cleaned = _CODE_FENCE.sub("", content).strip()
    try:
        decoded = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse LLM grouping as JSON", raw_result=content[:200])
        raise ClassificationUnavailable("LLM returned invalid JSON", reason="malformed") from e

    if isinstance(decoded, dict) and "grouped" in decoded:
        return decoded["grouped"]
    return decoded


def build_reason_classifier() -> ReasonClassifier:
    """Pick the classification backend configured in settings."""
    backend = settings.REASON_CLASSIFIER_BACKEND.lower()

    if backend == "llm":
        if not settings.LLM_API_KEY:
            logger.warning("LLM_API_KEY not configured, reason classification disabled")
            return DisabledReasonClassifier()
        return LlmReasonClassifier()

    if backend == "http":
        url = settings.group_reasons_url()
        if not url:
            logger.warning("group-reasons URL not configured, reason classification disabled")
            return DisabledReasonClassifier()
        return HttpReasonClassifier(url, api_key=settings.GROUP_REASONS_API_KEY)

    if backend != "disabled":
        logger.warning("Unknown reason classifier backend", backend=backend)
    return DisabledReasonClassifier()


# Singleton instance for application use
reason_classifier = build_reason_classifier()
