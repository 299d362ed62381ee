"""Capacidade semântica baseada na API OpenAI (chat completions em modo JSON).

Implementa o protocolo `SemanticCapability`. Não faz retry nem fallback: isso
é responsabilidade de `call_capability` e dos componentes da aplicação.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from openai import APIError, APITimeoutError, AsyncOpenAI

from helpdesk_intake.ai import prompts
from helpdesk_intake.ai.contracts import (
    FieldExtractionRequest,
    IntentClassificationRequest,
    ReasonerRequest,
    TicketSummaryRequest,
)
from helpdesk_intake.domain.errors import (
    CapabilityUnavailableError,
    MalformedCapabilityResponseError,
)
from helpdesk_intake.observability.logging import get_logger

logger = get_logger(__name__)


class OpenAISemanticCapability:
    """Classificador, extrator, reasoner e resumo via OpenAI."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 10.0,
        client: Any | None = None,
    ) -> None:
        # max_retries=0: o retry único é aplicado por call_capability
        self._client = client or AsyncOpenAI(api_key=api_key, max_retries=0)
        self._model = model
        self._timeout = timeout_seconds

    async def classify_intent(self, request: IntentClassificationRequest) -> Mapping[str, Any]:
        system, user = prompts.build_intent_prompt(request)
        return await self._complete_json("intent_classification", system, user, max_tokens=120)

    async def extract_fields(self, request: FieldExtractionRequest) -> Mapping[str, Any]:
        system, user = prompts.build_extraction_prompt(request)
        return await self._complete_json("field_extraction", system, user, max_tokens=400)

    async def decide_action(self, request: ReasonerRequest) -> Mapping[str, Any]:
        system, user = prompts.build_reasoner_prompt(request)
        return await self._complete_json("reasoner", system, user, max_tokens=300)

    async def summarize_ticket(self, request: TicketSummaryRequest) -> Mapping[str, Any]:
        system, user = prompts.build_summary_prompt(request)
        return await self._complete_json("ticket_summary", system, user, max_tokens=400)

    async def _complete_json(
        self, operation: str, system: str, user: str, *, max_tokens: int
    ) -> Mapping[str, Any]:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=0.2,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
                timeout=self._timeout,
            )
        except (APIError, APITimeoutError) as e:
            logger.warning(
                f"{operation}_error",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            raise CapabilityUnavailableError(f"{operation}: {type(e).__name__}") from e

        content = response.choices[0].message.content or ""
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedCapabilityResponseError(f"{operation}: invalid JSON") from e

        if not isinstance(parsed, dict):
            raise MalformedCapabilityResponseError(f"{operation}: expected JSON object")
        return parsed
