"""Protocolo da capacidade semântica (classificador, extrator, reasoner, resumo).

A capacidade só precisa devolver JSON; o núcleo valida com os contratos em
`helpdesk_intake.ai.contracts` e cai no fallback determinístico em caso de
erro ou resposta malformada.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from helpdesk_intake.ai.contracts import (
        FieldExtractionRequest,
        IntentClassificationRequest,
        ReasonerRequest,
        TicketSummaryRequest,
    )


class SemanticCapability(Protocol):
    """Capacidade plugável; todas as operações são assíncronas e falíveis."""

    async def classify_intent(self, request: IntentClassificationRequest) -> Mapping[str, Any]: ...

    async def extract_fields(self, request: FieldExtractionRequest) -> Mapping[str, Any]: ...

    async def decide_action(self, request: ReasonerRequest) -> Mapping[str, Any]: ...

    async def summarize_ticket(self, request: TicketSummaryRequest) -> Mapping[str, Any]: ...
