"""Contratos Pydantic das chamadas à capacidade semântica."""

from helpdesk_intake.ai.contracts.field_extraction import (
    FieldExtractionRequest,
    FieldExtractionResult,
    RawFieldCandidate,
)
from helpdesk_intake.ai.contracts.intent_classification import (
    IntentClassificationRequest,
    IntentClassificationResult,
)
from helpdesk_intake.ai.contracts.reasoning import ReasonerRequest, ReasonerResult
from helpdesk_intake.ai.contracts.ticket_summary import TicketSummary, TicketSummaryRequest

__all__ = [
    "FieldExtractionRequest",
    "FieldExtractionResult",
    "RawFieldCandidate",
    "IntentClassificationRequest",
    "IntentClassificationResult",
    "ReasonerRequest",
    "ReasonerResult",
    "TicketSummary",
    "TicketSummaryRequest",
]
