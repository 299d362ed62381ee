"""Contrato Pydantic para o reasoner (decisão consultiva de ação)."""

from __future__ import annotations

from pydantic import BaseModel, Field

from helpdesk_intake.domain.conversation import ConversationState
from helpdesk_intake.domain.enums import Action, Intent


class ReasonerRequest(BaseModel):
    """Input do reasoner semântico."""

    intent: Intent
    intent_confidence: float = Field(..., ge=0.0, le=1.0)
    conversation_state: ConversationState
    conversation_summary: str = ""
    missing_fields: list[str] = Field(default_factory=list)
    submission_declined: bool = False


class ReasonerResult(BaseModel):
    """Output do reasoner; nunca dispara submissão por conta própria."""

    action: Action
    should_acknowledge: bool = False
    acknowledgment: str | None = Field(None, max_length=500)
    fields_to_extract: list[str] = Field(default_factory=list)
    should_ask_question: bool = False
    question_to_ask: str | None = Field(None, max_length=500)
    suggested_next_state: ConversationState | None = None
