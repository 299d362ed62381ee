"""Contrato Pydantic para classificação de intenção via capacidade semântica."""

from __future__ import annotations

from pydantic import BaseModel, Field

from helpdesk_intake.domain.conversation import ConversationState
from helpdesk_intake.domain.enums import Intent
from helpdesk_intake.domain.intake import IntakeField


class IntentClassificationRequest(BaseModel):
    """Input do classificador semântico."""

    message: str = Field(..., min_length=1, max_length=4096)
    """Mensagem do usuário (já sanitizada para o prompt)."""

    conversation_state: ConversationState
    recent_turns: list[str] = Field(default_factory=list)
    """Últimos turnos no formato "User: ..." / "Assistant: ..."."""

    last_bot_question: str | None = None
    last_expected_field: IntakeField | None = None


class IntentClassificationResult(BaseModel):
    """Output do classificador semântico."""

    intent: Intent
    confidence: float = Field(..., ge=0.0, le=1.0)
    rationale: str | None = None
