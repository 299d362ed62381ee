"""Contrato Pydantic para extração de campos via capacidade semântica."""

from __future__ import annotations

from pydantic import BaseModel, Field

from helpdesk_intake.domain.intake import IntakeField


class FieldExtractionRequest(BaseModel):
    """Input do extrator semântico."""

    message: str = Field(..., min_length=1, max_length=4096)
    requested_fields: list[IntakeField] = Field(default_factory=list)
    known_fields: dict[str, str] = Field(default_factory=dict)
    last_bot_question: str | None = None
    conversation_summary: str = ""


class RawFieldCandidate(BaseModel):
    """Candidato bruto; valores de enum são validados pelo extrator."""

    value: str | None = None
    confidence: float = Field(0.0, ge=0.0, le=1.0)


class FieldExtractionResult(BaseModel):
    """Output do extrator semântico: campo → candidato."""

    fields: dict[str, RawFieldCandidate] = Field(default_factory=dict)
