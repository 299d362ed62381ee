"""Contrato Pydantic para geração do resumo do chamado."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TicketSummaryRequest(BaseModel):
    """Input do gerador de resumo."""

    intake: dict[str, str] = Field(default_factory=dict)
    transcript: list[str] = Field(default_factory=list)


class TicketSummary(BaseModel):
    """Resumo estruturado anexado ao chamado."""

    summary: str = Field(..., min_length=1, max_length=200)
    details: str = ""
    key_details: list[str] = Field(default_factory=list)
