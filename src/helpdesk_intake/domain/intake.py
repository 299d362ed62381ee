"""Campos de intake, candidatos extraídos e checagem de completude.

Regras:
- `error_text` distingue "não informado" (None) de "sem erro" (NO_ERROR_PROVIDED)
- Um campo só conta como coletado com valor E confiança >= limiar
- Categoria `password` exige apenas problem, urgency e error_text
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from helpdesk_intake.domain.enums import Category, Urgency

NO_ERROR_PROVIDED = "no error provided"

DEFAULT_FIELD_THRESHOLD = 0.7
DEFAULT_PASSWORD_ERROR_THRESHOLD = 0.5


class IntakeField(StrEnum):
    """Nomes canônicos dos campos de intake."""

    PROBLEM = "problem"
    CATEGORY = "category"
    URGENCY = "urgency"
    AFFECTED_SYSTEM = "affected_system"
    ERROR_TEXT = "error_text"

    @property
    def label(self) -> str:
        """Rótulo legível para mensagens ao usuário."""
        return _FIELD_LABELS[self]


_FIELD_LABELS: dict[IntakeField, str] = {
    IntakeField.PROBLEM: "problem description",
    IntakeField.CATEGORY: "category",
    IntakeField.URGENCY: "urgency",
    IntakeField.AFFECTED_SYSTEM: "affected system",
    IntakeField.ERROR_TEXT: "error message",
}

# Ordem de prioridade de coleta
FIELD_PRIORITY: tuple[IntakeField, ...] = (
    IntakeField.PROBLEM,
    IntakeField.CATEGORY,
    IntakeField.URGENCY,
    IntakeField.AFFECTED_SYSTEM,
    IntakeField.ERROR_TEXT,
)

PASSWORD_REQUIRED_FIELDS: tuple[IntakeField, ...] = (
    IntakeField.PROBLEM,
    IntakeField.URGENCY,
    IntakeField.ERROR_TEXT,
)


class IntakeFields(BaseModel):
    """Dados estruturados do chamado acumulados ao longo da conversa."""

    problem: str | None = None
    category: Category | None = None
    urgency: Urgency | None = None
    affected_system: str | None = None
    error_text: str | None = None

    def get(self, field: IntakeField) -> Any:
        return getattr(self, field.value)

    def is_set(self, field: IntakeField) -> bool:
        value = self.get(field)
        return value is not None and value != ""

    def collected(self) -> dict[IntakeField, Any]:
        """Campos com valor (independente da confiança)."""
        return {f: self.get(f) for f in FIELD_PRIORITY if self.is_set(f)}


class FieldCandidate(BaseModel):
    """Valor proposto por um extrator para um único campo."""

    value: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)


@dataclass(slots=True, frozen=True)
class FieldCheck:
    """Resultado da checagem de completude por categoria."""

    valid: bool
    missing_field: IntakeField | None = None
    low_confidence_field: IntakeField | None = None
    confidence: float | None = None

    @property
    def failing_field(self) -> IntakeField | None:
        return self.missing_field or self.low_confidence_field


def required_fields(category: Category | None) -> tuple[IntakeField, ...]:
    """Campos obrigatórios conforme a categoria atual."""
    if category == Category.PASSWORD:
        return PASSWORD_REQUIRED_FIELDS
    return FIELD_PRIORITY


def field_threshold(
    field: IntakeField,
    category: Category | None,
    *,
    threshold: float = DEFAULT_FIELD_THRESHOLD,
    password_error_threshold: float = DEFAULT_PASSWORD_ERROR_THRESHOLD,
) -> float:
    """Limiar de confiança aplicável ao campo."""
    if category == Category.PASSWORD and field == IntakeField.ERROR_TEXT:
        return password_error_threshold
    return threshold


def check_field_confidence(
    intake: IntakeFields,
    confidence_by_field: dict[IntakeField, float],
    *,
    threshold: float = DEFAULT_FIELD_THRESHOLD,
    password_error_threshold: float = DEFAULT_PASSWORD_ERROR_THRESHOLD,
) -> FieldCheck:
    """Verifica se todos os campos obrigatórios estão presentes e confiáveis.

    Retorna o primeiro campo faltante ou com baixa confiança, na ordem de
    prioridade. Nunca lança exceção.
    """
    category = intake.category
    for field in required_fields(category):
        if not intake.is_set(field):
            return FieldCheck(valid=False, missing_field=field)

        confidence = confidence_by_field.get(field, 0.0)
        limit = field_threshold(
            field,
            category,
            threshold=threshold,
            password_error_threshold=password_error_threshold,
        )
        if confidence < limit:
            return FieldCheck(valid=False, low_confidence_field=field, confidence=confidence)

    return FieldCheck(valid=True)
