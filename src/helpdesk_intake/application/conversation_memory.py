"""Resumo da conversa usado pelo reasoner e pelos prompts.

Campos confirmados, faltantes e de baixa confiança são calculados com as
mesmas regras do gate de submissão (limiares por categoria).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from helpdesk_intake.application.session.models import SessionState
from helpdesk_intake.domain.intake import (
    DEFAULT_FIELD_THRESHOLD,
    DEFAULT_PASSWORD_ERROR_THRESHOLD,
    IntakeField,
    field_threshold,
    required_fields,
)

RECENT_TURNS = 6


@dataclass(slots=True)
class ConversationSummary:
    """Fatos confirmados, lacunas e contexto recente de uma sessão."""

    confirmed: dict[IntakeField, str] = field(default_factory=dict)
    missing: list[IntakeField] = field(default_factory=list)
    low_confidence: list[IntakeField] = field(default_factory=list)
    recent_turns: list[str] = field(default_factory=list)
    total_turns: int = 0
    last_bot_question: str | None = None
    last_expected_field: IntakeField | None = None
    submission_declined: bool = False

    @property
    def pending(self) -> list[IntakeField]:
        """Campos faltantes seguidos dos de baixa confiança."""
        return [*self.missing, *self.low_confidence]

    def to_prompt_text(self) -> str:
        lines = []
        if self.confirmed:
            facts = "; ".join(f"{name.value}={value}" for name, value in self.confirmed.items())
            lines.append(f"Confirmed: {facts}")
        if self.missing:
            lines.append(f"Missing: {', '.join(f.value for f in self.missing)}")
        if self.low_confidence:
            lines.append(f"Needs confirmation: {', '.join(f.value for f in self.low_confidence)}")
        if self.last_expected_field:
            lines.append(f"Last asked about: {self.last_expected_field.value}")
        if self.submission_declined:
            lines.append("User declined the last summary.")
        lines.append(f"Turns so far: {self.total_turns}")
        return "\n".join(lines)


def build_summary(
    session: SessionState,
    *,
    threshold: float = DEFAULT_FIELD_THRESHOLD,
    password_error_threshold: float = DEFAULT_PASSWORD_ERROR_THRESHOLD,
) -> ConversationSummary:
    """Monta o resumo a partir da sessão (sem side effects)."""
    intake = session.intake
    summary = ConversationSummary(
        recent_turns=session.recent_turns(RECENT_TURNS),
        total_turns=session.turn_count,
        last_bot_question=session.last_bot_question,
        last_expected_field=session.last_expected_field,
        submission_declined=session.submission_declined,
    )

    for name in required_fields(intake.category):
        if not intake.is_set(name):
            summary.missing.append(name)
            continue
        limit = field_threshold(
            name,
            intake.category,
            threshold=threshold,
            password_error_threshold=password_error_threshold,
        )
        if session.confidence_by_field.get(name, 0.0) < limit:
            summary.low_confidence.append(name)
        else:
            summary.confirmed[name] = str(intake.get(name))
    return summary
