"""Perguntas de sondagem e resumo de confirmação.

Ordem de coleta: problem → category → urgency → affected_system → error_text
(affected_system não é perguntado para a categoria password).
"""

from __future__ import annotations

from helpdesk_intake.domain.intake import (
    NO_ERROR_PROVIDED,
    IntakeField,
    IntakeFields,
    required_fields,
)

FALLBACK_QUESTIONS: dict[IntakeField, str] = {
    IntakeField.PROBLEM: "Could you describe the issue you're experiencing?",
    IntakeField.CATEGORY: (
        "What type of issue is this? (hardware, software, network, email, password, or other)"
    ),
    IntakeField.URGENCY: (
        "How urgent is this? Is it blocking your work, or do you have a workaround?"
    ),
    IntakeField.AFFECTED_SYSTEM: "Which system or application is affected?",
    IntakeField.ERROR_TEXT: (
        "Are you seeing any error messages? If not, that's fine - just let me know."
    ),
}

SUBMIT_PROMPT = "Should I submit this ticket? (yes/no)"


def next_field(intake: IntakeFields, pending: list[IntakeField]) -> IntakeField | None:
    """Próximo campo a perguntar, respeitando a prioridade e a categoria."""
    allowed = required_fields(intake.category)
    for name in allowed:
        if name in pending:
            return name
    return None


def question_for(name: IntakeField, *, low_confidence: bool = False) -> str:
    """Pergunta determinística para o campo (re-pergunta se baixa confiança)."""
    if low_confidence:
        return f"Just to confirm the {name.label}: could you clarify it for me?"
    return FALLBACK_QUESTIONS[name]


def render_summary(intake: IntakeFields) -> str:
    """Resumo exibido antes da confirmação (linha de erro omitida para o sentinela)."""
    lines = [
        "Here's what I understood:",
        "",
        f"Issue: {intake.problem or '-'}",
        f"Category: {intake.category or '-'}",
        f"Urgency: {intake.urgency or '-'}",
    ]
    if intake.affected_system:
        lines.append(f"Affected System: {intake.affected_system}")
    if intake.error_text and intake.error_text != NO_ERROR_PROVIDED:
        lines.append(f"Error: {intake.error_text}")
    lines.extend(["", SUBMIT_PROMPT])
    return "\n".join(lines)
