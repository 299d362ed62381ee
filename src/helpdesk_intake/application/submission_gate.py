"""SubmissionGate: checagem final antes de criar o chamado.

Exige TODOS:
- estado READY_TO_SUBMIT ou CONFIRMING_SUBMISSION
- submission_approved (só marcado por CONFIRM_SUBMIT observado)
- confirmação dentro da janela de turnos
- campos obrigatórios (por categoria) presentes e acima do limiar

Falha nunca é genérica: a mensagem nomeia o campo faltante ou fraco.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from helpdesk_intake.application.session.models import SessionState
from helpdesk_intake.domain.conversation import SUMMARY_PENDING_STATES, ConversationState
from helpdesk_intake.domain.intake import (
    DEFAULT_FIELD_THRESHOLD,
    DEFAULT_PASSWORD_ERROR_THRESHOLD,
    IntakeField,
    check_field_confidence,
)
from helpdesk_intake.observability.logging import get_logger, short_id

logger: logging.Logger = get_logger(__name__)

NOT_CONFIRMED_MESSAGE = (
    "Before I submit, I need your confirmation. Should I submit this ticket? (yes/no)"
)


def missing_field_message(name: IntakeField) -> str:
    return (
        "I need a bit more information before I can submit. "
        f"I'm still missing: {name.label}. Could you provide that?"
    )


def low_confidence_message(name: IntakeField) -> str:
    return f"The {name.label} field has low confidence. Could you clarify?"


@dataclass(slots=True, frozen=True)
class GateResult:
    """Veredicto do gate; `message` é a resposta ao usuário em caso de bloqueio."""

    allowed: bool
    reason: str
    missing_field: IntakeField | None = None
    low_confidence_field: IntakeField | None = None
    message: str | None = None

    @property
    def failing_field(self) -> IntakeField | None:
        return self.missing_field or self.low_confidence_field


class SubmissionGate:
    """Autoridade final de submissão."""

    def __init__(
        self,
        *,
        threshold: float = DEFAULT_FIELD_THRESHOLD,
        password_error_threshold: float = DEFAULT_PASSWORD_ERROR_THRESHOLD,
        confirmation_window_turns: int = 1,
    ) -> None:
        self._threshold = threshold
        self._password_error_threshold = password_error_threshold
        self._window = confirmation_window_turns

    def evaluate(self, session: SessionState, current_turn: int) -> GateResult:
        """Avalia sem alterar a sessão."""
        if session.conversation_state not in SUMMARY_PENDING_STATES:
            return GateResult(False, "invalid_state", message=NOT_CONFIRMED_MESSAGE)

        if not session.submission_approved or session.approval_turn is None:
            return GateResult(False, "not_approved", message=NOT_CONFIRMED_MESSAGE)

        if current_turn - session.approval_turn > self._window:
            return GateResult(False, "approval_expired", message=NOT_CONFIRMED_MESSAGE)

        check = check_field_confidence(
            session.intake,
            session.confidence_by_field,
            threshold=self._threshold,
            password_error_threshold=self._password_error_threshold,
        )
        if check.missing_field is not None:
            return GateResult(
                False,
                "missing_field",
                missing_field=check.missing_field,
                message=missing_field_message(check.missing_field),
            )
        if check.low_confidence_field is not None:
            return GateResult(
                False,
                "low_confidence",
                low_confidence_field=check.low_confidence_field,
                message=low_confidence_message(check.low_confidence_field),
            )
        return GateResult(True, "passed")

    def enforce(self, session: SessionState, current_turn: int) -> GateResult:
        """Avalia e, se bloqueado, devolve a sessão para PROBING."""
        result = self.evaluate(session, current_turn)
        if result.allowed:
            logger.info(
                "submission_gate_passed", extra={"session_id": short_id(session.session_id)}
            )
            return result

        session.conversation_state = ConversationState.PROBING
        session.submission_approved = False
        session.approval_turn = None
        if result.failing_field is not None:
            session.last_expected_field = result.failing_field

        logger.warning(
            "submission_blocked",
            extra={
                "session_id": short_id(session.session_id),
                "reason": result.reason,
                "field": result.failing_field.value if result.failing_field else None,
            },
        )
        return result
