"""StateMachine: autoridade única sobre o estado da conversa.

Regras rígidas, avaliadas em ordem antes da tabela de transições:
1. SUBMITTED é terminal
2. BLOCKED_SECURITY só sai por reconhecimento (tratado no orquestrador)
3. WAITING só sai por frase de retomada (tratado no orquestrador)
4. CONFIRM_SUBMIT com campos válidos → CONFIRMING_SUBMISSION (de qualquer estado)
5. DENY_SUBMIT com resumo pendente → PROBING
6. Campos válidos forçam READY_TO_SUBMIT (exceto pergunta, off-topic, espera
   ou recusa ainda vigente)

A sugestão do reasoner é apenas auditada; nunca é adotada quando diverge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from helpdesk_intake.domain.conversation import (
    SUMMARY_PENDING_STATES,
    ConversationState,
    next_state_for,
)
from helpdesk_intake.domain.enums import Intent
from helpdesk_intake.domain.intake import FieldCheck
from helpdesk_intake.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

S = ConversationState

_NON_FORCING_INTENTS = frozenset({Intent.OFF_TOPIC, Intent.ASK_QUESTION, Intent.INTERRUPT_WAIT})


@dataclass(slots=True, frozen=True)
class TransitionContext:
    """Entradas de uma decisão de transição."""

    current_state: ConversationState
    intent: Intent
    field_check: FieldCheck
    submission_declined: bool = False
    is_correction: bool = False
    fields_changed: bool = False
    suggested_state: ConversationState | None = None


@dataclass(slots=True, frozen=True)
class TransitionDecision:
    """Próximo estado e a regra que o determinou."""

    next_state: ConversationState
    rule: str
    reason: str
    overrode_suggestion: bool = False


class StateMachine:
    """Decisão pura de transição (sem side effects além de log)."""

    def decide(self, ctx: TransitionContext) -> TransitionDecision:
        next_state, rule, reason = self._evaluate(ctx)

        overrode = ctx.suggested_state is not None and ctx.suggested_state != next_state
        if overrode:
            logger.info(
                "reasoner_suggestion_overridden",
                extra={
                    "suggested_state": ctx.suggested_state,
                    "next_state": next_state,
                    "rule": rule,
                },
            )

        if next_state != ctx.current_state:
            logger.info(
                "state_transition",
                extra={
                    "from_state": ctx.current_state,
                    "to_state": next_state,
                    "intent": ctx.intent,
                    "rule": rule,
                },
            )
        return TransitionDecision(next_state, rule, reason, overrode)

    @staticmethod
    def _evaluate(ctx: TransitionContext) -> tuple[ConversationState, str, str]:
        state = ctx.current_state
        intent = ctx.intent
        valid = ctx.field_check.valid

        if state == S.SUBMITTED:
            return state, "terminal", "Submitted sessions never transition"
        if state == S.BLOCKED_SECURITY:
            return state, "security_lock", "Acknowledgement required"
        if state == S.WAITING:
            return state, "wait_lock", "Explicit resume required"

        if intent == Intent.CONFIRM_SUBMIT:
            if valid:
                return S.CONFIRMING_SUBMISSION, "confirm_with_valid_fields", "Confirmation observed"
            return S.PROBING, "confirm_with_invalid_fields", "Required fields still pending"

        if intent == Intent.DENY_SUBMIT and state in SUMMARY_PENDING_STATES:
            return S.PROBING, "summary_declined", "User declined the summary"

        if valid and not ctx.submission_declined and intent not in _NON_FORCING_INTENTS:
            if (
                state == S.READY_TO_SUBMIT
                and intent == Intent.ADD_MORE_INFO
                and not ctx.fields_changed
            ):
                return S.PROBING, "add_more_requested", "User wants to add information"
            return S.READY_TO_SUBMIT, "fields_complete", "All required fields collected"

        table_state = next_state_for(state, intent)
        if table_state in SUMMARY_PENDING_STATES and not valid:
            return S.PROBING, "guard_incomplete_fields", "Summary requires valid fields"
        if intent == Intent.NO_MORE_INFO and valid:
            return S.READY_TO_SUBMIT, "no_more_info", "User finished adding information"
        return table_state, "transition_table", f"{state} + {intent}"
