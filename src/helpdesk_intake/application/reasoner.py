"""ConversationReasoner: propõe a próxima ação da conversa (consultivo).

A decisão nunca dispara submissão: a StateMachine e o SubmissionGate são a
autoridade. Sem capacidade semântica, o fallback decide por regra a partir
da intenção e dos campos pendentes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from helpdesk_intake.ai.capability_caller import CapabilityPolicy, call_capability
from helpdesk_intake.ai.contracts import ReasonerRequest, ReasonerResult
from helpdesk_intake.application.conversation_memory import ConversationSummary
from helpdesk_intake.application.intent_classifier import IntentResult
from helpdesk_intake.application.probing import next_field, question_for
from helpdesk_intake.domain.conversation import STATE_BEHAVIOR, ConversationState
from helpdesk_intake.domain.enums import Action, Intent
from helpdesk_intake.domain.errors import IntakeError
from helpdesk_intake.domain.intake import FIELD_PRIORITY, IntakeField, IntakeFields
from helpdesk_intake.domain.protocols.capabilities import SemanticCapability
from helpdesk_intake.observability.logging import get_logger, log_fallback
from helpdesk_intake.observability.timing import timed

logger: logging.Logger = get_logger(__name__)

ACKNOWLEDGE_MIN_CHARS = 20

_NO_QUESTION_ACTIONS = frozenset({
    Action.WAIT,
    Action.REDIRECT_SECURITY,
    Action.SUBMIT,
    Action.SHOW_SUMMARY,
})


@dataclass(slots=True)
class ReasonerDecision:
    """Ação proposta para o turno."""

    action: Action
    should_acknowledge: bool = False
    acknowledgment: str | None = None
    fields_to_extract: list[IntakeField] = field(default_factory=list)
    should_ask_question: bool = False
    question_to_ask: str | None = None
    suggested_next_state: ConversationState | None = None
    source: str = "fallback"


def fields_to_extract(
    intent: IntentResult, summary: ConversationSummary, *, resumed: bool = False
) -> list[IntakeField]:
    """Campos faltantes + baixa confiança; todos em correção, add-more ou retomada.

    Sem pendências, PROVIDE_INFO também reabre todos os campos (o merge decide).
    """
    if intent.is_correction or intent.intent == Intent.ADD_MORE_INFO or resumed:
        return list(FIELD_PRIORITY)
    if not summary.pending and intent.intent == Intent.PROVIDE_INFO:
        return list(FIELD_PRIORITY)
    return summary.pending


def fallback_decision(
    intent: IntentResult,
    summary: ConversationSummary,
    state: ConversationState,
    *,
    message: str = "",
    intake: IntakeFields | None = None,
    resumed: bool = False,
) -> ReasonerDecision:
    """Decisão determinística por intenção e quantidade de campos pendentes."""
    pending = summary.pending
    complete = not pending
    acknowledge = len(message.strip()) > ACKNOWLEDGE_MIN_CHARS
    acknowledgment: str | None = "Thanks, I've noted that." if acknowledge else None
    suggested: ConversationState | None = ConversationState.PROBING

    match intent.intent:
        case Intent.OFF_TOPIC:
            action, acknowledge, acknowledgment = Action.REDIRECT_OFF_TOPIC, False, None
            suggested = state
        case Intent.INTERRUPT_WAIT:
            action, acknowledge, acknowledgment = Action.WAIT, False, None
            suggested = ConversationState.WAITING
        case Intent.SECURITY_RISK:
            action, acknowledge, acknowledgment = Action.REDIRECT_SECURITY, False, None
            suggested = ConversationState.CLARIFYING
        case Intent.NO_MORE_INFO:
            action = Action.SHOW_SUMMARY if complete else Action.ASK_QUESTION
            suggested = ConversationState.READY_TO_SUBMIT if complete else ConversationState.PROBING
        case Intent.CONFIRM_SUBMIT:
            action = Action.SUBMIT if complete else Action.ASK_QUESTION
            suggested = (
                ConversationState.CONFIRMING_SUBMISSION if complete else ConversationState.PROBING
            )
        case Intent.DENY_SUBMIT:
            action, acknowledge = Action.ACKNOWLEDGE_ONLY, True
            acknowledgment = "No problem, I won't submit it yet."
        case Intent.ASK_QUESTION:
            action, suggested = Action.ASK_CLARIFICATION, ConversationState.CLARIFYING
        case Intent.FRUSTRATION:
            action, acknowledge = Action.ACKNOWLEDGE_AND_EXTRACT, True
            acknowledgment = "I understand this is frustrating, and I appreciate your patience."
        case Intent.ADD_MORE_INFO:
            action, acknowledge = Action.ACKNOWLEDGE_AND_EXTRACT, True
            acknowledgment = "Sure, go ahead and add whatever you need."
        case Intent.IDLE:
            action, acknowledge, acknowledgment = Action.ASK_QUESTION, False, None
            suggested = state
        case Intent.PROVIDE_INFO:
            action = Action.EXTRACT_MULTIPLE

    target = next_field(intake or IntakeFields(), pending) if pending else None
    ask = target is not None and action not in _NO_QUESTION_ACTIONS
    question = None
    if ask and target is not None:
        question = question_for(target, low_confidence=target in summary.low_confidence)

    return ReasonerDecision(
        action=action,
        should_acknowledge=acknowledge,
        acknowledgment=acknowledgment,
        fields_to_extract=fields_to_extract(intent, summary, resumed=resumed),
        should_ask_question=ask,
        question_to_ask=question,
        suggested_next_state=suggested,
        source="fallback",
    )


class ConversationReasoner:
    """Reasoner semântico com fallback determinístico."""

    def __init__(
        self,
        capability: SemanticCapability | None = None,
        *,
        policy: CapabilityPolicy | None = None,
    ) -> None:
        self._capability = capability
        self._policy = policy

    async def decide(
        self,
        intent: IntentResult,
        summary: ConversationSummary,
        state: ConversationState,
        *,
        message: str = "",
        intake: IntakeFields | None = None,
        resumed: bool = False,
    ) -> ReasonerDecision:
        with timed("reasoner"):
            fallback = fallback_decision(
                intent, summary, state, message=message, intake=intake, resumed=resumed
            )
            capability = self._capability
            if capability is None:
                log_fallback(logger, "reasoner", reason="capability_not_configured")
                return fallback

            request = ReasonerRequest(
                intent=intent.intent,
                intent_confidence=intent.confidence,
                conversation_state=state,
                conversation_summary=summary.to_prompt_text(),
                missing_fields=[f.value for f in summary.pending],
                submission_declined=summary.submission_declined,
            )
            try:
                result = await call_capability(
                    "reasoner",
                    lambda: capability.decide_action(request),
                    ReasonerResult,
                    self._policy,
                )
            except IntakeError as e:
                log_fallback(logger, "reasoner", reason=type(e).__name__)
                return fallback

            if result.action not in STATE_BEHAVIOR[state].allowed_actions:
                logger.info(
                    "reasoner_action_rejected",
                    extra={"action": result.action.value, "state": state.value},
                )
                log_fallback(logger, "reasoner", reason="action_not_allowed")
                return fallback

            return self._from_result(result, fallback)

    @staticmethod
    def _from_result(result: ReasonerResult, fallback: ReasonerDecision) -> ReasonerDecision:
        valid = {f.value for f in IntakeField}
        requested = [IntakeField(name) for name in result.fields_to_extract if name in valid]
        dropped = [name for name in result.fields_to_extract if name not in valid]
        if dropped:
            logger.debug("reasoner_unknown_fields_dropped", extra={"count": len(dropped)})

        # Lista vazia de campos cai no cálculo determinístico
        return ReasonerDecision(
            action=result.action,
            should_acknowledge=result.should_acknowledge and bool(result.acknowledgment),
            acknowledgment=result.acknowledgment,
            fields_to_extract=requested or fallback.fields_to_extract,
            should_ask_question=result.should_ask_question and bool(result.question_to_ask),
            question_to_ask=result.question_to_ask,
            suggested_next_state=result.suggested_next_state,
            source="semantic",
        )
