"""ConversationOrchestrator: pipeline por turno do motor de intake.

Fluxo de um turno (sob o lock da sessão, sobre uma cópia profunda):
1. Validação de entrada (antes de qualquer mutação)
2. Sessão SUBMITTED → resposta fixa, nada muda
3. SensitiveDataScanner (BLOCK → BLOCKED_SECURITY, mensagem não armazenada)
4. Reconhecimento enquanto BLOCKED_SECURITY
5. Trava de WAITING (só sai com frase de retomada)
6. Intenção → resumo → reasoner → extração → merge
7. StateMachine → SubmissionGate/TicketService quando CONFIRMING_SUBMISSION
8. Resposta, histórico e persistência (commit único no fim do turno)

Qualquer exceção inesperada descarta o turno inteiro: nada é salvo.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace

from pydantic import BaseModel

from helpdesk_intake.application.conversation_memory import ConversationSummary, build_summary
from helpdesk_intake.application.field_extractor import ExtractionRequest, FieldExtractor
from helpdesk_intake.application.field_merge import FieldMergeEngine, MergeContext
from helpdesk_intake.application.intent_classifier import (
    IntentClassifier,
    IntentContext,
    IntentResult,
    is_bare_confirmation,
)
from helpdesk_intake.application.probing import (
    SUBMIT_PROMPT,
    next_field,
    question_for,
    render_summary,
)
from helpdesk_intake.application.reasoner import ConversationReasoner, ReasonerDecision
from helpdesk_intake.application.security_scanner import (
    SecurityContext,
    SensitiveDataScanner,
    is_negative_acknowledgement,
    is_security_acknowledgement,
)
from helpdesk_intake.application.session.manager import SessionManager
from helpdesk_intake.application.session.models import SessionState, UserContext
from helpdesk_intake.application.state_machine import StateMachine, TransitionContext
from helpdesk_intake.application.submission_gate import SubmissionGate
from helpdesk_intake.application.ticket_service import TicketService
from helpdesk_intake.config.settings import Settings, get_settings
from helpdesk_intake.domain.conversation import (
    STATE_BEHAVIOR,
    SUMMARY_PENDING_STATES,
    ConversationState,
)
from helpdesk_intake.domain.enums import Intent, MessageType, Sender
from helpdesk_intake.domain.errors import ErrorKind, InvalidInputError, TicketSubmissionError
from helpdesk_intake.domain.intake import FIELD_PRIORITY, IntakeField, check_field_confidence
from helpdesk_intake.observability.correlation import correlation_scope
from helpdesk_intake.observability.logging import get_logger, short_id
from helpdesk_intake.observability.timing import timed

logger: logging.Logger = get_logger(__name__)

S = ConversationState

WELCOME_MESSAGE = (
    "Hi! I'm here to help with your IT support request. What issue are you experiencing?"
)
GREETING_REPLY = "Hello! I'm here to help with IT support. What issue are you experiencing?"
OFF_TOPIC_REDIRECT = (
    "I'm here to help with IT support issues. What technical problem are you experiencing?"
)
DECLINED_PROMPT = (
    "Is there anything else you'd like to add or change? "
    "Say 'that's all' when you're ready to review the ticket."
)
WAIT_STARTED = "Sure, take your time. Let me know when you're ready to continue."
STILL_CHECKING_REPLY = (
    "No problem, take your time. Let me know when you're ready to continue."
)
STILL_WAITING_REPLY = (
    "I'm still waiting. When you're ready to continue, just let me know by saying "
    "'I'm back', 'continue', or 'go ahead'."
)
SECURITY_ACK_THANKS = (
    "Thank you for understanding. Now, let's continue with your support request."
)
SECURITY_NEGATIVE_REPLY = (
    "I understand this might be confusing. For security reasons, we cannot accept "
    "passwords, PINs, codes, or tokens through this chat. This is to protect your "
    "account. You can simply type 'I understand' to continue, or if you have "
    "questions, I can help explain further."
)
SECURITY_STILL_BLOCKED = (
    "For security reasons, I cannot proceed until you acknowledge that you understand "
    "not to share sensitive information. Please type 'I understand' to continue."
)
SECURITY_RISK_REPLY = (
    "For security reasons, please never share passwords, PINs, or verification codes "
    "here. I don't need them to create your ticket."
)
SUBMISSION_FAILED_REPLY = (
    "I wasn't able to submit your ticket just now. Your information is saved - "
    "reply \"yes\" to try again."
)
TURN_FAILED_REPLY = "Sorry, something went wrong while processing your message. Please try again."
ALL_SET_REPLY = "I have everything I need for now."

_RESUME = re.compile(
    r"^(i'?m\s+back|i\s+am\s+back|back|i'?m\s+ready|ready(\s+now)?|continue|go\s+ahead"
    r"|let'?s\s+continue|let'?s\s+go|resume|proceed|ok|okay|yes)\b"
)
_STILL_CHECKING = re.compile(
    r"\b(still\s+(checking|looking|working\s+on\s+it|searching)|not\s+yet"
    r"|give\s+me\s+(a\s+)?(bit\s+)?(more\s+)?(time|minute|sec|second)"
    r"|one\s+more\s+(minute|moment|sec|second))\b"
)

# Intenções que nunca disparam extração
_NO_EXTRACTION_INTENTS = frozenset({
    Intent.DENY_SUBMIT,
    Intent.IDLE,
    Intent.OFF_TOPIC,
    Intent.INTERRUPT_WAIT,
    Intent.NO_MORE_INFO,
    Intent.SECURITY_RISK,
    Intent.ASK_QUESTION,
})


class TurnResponse(BaseModel):
    """Resposta entregue ao transporte."""

    session_id: str
    message: str
    type: MessageType
    conversation_state: ConversationState
    reference_id: str | None = None
    warning: str | None = None
    error_kind: ErrorKind | None = None
    requires_acknowledgment: bool = False


class _Reply:
    """Resposta em construção durante o turno."""

    __slots__ = ("text", "type", "expected_field", "reference_id", "warning", "error_kind", "ack")

    def __init__(
        self,
        text: str,
        type_: MessageType,
        expected_field: IntakeField | None = None,
    ) -> None:
        self.text = text
        self.type = type_
        self.expected_field = expected_field
        self.reference_id: str | None = None
        self.warning: str | None = None
        self.error_kind: ErrorKind | None = None
        self.ack = False


class ConversationOrchestrator:
    """Coordena scanner, classificador, extrator, merge, máquina de estados e gate."""

    def __init__(
        self,
        sessions: SessionManager,
        tickets: TicketService,
        *,
        scanner: SensitiveDataScanner | None = None,
        classifier: IntentClassifier | None = None,
        extractor: FieldExtractor | None = None,
        merger: FieldMergeEngine | None = None,
        reasoner: ConversationReasoner | None = None,
        state_machine: StateMachine | None = None,
        gate: SubmissionGate | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._sessions = sessions
        self._tickets = tickets
        self._scanner = scanner or SensitiveDataScanner()
        self._classifier = classifier or IntentClassifier(
            confidence_threshold=self._settings.intent_confidence_threshold
        )
        self._extractor = extractor or FieldExtractor()
        self._merger = merger or FieldMergeEngine(
            category_lock_confidence=self._settings.category_lock_confidence
        )
        self._reasoner = reasoner or ConversationReasoner()
        self._state_machine = state_machine or StateMachine()
        self._gate = gate or SubmissionGate(
            threshold=self._settings.field_confidence_threshold,
            password_error_threshold=self._settings.password_error_text_threshold,
            confirmation_window_turns=self._settings.confirmation_window_turns,
        )

    # === API pública ===

    def start_session(self, user_context: UserContext | None = None) -> TurnResponse:
        """Cria sessão e devolve a mensagem de boas-vindas."""
        session = self._sessions.create(user_context)
        session.append_message(Sender.SYSTEM, WELCOME_MESSAGE, now=self._sessions.now())
        session.last_bot_question = WELCOME_MESSAGE
        self._sessions.persist(session)
        return TurnResponse(
            session_id=session.session_id,
            message=WELCOME_MESSAGE,
            type=MessageType.QUESTION,
            conversation_state=session.conversation_state,
        )

    def end_session(self, session_id: str) -> bool:
        return self._sessions.delete(session_id)

    async def handle_message(
        self,
        session_id: str | None,
        text: object,
        user_context: UserContext | None = None,
    ) -> TurnResponse:
        """Processa um turno.

        Raises:
            InvalidInputError: mensagem vazia, não-string ou longa demais
            SessionNotFoundError: session_id desconhecido ou expirado
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidInputError("Message must be a non-empty string")
        if len(text) > self._settings.max_message_length_chars:
            raise InvalidInputError("Message exceeds maximum length")
        message = text.strip()

        with correlation_scope():
            if session_id is None:
                session_id = self._sessions.create(user_context).session_id

            async with self._sessions.lock(session_id):
                stored = self._sessions.load(session_id)
                working = stored.model_copy(deep=True)
                if user_context is not None:
                    working.user_context = user_context

                try:
                    with timed("turn"):
                        return await self._run_turn(working, message)
                except Exception as e:  # noqa: BLE001 - turno descartado, sessão intacta
                    logger.error(
                        "turn_failed",
                        extra={"session_id": short_id(session_id), "error": type(e).__name__},
                    )
                    return TurnResponse(
                        session_id=session_id,
                        message=TURN_FAILED_REPLY,
                        type=MessageType.ERROR,
                        conversation_state=stored.conversation_state,
                    )

    # === Turno ===

    async def _run_turn(self, session: SessionState, message: str) -> TurnResponse:
        if session.is_submitted:
            return TurnResponse(
                session_id=session.session_id,
                message=(
                    f"Your ticket has already been submitted (reference {session.reference_id}). "
                    "If you have a new issue, please start a new conversation."
                ),
                type=MessageType.INFO,
                conversation_state=session.conversation_state,
                reference_id=session.reference_id,
            )

        decision = self._scanner.scan(
            message,
            SecurityContext(
                conversation_state=session.conversation_state,
                last_bot_message=session.last_bot_question,
                last_expected_field=session.last_expected_field,
                error_text_known=session.intake.is_set(IntakeField.ERROR_TEXT),
            ),
        )
        if decision.blocked:
            return self._finish(session, self._block(session, decision.block_reply()))

        if session.conversation_state == S.BLOCKED_SECURITY:
            session.append_message(Sender.USER, message, now=self._sessions.now())
            return self._finish(session, self._handle_acknowledgement(session, message))

        session.append_message(Sender.USER, message, now=self._sessions.now())

        resumed = False
        if session.conversation_state == S.WAITING:
            if _STILL_CHECKING.search(message.lower()):
                return self._finish(session, _Reply(STILL_CHECKING_REPLY, MessageType.WAITING))
            if not _RESUME.search(message.lower()):
                return self._finish(session, _Reply(STILL_WAITING_REPLY, MessageType.WAITING))
            session.conversation_state = S.PROBING
            resumed = True
            logger.info("wait_resumed", extra={"session_id": short_id(session.session_id)})

        reply = await self._process(session, message, resumed=resumed)
        return self._finish(session, reply)

    def _block(self, session: SessionState, warning: str) -> _Reply:
        if session.conversation_state != S.BLOCKED_SECURITY:
            session.blocked_from_state = session.conversation_state
        session.conversation_state = S.BLOCKED_SECURITY
        session.submission_approved = False
        session.approval_turn = None
        session.security_blocks += 1
        reply = _Reply(warning, MessageType.WARNING)
        reply.ack = True
        return reply

    def _handle_acknowledgement(self, session: SessionState, message: str) -> _Reply:
        if is_negative_acknowledgement(message):
            reply = _Reply(SECURITY_NEGATIVE_REPLY, MessageType.WARNING)
            reply.ack = True
            return reply

        if not is_security_acknowledgement(message):
            reply = _Reply(SECURITY_STILL_BLOCKED, MessageType.WARNING)
            reply.ack = True
            return reply

        session.conversation_state = S.PROBING if session.intake.collected() else S.INIT
        session.blocked_from_state = None
        logger.info("security_acknowledged", extra={"session_id": short_id(session.session_id)})

        question, target = self._next_question(session)
        if question is None:
            return _Reply(SECURITY_ACK_THANKS, MessageType.INFO)
        return _Reply(f"{SECURITY_ACK_THANKS} {question}", MessageType.QUESTION, target)

    async def _process(self, session: SessionState, message: str, *, resumed: bool) -> _Reply:
        state = session.conversation_state
        turn = session.turn_count

        intent = await self._classifier.classify(
            message,
            IntentContext(
                conversation_state=state,
                recent_user_messages=session.user_messages()[:-1],
                recent_turns=session.recent_turns(),
                last_bot_question=session.last_bot_question,
                last_expected_field=session.last_expected_field,
                turn_count=turn,
            ),
        )
        summary = self._summary(session)
        decision = await self._reasoner.decide(
            intent, summary, state, message=message, intake=session.intake, resumed=resumed
        )

        changed: set[IntakeField] = set()
        requested = self._requested_fields(state, intent, decision, message)
        if requested:
            extraction = await self._extractor.extract(
                ExtractionRequest(
                    message=message,
                    requested_fields=requested,
                    intake=session.intake,
                    last_bot_question=session.last_bot_question,
                    last_expected_field=session.last_expected_field,
                    conversation_summary=summary.to_prompt_text(),
                )
            )
            if extraction.candidates:
                merged = self._merger.merge(
                    session.intake,
                    session.confidence_by_field,
                    extraction.candidates,
                    MergeContext(
                        is_correction=intent.is_correction,
                        resumed_from_wait=resumed,
                        wants_more=intent.intent == Intent.ADD_MORE_INFO,
                        expected_field=session.last_expected_field,
                        message=message,
                        conversation_state=state,
                    ),
                )
                session.intake = merged.intake
                session.confidence_by_field = merged.confidences
                changed = merged.changed_fields

        if intent.intent == Intent.CONFIRM_SUBMIT and changed:
            # "yes, make it low": o resumo mudou, a confirmação não cobre o novo intake
            logger.info(
                "confirmation_superseded_by_edit",
                extra={
                    "session_id": short_id(session.session_id),
                    "fields": sorted(f.value for f in changed),
                },
            )
            intent = replace(intent, intent=Intent.PROVIDE_INFO)

        self._update_approval(session, intent, state, turn, changed)

        field_check = check_field_confidence(
            session.intake,
            session.confidence_by_field,
            threshold=self._settings.field_confidence_threshold,
            password_error_threshold=self._settings.password_error_text_threshold,
        )
        transition = self._state_machine.decide(
            TransitionContext(
                current_state=state,
                intent=intent.intent,
                field_check=field_check,
                submission_declined=session.submission_declined,
                is_correction=intent.is_correction,
                fields_changed=bool(changed),
                suggested_state=decision.suggested_next_state,
            )
        )
        session.conversation_state = transition.next_state

        if session.conversation_state == S.CONFIRMING_SUBMISSION:
            return await self._submit(session, turn)
        return self._compose(session, intent, decision, previous_state=state)

    @staticmethod
    def _requested_fields(
        state: ConversationState,
        intent: IntentResult,
        decision: ReasonerDecision,
        message: str,
    ) -> list[IntakeField]:
        """Campos a extrair no turno; vazio quando a extração não se aplica."""
        if intent.intent in _NO_EXTRACTION_INTENTS:
            return []
        if not STATE_BEHAVIOR[state].can_extract:
            return []
        if (
            intent.intent == Intent.CONFIRM_SUBMIT
            and state in SUMMARY_PENDING_STATES
            and not is_bare_confirmation(message)
        ):
            # Confirmação com edição: o "sim" nunca vira descrição do problema
            return [name for name in FIELD_PRIORITY if name != IntakeField.PROBLEM]
        return decision.fields_to_extract

    @staticmethod
    def _update_approval(
        session: SessionState,
        intent: IntentResult,
        state: ConversationState,
        turn: int,
        changed: set[IntakeField],
    ) -> None:
        if intent.intent == Intent.CONFIRM_SUBMIT:
            session.submission_approved = True
            session.approval_turn = turn
            session.submission_declined = False
        elif intent.intent == Intent.DENY_SUBMIT and state in SUMMARY_PENDING_STATES:
            session.submission_declined = True
            session.submission_approved = False
            session.approval_turn = None

        if changed and intent.intent != Intent.CONFIRM_SUBMIT:
            session.submission_approved = False
            session.approval_turn = None
        if changed or intent.intent == Intent.NO_MORE_INFO:
            session.submission_declined = False

    async def _submit(self, session: SessionState, turn: int) -> _Reply:
        gate = self._gate.enforce(session, turn)
        if not gate.allowed:
            reply = _Reply(gate.message or SUBMIT_PROMPT, MessageType.QUESTION, gate.failing_field)
            reply.error_kind = ErrorKind.SUBMISSION_BLOCKED
            return reply

        try:
            outcome = await self._tickets.submit(session)
        except TicketSubmissionError as e:
            logger.error(
                "ticket_submission_failed",
                extra={"session_id": short_id(session.session_id), "error": str(e)},
            )
            session.conversation_state = S.READY_TO_SUBMIT
            session.submission_approved = False
            session.approval_turn = None
            return _Reply(SUBMISSION_FAILED_REPLY, MessageType.ERROR)

        session.conversation_state = S.SUBMITTED
        session.reference_id = outcome.reference_id
        reply = _Reply(
            f"Your ticket has been submitted. Reference: {outcome.reference_id}. "
            "Our support team will contact you soon.",
            MessageType.SUCCESS,
        )
        reply.reference_id = outcome.reference_id
        if outcome.warning:
            reply.warning = outcome.warning
            reply.error_kind = ErrorKind.PERSISTENCE_FAILURE
        return reply

    # === Composição da resposta ===

    def _compose(
        self,
        session: SessionState,
        intent: IntentResult,
        decision: ReasonerDecision,
        *,
        previous_state: ConversationState,
    ) -> _Reply:
        state = session.conversation_state
        ack = decision.acknowledgment if decision.should_acknowledge else None

        if state == S.WAITING:
            return _Reply(WAIT_STARTED, MessageType.WAITING)

        if intent.intent == Intent.OFF_TOPIC:
            if state == S.READY_TO_SUBMIT:
                return _Reply(f"{OFF_TOPIC_REDIRECT}\n\n{SUBMIT_PROMPT}", MessageType.INFO)
            return _Reply(OFF_TOPIC_REDIRECT, MessageType.INFO)

        if intent.intent == Intent.SECURITY_RISK:
            question, target = self._next_question(session)
            text = SECURITY_RISK_REPLY if question is None else f"{SECURITY_RISK_REPLY} {question}"
            return _Reply(text, MessageType.WARNING, target)

        if state == S.READY_TO_SUBMIT:
            return _Reply(render_summary(session.intake), MessageType.SUMMARY)

        if intent.intent == Intent.DENY_SUBMIT and session.submission_declined:
            return _Reply(_join(ack, DECLINED_PROMPT), MessageType.QUESTION)

        if intent.intent == Intent.IDLE and state == S.INIT:
            return _Reply(GREETING_REPLY, MessageType.QUESTION)

        question, target = self._next_question(session)

        if intent.intent == Intent.ASK_QUESTION:
            explanation = decision.question_to_ask if decision.source == "semantic" else None
            if explanation is None:
                about = target or session.last_expected_field
                explanation = (
                    f"No problem, let me explain. I'm asking about the {about.label}."
                    if about
                    else "No problem, let me explain."
                )
            return _Reply(_join(explanation, question), MessageType.QUESTION, target)

        if question is None:
            # Campos válidos mas a recusa ainda vale: pedir o que mudar
            if session.submission_declined:
                return _Reply(_join(ack, DECLINED_PROMPT), MessageType.QUESTION)
            return _Reply(_join(ack, ALL_SET_REPLY), MessageType.INFO)

        if intent.intent == Intent.FRUSTRATION and session.intake.collected():
            so_far = "\n".join(
                f"- {name.label}: {value}" for name, value in session.intake.collected().items()
            )
            text = _join(ack, f"Here's what I have so far:\n{so_far}\n\n{question}")
            return _Reply(text, MessageType.QUESTION, target)

        return _Reply(_join(ack, question), MessageType.QUESTION, target)

    def _summary(self, session: SessionState) -> ConversationSummary:
        return build_summary(
            session,
            threshold=self._settings.field_confidence_threshold,
            password_error_threshold=self._settings.password_error_text_threshold,
        )

    def _next_question(self, session: SessionState) -> tuple[str | None, IntakeField | None]:
        summary = self._summary(session)
        target = next_field(session.intake, summary.pending)
        if target is None:
            return None, None
        return question_for(target, low_confidence=target in summary.low_confidence), target

    # === Commit do turno ===

    def _finish(self, session: SessionState, reply: _Reply) -> TurnResponse:
        session.append_message(Sender.SYSTEM, reply.text, now=self._sessions.now())
        session.last_bot_question = reply.text
        session.last_expected_field = reply.expected_field
        session.turn_count += 1
        self._sessions.persist(session)

        logger.info(
            "turn_completed",
            extra={
                "session_id": short_id(session.session_id),
                "conversation_state": session.conversation_state.value,
                "turn": session.turn_count,
                "response_type": reply.type.value,
            },
        )
        return TurnResponse(
            session_id=session.session_id,
            message=reply.text,
            type=reply.type,
            conversation_state=session.conversation_state,
            reference_id=reply.reference_id,
            warning=reply.warning,
            error_kind=reply.error_kind,
            requires_acknowledgment=reply.ack,
        )


def _join(*parts: str | None) -> str:
    return " ".join(p for p in parts if p)
