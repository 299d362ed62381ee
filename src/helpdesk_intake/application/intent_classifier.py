"""Classificação de intenção em três camadas: regras → semântica → heurística.

Responsabilidades:
- Regras determinísticas de alta confiança (rodam sempre primeiro)
- Capacidade semântica quando nenhuma regra dispara
- Heurística mínima quando a capacidade falha ou responde abaixo do limiar

Contrato: `classify` nunca lança exceção e sempre devolve IntentResult válido.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from helpdesk_intake.ai.capability_caller import CapabilityPolicy, call_capability
from helpdesk_intake.ai.contracts import IntentClassificationRequest, IntentClassificationResult
from helpdesk_intake.domain.conversation import SUMMARY_PENDING_STATES, ConversationState
from helpdesk_intake.domain.enums import Category, Intent, Urgency
from helpdesk_intake.domain.errors import IntakeError
from helpdesk_intake.domain.intake import IntakeField
from helpdesk_intake.domain.protocols.capabilities import SemanticCapability
from helpdesk_intake.observability.logging import get_logger, log_fallback
from helpdesk_intake.observability.timing import timed

logger: logging.Logger = get_logger(__name__)

SOURCE_RULES = "rules"
SOURCE_SEMANTIC = "semantic"
SOURCE_FALLBACK = "fallback"

# === Padrões (pré-compilados) ===

_CANCEL = re.compile(
    r"^(cancel|never\s*mind|forget\s+it|do\s+not\s+submit|don'?t\s+submit)\b"
    r"|\bcancel\s+(the|this|my)\s+(ticket|request)\b"
)
_SECURITY_RISK = re.compile(
    r"\b(do\s+you|should\s+i|can\s+i|want\s+me\s+to|need\s+me\s+to)\b.{0,40}"
    r"\b(give|send|share|tell|provide)\b.{0,20}\b(password|pin|passcode|otp|mfa|2fa|token)\b"
    r"|\b(want|need)\b.{0,20}\bmy\s+(password|pin|passcode|otp|token)\b"
)
_WAIT_START = re.compile(
    r"^((ok|okay)[,\s]+)?(please\s+)?(wait|hold\s+on|hang\s+on|pause"
    r"|one\s+(sec|second|moment|minute)|just\s+a\s+(sec|second|moment|minute))\b"
)
_WAIT_ANYWHERE = re.compile(
    r"\b(give\s+me\s+a\s+(sec|second|moment|minute)|be\s+right\s+back|brb"
    r"|let\s+me\s+(check|look|find\s+it|think))\b"
)
_AFFIRMATIVE = re.compile(
    r"^(yes|yeah|yep|yup|sure|ok|okay|correct|right|that'?s\s+right|exactly"
    r"|go\s+ahead|submit|please\s+submit|looks\s+good|confirm)\b"
)
_BARE_CONFIRMATION = re.compile(
    r"^(yes|yeah|yep|yup|sure|ok|okay|correct|right|that'?s\s+(right|correct)|exactly"
    r"|go\s+ahead|submit(\s+it)?|please\s+submit(\s+it)?|looks\s+good|confirm(ed)?)"
    r"([\s,.!]+(please|thanks|thank\s+you|go\s+ahead|submit(\s+it)?|do\s+it"
    r"|looks\s+good|that'?s\s+(right|correct)))*[\s.!]*$"
)
_BARE_NEGATIVE = re.compile(
    r"^(no|nope|nah|not\s+yet|no\s+thanks|not\s+now|don'?t\s+submit)[\s.!]*$"
)
_ADD_MORE = re.compile(
    r"\b(i\s+(also\s+)?(want|need|would\s+like)\s+to\s+add|let\s+me\s+add|add\s+(something|more)"
    r"|one\s+more\s+thing|i\s+forgot\s+to\s+mention|i\s+have\s+more|something\s+else\s+to\s+add)\b"
)
_EXPLICIT_SUBMIT = re.compile(
    r"\b(submit(\s+it|\s+the\s+ticket|\s+this)?|(create|open|raise|file)\s+(a|the)\s+ticket)\b"
)
_NO_MORE_INFO = re.compile(
    r"\b(that'?s\s+(all|it|everything)|nothing\s+(else|more)|i'?m\s+done|no\s+more\s+info"
    r"|that\s+is\s+all)\b"
)
_GREETING_ONLY = re.compile(
    r"^(hi|hello|hey|good\s+(morning|afternoon|evening)|hi\s+there|hello\s+there)[\s.!,]*$"
)
_OFF_TOPIC = (
    re.compile(r"^(how\s+are\s+you|how\s+are\s+u|what'?s\s+up|whats\s+up)[\s?!.]*$"),
    re.compile(r"^(what\s+is|what'?s)\s+\d+\s*[+\-*/]\s*\d+"),
    re.compile(r"^\d+\s*[+\-*/]\s*\d+"),
    re.compile(r"^(tell\s+me\s+a\s+joke|what'?s\s+the\s+weather|what\s+time\s+is\s+it)"),
    re.compile(r"^(who\s+is|who\s+was|what\s+is\s+the\s+capital)"),
)
_SUPPORT_WORDS = re.compile(r"\b(issue|problem|error|broken|not\s+working|crash\w*|fail\w*)\b")
_FRUSTRATION = re.compile(
    r"\b(i\s+already\s+told\s+you|this\s+is\s+(so\s+)?(frustrating|annoying|ridiculous|useless)"
    r"|you'?re\s+not\s+listening|are\s+you\s+even\s+listening|stop\s+asking)\b"
)
_DONT_KNOW = re.compile(r"\b(i\s+don'?t\s+know|i\s+dont\s+know|no\s+idea|not\s+sure|idk)\b")
_CORRECTION = (
    re.compile(r"^(no[,\s]+actually|that'?s\s+wrong|that'?s\s+not\s+right|incorrect|wrong)\b"),
    re.compile(
        r"\b(i\s+meant|actually\s+it'?s|correction|update\s+the\s+error"
        r"|change\s+(the\s+\w+|it)\s+to"
        r"|it'?s\s+not\s+\w+[,\s]+it'?s)\b"
    ),
)
_CONFUSION = re.compile(
    r"\b(what\s+do\s+you\s+mean|i\s+don'?t\s+understand|can\s+you\s+explain"
    r"|what\s+does\s+that\s+mean|what\s+is\s+that|confused)\b"
)
_FILLER = re.compile(r"^(ok|okay|k|hmm+|um+|uh+|\?+|\.+)[\s.!?]*$")
_URGENCY_WORDS = frozenset({"urgent", "asap", "critical", "not urgent"})


@dataclass(slots=True)
class IntentContext:
    """Contexto recente usado pelas regras e pelo classificador semântico."""

    conversation_state: ConversationState = ConversationState.INIT
    recent_user_messages: list[str] = field(default_factory=list)
    recent_turns: list[str] = field(default_factory=list)
    last_bot_question: str | None = None
    last_expected_field: IntakeField | None = None
    turn_count: int = 0


@dataclass(slots=True, frozen=True)
class IntentResult:
    """Intenção classificada e a camada que a produziu."""

    intent: Intent
    confidence: float
    source: str
    rule: str | None = None
    is_correction: bool = False


def is_correction(text: str) -> bool:
    """True se a mensagem sinaliza correção explícita ("actually it's...")."""
    normalized = text.lower().strip()
    return any(p.search(normalized) for p in _CORRECTION)


def is_bare_confirmation(text: str) -> bool:
    """True para um "sim" sem conteúdo de campo ("yes please", "ok, submit it")."""
    return bool(_BARE_CONFIRMATION.search(text.lower().strip()))


def is_off_topic(text: str) -> bool:
    normalized = text.lower().strip()
    if _SUPPORT_WORDS.search(normalized):
        return False
    return any(p.search(normalized) for p in _OFF_TOPIC)


def _is_wait(normalized: str) -> bool:
    if _ADD_MORE.search(normalized):
        return False
    return bool(_WAIT_START.search(normalized) or _WAIT_ANYWHERE.search(normalized))


def _dont_know_count(messages: list[str]) -> int:
    return sum(1 for m in messages[-4:] if _DONT_KNOW.search(m.lower()))


def _is_valid_short_answer(normalized: str, field_name: IntakeField) -> bool:
    """Resposta curta compatível com o campo perguntado."""
    word = normalized.strip(" .!")
    if field_name == IntakeField.URGENCY:
        return word in {u.value for u in Urgency} or word in _URGENCY_WORDS
    if field_name == IntakeField.CATEGORY:
        return word in {c.value for c in Category}
    return bool(word)


def classify_by_rules(text: str, context: IntentContext) -> IntentResult | None:
    """Camada 1: regras determinísticas. None se nenhuma regra dispara."""
    normalized = text.lower().strip()
    state = context.conversation_state
    correction = is_correction(normalized)

    def hit(intent: Intent, confidence: float, rule: str) -> IntentResult:
        return IntentResult(intent, confidence, SOURCE_RULES, rule, correction)

    if _CANCEL.search(normalized):
        return hit(Intent.DENY_SUBMIT, 0.95, "cancel")

    if _SECURITY_RISK.search(normalized):
        return hit(Intent.SECURITY_RISK, 0.9, "security_risk")

    if _is_wait(normalized):
        return hit(Intent.INTERRUPT_WAIT, 0.9, "wait_signal")

    if state in SUMMARY_PENDING_STATES:
        if _AFFIRMATIVE.search(normalized) and " but " not in f" {normalized} ":
            return hit(Intent.CONFIRM_SUBMIT, 0.95, "confirmation_affirmative")
        if _BARE_NEGATIVE.search(normalized):
            return hit(Intent.DENY_SUBMIT, 0.95, "confirmation_negative")

    if _ADD_MORE.search(normalized):
        return hit(Intent.ADD_MORE_INFO, 0.85, "add_more")

    # Palavra-chave explícita vale em qualquer estado, mas só sem outro conteúdo
    if _EXPLICIT_SUBMIT.search(normalized) and (
        state in SUMMARY_PENDING_STATES or len(normalized) <= 40
    ):
        return hit(Intent.CONFIRM_SUBMIT, 0.9, "submit_keyword")

    if _NO_MORE_INFO.search(normalized):
        return hit(Intent.NO_MORE_INFO, 0.9, "no_more_info")

    if _GREETING_ONLY.search(normalized):
        if context.turn_count <= 2:
            return hit(Intent.IDLE, 0.9, "greeting_early")
        return hit(Intent.OFF_TOPIC, 0.8, "greeting_late")

    if is_off_topic(normalized):
        return hit(Intent.OFF_TOPIC, 0.9, "off_topic")

    if _FRUSTRATION.search(normalized):
        return hit(Intent.FRUSTRATION, 0.85, "frustration")

    if _DONT_KNOW.search(normalized) and (
        _dont_know_count([*context.recent_user_messages, normalized]) >= 2
    ):
        return hit(Intent.FRUSTRATION, 0.8, "repeated_dont_know")

    if correction:
        return hit(Intent.PROVIDE_INFO, 0.85, "correction")

    if _CONFUSION.search(normalized):
        return hit(Intent.ASK_QUESTION, 0.85, "confusion")

    expected = context.last_expected_field
    if (
        expected is not None
        and len(normalized) <= 20
        and not _FILLER.search(normalized)
        and _is_valid_short_answer(normalized, expected)
    ):
        return hit(Intent.PROVIDE_INFO, 0.85, "short_answer")

    if not normalized or _FILLER.search(normalized):
        return hit(Intent.IDLE, 0.8, "filler")

    return None


def fallback_intent(text: str, state: ConversationState) -> Intent:
    """Camada 3: heurística mínima (casos extremos; padrão PROVIDE_INFO)."""
    normalized = text.lower().strip()
    if not normalized or normalized == "?":
        return Intent.IDLE
    if "wait" in normalized or "hold on" in normalized:
        return Intent.INTERRUPT_WAIT
    if state in SUMMARY_PENDING_STATES:
        if _AFFIRMATIVE.search(normalized):
            return Intent.CONFIRM_SUBMIT
        if normalized in {"no", "not yet"}:
            return Intent.DENY_SUBMIT
    if is_off_topic(normalized):
        return Intent.OFF_TOPIC
    if normalized.endswith("?"):
        return Intent.ASK_QUESTION
    return Intent.PROVIDE_INFO


class IntentClassifier:
    """Classificador com cascata regras → semântica → heurística."""

    FALLBACK_CONFIDENCE = 0.5

    def __init__(
        self,
        capability: SemanticCapability | None = None,
        *,
        confidence_threshold: float = 0.6,
        policy: CapabilityPolicy | None = None,
    ) -> None:
        self._capability = capability
        self._threshold = confidence_threshold
        self._policy = policy

    async def classify(self, text: str, context: IntentContext) -> IntentResult:
        with timed("intent_classifier"):
            ruled = classify_by_rules(text, context)
            if ruled is not None:
                logger.debug(
                    "intent_classified",
                    extra={"intent": ruled.intent, "source": ruled.source, "rule": ruled.rule},
                )
                return ruled

            correction = is_correction(text)
            outcome = await self._try_semantic(text, context)
            if isinstance(outcome, IntentResult):
                return IntentResult(
                    outcome.intent, outcome.confidence, SOURCE_SEMANTIC, None, correction
                )

            log_fallback(logger, "intent_classifier", reason=outcome)
            return IntentResult(
                fallback_intent(text, context.conversation_state),
                self.FALLBACK_CONFIDENCE,
                SOURCE_FALLBACK,
                None,
                correction,
            )

    async def _try_semantic(self, text: str, context: IntentContext) -> IntentResult | str:
        """Resultado semântico aceito ou o motivo do fallback."""
        capability = self._capability
        if capability is None:
            return "capability_not_configured"

        request = IntentClassificationRequest(
            message=text,
            conversation_state=context.conversation_state,
            recent_turns=context.recent_turns,
            last_bot_question=context.last_bot_question,
            last_expected_field=context.last_expected_field,
        )
        try:
            result = await call_capability(
                "intent_classification",
                lambda: capability.classify_intent(request),
                IntentClassificationResult,
                self._policy,
            )
        except IntakeError as e:
            return type(e).__name__

        if result.confidence < self._threshold:
            return "low_confidence"

        logger.debug(
            "intent_classified",
            extra={
                "intent": result.intent,
                "source": SOURCE_SEMANTIC,
                "confidence": result.confidence,
            },
        )
        return IntentResult(result.intent, result.confidence, SOURCE_SEMANTIC)
